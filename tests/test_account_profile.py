from __future__ import annotations

import threading

import pytest

from marketplace.domain.accounts import ProfileUpdate
from marketplace.services.errors import ErrorKind


def test_update_location(svc, signed_up):
    assert svc.update_location(signed_up, "Lisbon").ok
    account = svc.login(signed_up, "secret1").value.account
    assert account["location"] == "Lisbon"
    assert svc.update_location(signed_up, "").error is ErrorKind.VALIDATION
    assert svc.update_location("nobody@example.com", "Lisbon").error is ErrorKind.NOT_FOUND
    assert svc.update_location(signed_up, 5).error is ErrorKind.VALIDATION
    assert svc.login(signed_up, "secret1").value.account["location"] == "Lisbon"


def test_update_profile_touches_only_allowed_fields(svc, signed_up, payments):
    result = svc.update_profile(
        signed_up,
        {
            "first_name": "Rui",
            "is_service_provider": True,
            "email": "hijack@example.com",
            "password_hash": "argon2$forged",
            "payment_provider_verified": True,
        },
    )
    assert result.ok
    account = result.value
    assert account["email"] == signed_up
    assert account["first_name"] == "Rui"
    assert account["is_service_provider"] is True
    assert account["payment_provider_verified"] is False
    assert "password_hash" not in account
    # becoming a provider does not open a payment account by itself
    assert account["payment_provider_account_id"] is None
    assert payments.calls == []
    assert svc.login(signed_up, "secret1").ok


def test_update_profile_accepts_typed_update(svc, signed_up):
    result = svc.update_profile(signed_up, ProfileUpdate(phone_number="+351 900 000 000"))
    assert result.ok
    assert result.value["phone_number"] == "+351 900 000 000"


def test_update_profile_rejections(svc, signed_up):
    assert svc.update_profile(signed_up, None).error is ErrorKind.VALIDATION
    assert svc.update_profile(signed_up, {}).error is ErrorKind.VALIDATION
    assert svc.update_profile(signed_up, {"email": "x@y.com"}).error is ErrorKind.VALIDATION
    assert svc.update_profile(signed_up, {"is_service_provider": "yes"}).error is ErrorKind.VALIDATION
    assert svc.update_profile(signed_up, "first_name=Rui").error is ErrorKind.VALIDATION
    assert svc.update_profile("nobody@example.com", {"first_name": "Rui"}).error is ErrorKind.NOT_FOUND


@pytest.mark.parametrize(
    "changes",
    [
        {"first_name": ["Rui"]},
        {"last_name": 42},
        {"phone_number": 912000000},
        {"profile_image": {"url": "x"}},
        {"location": 5},
        {"favorite_barber_email": 7},
    ],
)
def test_update_profile_rejects_non_text_values(svc, signed_up, changes):
    result = svc.update_profile(signed_up, changes)
    assert result.error is ErrorKind.VALIDATION
    account = svc.login(signed_up, "secret1").value.account
    assert all(account[name] is None for name in changes)


def test_non_text_arguments_are_validation_errors(svc, signed_up):
    assert svc.set_favorite_barber(signed_up, 7).error is ErrorKind.VALIDATION
    assert svc.search_accounts(5).error is ErrorKind.VALIDATION
    assert svc.block_user(signed_up, ["troll@example.com"]).error is ErrorKind.VALIDATION


def test_set_favorite_barber(svc, signed_up):
    result = svc.set_favorite_barber(signed_up, "Best.Barber@Example.com")
    assert result.ok
    assert result.value["favorite_barber_email"] == "best.barber@example.com"
    assert svc.set_favorite_barber(signed_up, "not-an-email").error is ErrorKind.VALIDATION
    assert svc.set_favorite_barber(signed_up, None).error is ErrorKind.VALIDATION


def test_search_accounts(svc, signed_up):
    svc.signup("client@example.com", "secret1")
    svc.update_profile("client@example.com", {"first_name": "Marta", "last_name": "Reis"})

    result = svc.search_accounts("marta")
    assert result.ok
    assert [a["email"] for a in result.value] == ["client@example.com"]
    assert all("password_hash" not in a for a in result.value)

    assert [a["email"] for a in svc.search_accounts(signed_up).value] == [signed_up]
    assert svc.search_accounts("nobody").value == []
    assert svc.search_accounts("").error is ErrorKind.VALIDATION


def test_block_and_unblock(svc, signed_up):
    assert svc.block_user(signed_up, "Troll@Example.com").ok
    assert svc.block_user(signed_up, "troll@example.com").ok
    assert svc.get_blocked_users(signed_up).value == ["troll@example.com"]

    assert svc.unblock_user(signed_up, "troll@example.com").ok
    assert svc.get_blocked_users(signed_up).value == []
    assert svc.unblock_user(signed_up, "troll@example.com").error is ErrorKind.NOT_FOUND


def test_concurrent_block_keeps_single_entry(svc, signed_up):
    results = []

    def block():
        results.append(svc.block_user(signed_up, "troll@example.com"))

    threads = [threading.Thread(target=block) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(r.ok for r in results)
    assert svc.get_blocked_users(signed_up).value == ["troll@example.com"]


def test_blocklist_errors(svc, signed_up):
    assert svc.block_user(signed_up, None).error is ErrorKind.VALIDATION
    assert svc.block_user("nobody@example.com", "troll@example.com").error is ErrorKind.NOT_FOUND
    assert svc.get_blocked_users("nobody@example.com").error is ErrorKind.NOT_FOUND
    assert svc.get_blocked_users("").error is ErrorKind.VALIDATION


def test_payment_history_is_an_append_only_log(svc, signed_up):
    svc.signup("client@example.com", "secret1")

    first = svc.add_to_payment_history(signed_up, "client@example.com", ["Cut"], 20)
    second = svc.add_to_payment_history(signed_up, "client@example.com", ["Cut", "Beard"], 35.5)
    assert first.ok and second.ok
    assert first.value["id"].startswith(f"payment_history:{signed_up}xclient@example.comx")

    history = svc.get_payment_history("client@example.com").value
    assert [r["id"] for r in history] == [first.value["id"], second.value["id"]]
    assert history[1]["service_names"] == ["Cut", "Beard"]
    assert history[1]["amount"] == 35.5
    assert svc.get_payment_history(signed_up).value == []


def test_payment_history_validation(svc, signed_up):
    svc.signup("client@example.com", "secret1")
    assert svc.add_to_payment_history(signed_up, "client@example.com", [], 20).error is ErrorKind.VALIDATION
    assert svc.add_to_payment_history(signed_up, "client@example.com", ["Cut"], None).error is ErrorKind.VALIDATION
    assert svc.add_to_payment_history(signed_up, "client@example.com", ["Cut"], -5).error is ErrorKind.VALIDATION
    assert svc.add_to_payment_history(signed_up, "client@example.com", "Cut", 5).error is ErrorKind.VALIDATION
    for amount in (float("nan"), float("inf"), True):
        assert svc.add_to_payment_history(signed_up, "client@example.com", ["Cut"], amount).error is ErrorKind.VALIDATION
    assert svc.get_payment_history("client@example.com").value == []
    assert svc.add_to_payment_history(signed_up, "nobody@example.com", ["Cut"], 5).error is ErrorKind.NOT_FOUND
    assert svc.add_to_payment_history(signed_up, "client@example.com", ["Free trim"], 0).ok
