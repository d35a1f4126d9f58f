from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the marketplace package importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from marketplace.core import config as core_config  # noqa: E402
from marketplace.db import models  # noqa: E402
from marketplace.db import session as db_session  # noqa: E402
from marketplace.services import payment_provider  # noqa: E402
from marketplace.services.account_service import AccountService  # noqa: E402
from marketplace.services.payment_provider import PaymentProviderError, ProviderAccount  # noqa: E402
from marketplace.services.session_service import SQLSessionStore  # noqa: E402


def _clear_caches():
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    payment_provider.get_payment_provider.cache_clear()


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point DATABASE_URL at a temporary SQLite file and reset settings/engine caches."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://barbers.test")
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    monkeypatch.delenv("SESSION_TTL_SECONDS", raising=False)
    _clear_caches()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    _clear_caches()


class FakePaymentProvider:
    """In-memory stand-in for Stripe Connect."""

    def __init__(self) -> None:
        self.accounts: dict[str, bool] = {}
        self.prices: list[tuple[str, str, int]] = []
        self.calls: list[str] = []
        self.fail_prices = False
        self._seq = 0

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}_{self._seq}"

    def enable_charges(self, account_id: str, enabled: bool = True) -> None:
        self.accounts[account_id] = enabled

    def create_account(self, email: str) -> ProviderAccount:
        self.calls.append("create_account")
        account_id = self._next("acct")
        self.accounts[account_id] = False
        return ProviderAccount(id=account_id, charges_enabled=False)

    def get_account(self, account_id: str) -> ProviderAccount:
        self.calls.append("get_account")
        if account_id not in self.accounts:
            raise PaymentProviderError(f"No such account: {account_id}")
        return ProviderAccount(id=account_id, charges_enabled=self.accounts[account_id])

    def get_onboarding_link(self, account_id: str) -> str:
        self.calls.append("get_onboarding_link")
        return f"https://connect.stripe.test/setup/{account_id}"

    def create_price(self, name: str, unit_amount: int) -> str:
        self.calls.append("create_price")
        if self.fail_prices:
            raise PaymentProviderError("price service unavailable")
        price_id = self._next("price")
        self.prices.append((price_id, name, unit_amount))
        return price_id


@pytest.fixture()
def payments():
    return FakePaymentProvider()


@pytest.fixture()
def svc(db_env, payments):
    return AccountService(sessions=SQLSessionStore(), payments=payments)


@pytest.fixture()
def signed_up(svc):
    """Create a default account and return its e-mail."""
    result = svc.signup("barber@example.com", "secret1")
    assert result.ok, result.reason
    return "barber@example.com"
