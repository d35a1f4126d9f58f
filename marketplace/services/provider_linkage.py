"""
Payment provider linkage state machine.

An account moves UNLINKED -> LINKED (a connected account id is stored) ->
VERIFIED (the provider reports the account can take charges). Linking and
verification are separate, non-transactional calls; nothing here rolls a
step back when a later one fails.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from marketplace.repositories.document_store import DocumentNotFoundError, DocumentStore
from marketplace.services.payment_provider import PaymentProvider

logger = logging.getLogger(__name__)

LINKAGE_PROJECTION = ("payment_provider_account_id", "payment_provider_verified")


class LinkageState(str, Enum):
    UNLINKED = "unlinked"
    LINKED = "linked"
    VERIFIED = "verified"


def linkage_state(account: Mapping) -> LinkageState:
    if account.get("payment_provider_verified"):
        return LinkageState.VERIFIED
    if account.get("payment_provider_account_id"):
        return LinkageState.LINKED
    return LinkageState.UNLINKED


@dataclass(frozen=True)
class VerificationRequired:
    """The provider still needs onboarding details; send the user to `url`."""

    url: str


@dataclass
class ProviderLinkage:
    store: DocumentStore
    payments: PaymentProvider

    def link(self, account: Mapping) -> str:
        """Return the account's provider id, creating and storing one when UNLINKED."""
        account_id = account.get("payment_provider_account_id")
        if account_id:
            return account_id
        email = account["email"]
        created = self.payments.create_account(email)
        try:
            # the id is written at most once, even if two requests race here
            self.store.update(
                {"email": email, "payment_provider_account_id": None},
                {"payment_provider_account_id": created.id},
            )
        except DocumentNotFoundError:
            current = self.store.find({"email": email}, LINKAGE_PROJECTION)
            if not current or not current[0].get("payment_provider_account_id"):
                raise
            logger.warning("Payment account %s for %s lost a linking race; keeping %s",
                           created.id, email, current[0]["payment_provider_account_id"])
            return current[0]["payment_provider_account_id"]
        logger.info("Linked %s to payment account %s", email, created.id)
        return created.id

    def ensure_chargeable(self, account: Mapping) -> Optional[VerificationRequired]:
        """
        Drive the account towards VERIFIED.

        Returns None once the account can take charges, or a
        VerificationRequired carrying the onboarding URL otherwise.
        """
        if linkage_state(account) is LinkageState.VERIFIED:
            return None
        email = account["email"]
        account_id = self.link(account)
        remote = self.payments.get_account(account_id)
        if not remote.charges_enabled:
            url = self.payments.get_onboarding_link(account_id)
            logger.info("Payment account %s for %s needs onboarding", account_id, email)
            return VerificationRequired(url=url)
        self.store.update({"email": email}, {"payment_provider_verified": True})
        logger.info("Payment account %s for %s verified", account_id, email)
        return None
