"""
Payment provider adapter (Stripe Connect).

Only the calls the account core needs are wrapped: connected account creation
and lookup, onboarding links, and price creation. Stripe failures are re-raised
as PaymentProviderError so callers never see SDK exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Protocol

import stripe

from marketplace.core.config import get_settings
from marketplace.core.utils import absolute_url

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """A payment provider call failed."""


@dataclass(frozen=True)
class ProviderAccount:
    id: str
    charges_enabled: bool


class PaymentProvider(Protocol):
    def create_account(self, email: str) -> ProviderAccount:
        ...

    def get_account(self, account_id: str) -> ProviderAccount:
        ...

    def get_onboarding_link(self, account_id: str) -> str:
        ...

    def create_price(self, name: str, unit_amount: int) -> str:
        ...


class StripePaymentProvider:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        currency: Optional[str] = None,
        account_type: Optional[str] = None,
        refresh_url: Optional[str] = None,
        return_url: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.stripe_secret_key
        self.currency = currency or settings.stripe_currency
        self.account_type = account_type or settings.stripe_account_type
        self.refresh_url = refresh_url or absolute_url(settings.stripe_onboarding_refresh_path)
        self.return_url = return_url or absolute_url(settings.stripe_onboarding_return_path)

    def _key(self) -> str:
        if not self.api_key:
            raise PaymentProviderError("STRIPE_SECRET_KEY must be configured to reach the payment provider.")
        return self.api_key

    @staticmethod
    def _to_account(account) -> ProviderAccount:
        return ProviderAccount(id=account.id, charges_enabled=bool(getattr(account, "charges_enabled", False)))

    def create_account(self, email: str) -> ProviderAccount:
        try:
            account = stripe.Account.create(type=self.account_type, email=email, api_key=self._key())
        except stripe.StripeError as exc:
            logger.warning("Stripe account creation failed for %s: %s", email, exc)
            raise PaymentProviderError(f"Could not create payment account: {exc}") from exc
        return self._to_account(account)

    def get_account(self, account_id: str) -> ProviderAccount:
        try:
            account = stripe.Account.retrieve(account_id, api_key=self._key())
        except stripe.StripeError as exc:
            logger.warning("Stripe account lookup failed for %s: %s", account_id, exc)
            raise PaymentProviderError(f"Could not retrieve payment account: {exc}") from exc
        return self._to_account(account)

    def get_onboarding_link(self, account_id: str) -> str:
        try:
            link = stripe.AccountLink.create(
                account=account_id,
                refresh_url=self.refresh_url,
                return_url=self.return_url,
                type="account_onboarding",
                api_key=self._key(),
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe onboarding link failed for %s: %s", account_id, exc)
            raise PaymentProviderError(f"Could not create onboarding link: {exc}") from exc
        return link.url

    def create_price(self, name: str, unit_amount: int) -> str:
        try:
            price = stripe.Price.create(
                unit_amount=unit_amount,
                currency=self.currency,
                product_data={"name": name},
                api_key=self._key(),
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe price creation failed for %r: %s", name, exc)
            raise PaymentProviderError(f"Could not create price: {exc}") from exc
        return price.id


@lru_cache
def get_payment_provider() -> StripePaymentProvider:
    return StripePaymentProvider()
