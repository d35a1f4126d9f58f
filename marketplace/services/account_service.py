"""
Account and commerce use cases.

Every public method returns a Result; failures inside (validation, lookups,
database or payment provider errors) are reported through it instead of being
raised to the transport layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from marketplace.core.security import hash_password, verify_password
from marketplace.core.utils import is_valid_email, normalize_email
from marketplace.domain.accounts import (
    DELETE,
    INSERT,
    MIN_PASSWORD_LENGTH,
    PaymentRecord,
    ProfileUpdate,
    Service,
    ServiceData,
    filter_sensitive,
    is_number,
)
from marketplace.repositories.document_store import DocumentStore, SQLDocumentStore
from marketplace.services.errors import AuthError, NotFoundError, ValidationError
from marketplace.services.payment_provider import PaymentProvider, get_payment_provider
from marketplace.services.provider_linkage import (
    LINKAGE_PROJECTION,
    ProviderLinkage,
    VerificationRequired,
)
from marketplace.services.results import service_boundary
from marketplace.services.session_service import SessionStore, SQLSessionStore

logger = logging.getLogger(__name__)

BY_CREDENTIALS = "byCredentials"
BY_TOKEN = "byToken"

SEARCH_FIELDS = ("email", "first_name", "last_name")
SEARCH_PROJECTION = ("first_name", "last_name", "location", "profile_image", "is_service_provider")

MISSING = "Missing parameter(s)"


@dataclass
class LoginResult:
    account: dict
    method: str
    session_token: Optional[str] = None


@dataclass
class CreatedService:
    price_id: str


def _missing(*values: Any) -> bool:
    for value in values:
        if value is None:
            return True
        if isinstance(value, str) and not value.strip():
            return True
    return False


@dataclass
class AccountService:
    """Signup/login, profile, moderation, payment history and service catalog flows."""

    store: Optional[DocumentStore] = None
    sessions: Optional[SessionStore] = None
    payments: Optional[PaymentProvider] = None

    def __post_init__(self):
        if self.store is None:
            self.store = SQLDocumentStore()
        if self.sessions is None:
            self.sessions = SQLSessionStore()
        if self.payments is None:
            self.payments = get_payment_provider()
        self.linkage = ProviderLinkage(self.store, self.payments)

    # -------------------------------------- helpers --------------------------------------
    def _find_one(self, email: str, projection=None) -> dict:
        found = self.store.find({"email": email}, projection)
        if not found:
            raise NotFoundError(f"Cannot find account: {email}")
        return found[0]

    def _mutate_array(self, email: str, field: str, operation: str, value: Any) -> bool:
        return self.store.mutate_array({"email": email}, field, operation, value)

    # -------------------------------------- auth --------------------------------------
    @service_boundary
    def signup(self, email: Optional[str], password: Optional[str]) -> None:
        email = normalize_email(email)
        if _missing(email) or not password:
            raise ValidationError(MISSING)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        self.store.create(
            {
                "email": email,
                "password_hash": hash_password(password),
                "is_service_provider": False,
                "payment_provider_verified": False,
            }
        )
        logger.info("Account created for %s", email)

    @service_boundary
    def login(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        token: Optional[str] = None,
    ) -> LoginResult:
        email = normalize_email(email)
        has_credentials = bool(email) or bool(password)
        if token:
            if has_credentials:
                raise ValidationError("Use either credentials or a session token, not both")
            return self._login_by_token(token)
        if not email or not password:
            raise ValidationError(MISSING)
        return self._login_by_credentials(email, password)

    def _login_by_credentials(self, email: str, password: str) -> LoginResult:
        account = self._find_one(email)
        if not verify_password(password, account.get("password_hash")):
            logger.warning("Rejected password for %s", email)
            raise AuthError("Password is incorrect")
        session_token = self.sessions.create(email)
        return LoginResult(account=filter_sensitive(account), method=BY_CREDENTIALS, session_token=session_token)

    def _login_by_token(self, token: str) -> LoginResult:
        email = self.sessions.resolve(token)
        if not email:
            logger.warning("Rejected unknown or expired session token")
            raise AuthError("Invalid session token")
        account = self._find_one(email)
        return LoginResult(account=filter_sensitive(account), method=BY_TOKEN)

    @service_boundary
    def signout(self, token: Optional[str]) -> None:
        if _missing(token):
            raise ValidationError(MISSING)
        self.sessions.delete(token)

    @service_boundary
    def reset_password(self, email: Optional[str], old_password: Optional[str], new_password: Optional[str]) -> None:
        email = normalize_email(email)
        if _missing(email) or not old_password or not new_password:
            raise ValidationError(MISSING)
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        account = self._find_one(email, ("password_hash",))
        if not verify_password(old_password, account.get("password_hash")):
            logger.warning("Rejected password reset for %s", email)
            raise AuthError("Password is incorrect")
        self.store.update({"email": email}, {"password_hash": hash_password(new_password)})
        logger.info("Password changed for %s", email)

    # -------------------------------------- profile --------------------------------------
    @service_boundary
    def update_location(self, email: Optional[str], location: Optional[str]) -> None:
        email = normalize_email(email)
        if _missing(email, location):
            raise ValidationError(MISSING)
        if not isinstance(location, str):
            raise ValidationError("location must be text")
        self.store.update({"email": email}, {"location": location})

    @service_boundary
    def update_profile(self, email: Optional[str], update: Mapping[str, Any] | ProfileUpdate | None) -> dict:
        email = normalize_email(email)
        if _missing(email) or update is None:
            raise ValidationError(MISSING)
        if not isinstance(update, (Mapping, ProfileUpdate)):
            raise ValidationError("Profile update must be a mapping of fields")
        return self._update_profile(email, ProfileUpdate.from_mapping(update))

    def _update_profile(self, email: str, update: ProfileUpdate) -> dict:
        changes = update.changes()
        if not changes:
            raise ValidationError("Nothing to update")
        problems = update.problems()
        if problems:
            raise ValidationError("; ".join(problems))
        if "favorite_barber_email" in changes:
            favorite = normalize_email(changes["favorite_barber_email"])
            if not is_valid_email(favorite):
                raise ValidationError("Favorite barber must be a valid email")
            changes["favorite_barber_email"] = favorite
        self.store.update({"email": email}, changes)
        return filter_sensitive(self._find_one(email))

    @service_boundary
    def set_favorite_barber(self, email: Optional[str], barber_email: Optional[str]) -> dict:
        email = normalize_email(email)
        if _missing(email, barber_email):
            raise ValidationError(MISSING)
        if not is_valid_email(barber_email):
            raise ValidationError("Favorite barber must be a valid email")
        return self._update_profile(email, ProfileUpdate(favorite_barber_email=barber_email))

    @service_boundary
    def search_accounts(self, query: Optional[str]) -> list[dict]:
        if _missing(query):
            raise ValidationError(MISSING)
        if not isinstance(query, str):
            raise ValidationError("query must be text")
        found = self.store.search(query, SEARCH_FIELDS, SEARCH_PROJECTION)
        return [filter_sensitive(doc) for doc in found]

    # -------------------------------------- moderation --------------------------------------
    @service_boundary
    def get_blocked_users(self, email: Optional[str]) -> list[str]:
        email = normalize_email(email)
        if _missing(email):
            raise ValidationError(MISSING)
        return self._find_one(email, ("blocked_emails",))["blocked_emails"]

    @service_boundary
    def block_user(self, email: Optional[str], blocked_email: Optional[str]) -> None:
        email, blocked_email = normalize_email(email), normalize_email(blocked_email)
        if _missing(email, blocked_email):
            raise ValidationError(MISSING)
        self._mutate_array(email, "blocked_emails", INSERT, blocked_email)

    @service_boundary
    def unblock_user(self, email: Optional[str], unblocked_email: Optional[str]) -> None:
        email, unblocked_email = normalize_email(email), normalize_email(unblocked_email)
        if _missing(email, unblocked_email):
            raise ValidationError(MISSING)
        self._mutate_array(email, "blocked_emails", DELETE, unblocked_email)

    # -------------------------------------- payment history --------------------------------------
    @service_boundary
    def get_payment_history(self, email: Optional[str]) -> list[dict]:
        email = normalize_email(email)
        if _missing(email):
            raise ValidationError(MISSING)
        return self._find_one(email, ("payment_history",))["payment_history"]

    @service_boundary
    def add_to_payment_history(
        self,
        provider_email: Optional[str],
        payer_email: Optional[str],
        service_names: Optional[list],
        amount: Optional[float],
    ) -> dict:
        provider_email, payer_email = normalize_email(provider_email), normalize_email(payer_email)
        if _missing(provider_email, payer_email, amount) or not service_names:
            raise ValidationError(MISSING)
        if not isinstance(service_names, (list, tuple)):
            raise ValidationError("service_names must be a list")
        if not is_number(amount) or amount < 0:
            raise ValidationError("amount must be a non-negative number")
        record = PaymentRecord.new(provider_email, payer_email, list(service_names), amount)
        self._mutate_array(payer_email, "payment_history", INSERT, record.to_document())
        return record.to_document()

    # -------------------------------------- services --------------------------------------
    @staticmethod
    def _service_data(service_data: Any) -> ServiceData:
        if service_data is None:
            raise ValidationError(MISSING)
        if not isinstance(service_data, (Mapping, ServiceData)):
            raise ValidationError("Service data must be a mapping with name, cost and duration")
        data = ServiceData.from_mapping(service_data)
        problems = data.problems()
        if problems:
            raise ValidationError(f"{MISSING}: {'; '.join(problems)}")
        return data

    @service_boundary
    def get_services(self, email: Optional[str]) -> list[dict]:
        email = normalize_email(email)
        if _missing(email):
            raise ValidationError(MISSING)
        return self._find_one(email, ("service_catalog",))["service_catalog"]

    @service_boundary
    def create_service(self, service_data: Any, email: Optional[str]) -> CreatedService | VerificationRequired:
        email = normalize_email(email)
        data = self._service_data(service_data)
        if _missing(email):
            raise ValidationError(MISSING)
        return self._create_service(data, email)

    def _create_service(self, data: ServiceData, email: str) -> CreatedService | VerificationRequired:
        account = self._find_one(email, LINKAGE_PROJECTION)
        pending = self.linkage.ensure_chargeable(account)
        if pending is not None:
            return pending

        name = data.name.strip()
        price_id = self.payments.create_price(name, data.minor_units())
        service = Service(name=name, cost=data.cost, duration=data.duration, price_id=price_id)
        try:
            self._mutate_array(email, "service_catalog", INSERT, service.to_document())
        except Exception:
            # No compensation: the provider keeps an orphaned price.
            logger.error("Price %s for %s was created but not added to the catalog", price_id, email)
            raise
        logger.info("Service %r published for %s with price %s", name, email, price_id)
        return CreatedService(price_id=price_id)

    @service_boundary
    def delete_service(self, email: Optional[str], price_id: Optional[str]) -> None:
        email = normalize_email(email)
        if _missing(email, price_id):
            raise ValidationError(MISSING)
        self._mutate_array(email, "service_catalog", DELETE, price_id)

    @service_boundary
    def update_service(
        self,
        email: Optional[str],
        price_id: Optional[str],
        new_data: Any,
    ) -> CreatedService | VerificationRequired:
        """
        Replace a service by deleting it and publishing `new_data` as a new one.

        The input is validated before anything is deleted. Once the delete has
        happened, a failure while publishing leaves the account without the
        service; it is not restored.
        """
        email = normalize_email(email)
        if _missing(email, price_id):
            raise ValidationError(MISSING)
        data = self._service_data(new_data)
        self._mutate_array(email, "service_catalog", DELETE, price_id)
        return self._create_service(data, email)
