"""Domain types and pure helpers for marketplace accounts."""
from __future__ import annotations

import math
import secrets
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Callable, Mapping, Optional

MIN_PASSWORD_LENGTH = 6

SCALAR_FIELDS = (
    "email",
    "password_hash",
    "location",
    "first_name",
    "last_name",
    "phone_number",
    "profile_image",
    "favorite_barber_email",
    "is_service_provider",
    "payment_provider_account_id",
    "payment_provider_verified",
)

# Attributes that must never leave the core.
SENSITIVE_FIELDS = frozenset({"password_hash"})

INSERT = "insert"
DELETE = "delete"
ARRAY_OPERATIONS = (INSERT, DELETE)


@dataclass(frozen=True)
class ArrayField:
    """
    Semantics of a multi-valued account attribute.

    `key_of` maps an element to the key used for matching on delete and for
    uniqueness. Set fields ignore re-inserting an existing key; log fields
    treat it as a conflict.
    """

    name: str
    key_of: Callable[[Any], str]
    is_set: bool = False


def _scalar_key(value: Any) -> str:
    return str(value)


def _record_key(attr: str) -> Callable[[Any], str]:
    def key_of(value: Any) -> str:
        if isinstance(value, Mapping):
            return str(value.get(attr) or "")
        return str(value)

    return key_of


ARRAY_FIELDS: dict[str, ArrayField] = {
    "blocked_emails": ArrayField("blocked_emails", _scalar_key, is_set=True),
    "payment_history": ArrayField("payment_history", _record_key("id")),
    "service_catalog": ArrayField("service_catalog", _record_key("price_id")),
}

ACCOUNT_FIELDS = SCALAR_FIELDS + tuple(ARRAY_FIELDS)


def filter_sensitive(document: Mapping[str, Any]) -> dict:
    """Return a shallow copy of an account without sensitive attributes."""
    return {key: value for key, value in document.items() if key not in SENSITIVE_FIELDS}


def is_number(value: Any) -> bool:
    """True for finite real numbers; bools, NaN and infinities are rejected."""
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


# Free-text profile attributes; anything but a string is rejected.
PROFILE_TEXT_FIELDS = ("first_name", "last_name", "profile_image", "location", "phone_number")


@dataclass(frozen=True)
class ServiceData:
    """Input for publishing a sellable service."""

    name: Optional[str] = None
    cost: Optional[float] = None
    duration: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | "ServiceData" | None) -> "ServiceData":
        if isinstance(data, ServiceData):
            return data
        data = data or {}
        return cls(name=data.get("name"), cost=data.get("cost"), duration=data.get("duration"))

    def problems(self) -> list[str]:
        """List what is missing or malformed; an empty list means valid."""
        found = []
        if not isinstance(self.name, str) or not self.name.strip():
            found.append("name is required")
        if self.cost is None:
            found.append("cost is required")
        elif not is_number(self.cost) or self.cost < 0:
            found.append("cost must be a non-negative number")
        if self.duration is None:
            found.append("duration is required")
        elif not is_number(self.duration) or self.duration <= 0:
            found.append("duration must be a positive number")
        return found

    def minor_units(self) -> int:
        # Truncates toward zero; fractions of a cent are dropped, never rounded.
        return int(self.cost * 100)


@dataclass(frozen=True)
class Service:
    name: str
    cost: float
    duration: float
    price_id: str

    def to_document(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    date: str
    amount: float
    service_names: list

    @classmethod
    def new(
        cls,
        provider_email: str,
        payer_email: str,
        service_names: list,
        amount: float,
        now: datetime | None = None,
    ) -> "PaymentRecord":
        moment = now or datetime.now(timezone.utc)
        date = moment.isoformat()
        record_id = f"payment_history:{provider_email}x{payer_email}x{date}x{secrets.token_hex(8)}"
        return cls(id=record_id, date=date, amount=amount, service_names=list(service_names))

    def to_document(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ProfileUpdate:
    """Partial update of the profile attributes a user may change."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image: Optional[str] = None
    location: Optional[str] = None
    is_service_provider: Optional[bool] = None
    phone_number: Optional[str] = None
    favorite_barber_email: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | "ProfileUpdate" | None) -> "ProfileUpdate":
        if isinstance(data, ProfileUpdate):
            return data
        data = data or {}
        allowed = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in allowed})

    def changes(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def problems(self) -> list[str]:
        found = [f"{name} must be text" for name in PROFILE_TEXT_FIELDS
                 if getattr(self, name) is not None and not isinstance(getattr(self, name), str)]
        if self.is_service_provider is not None and not isinstance(self.is_service_provider, bool):
            found.append("is_service_provider must be true or false")
        if self.favorite_barber_email is not None and not isinstance(self.favorite_barber_email, str):
            found.append("favorite_barber_email must be text")
        return found
