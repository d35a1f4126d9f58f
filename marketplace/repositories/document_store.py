"""
Account document store backed by SQLAlchemy.

Accounts are exposed as plain dicts (documents). Scalar attributes live in the
`accounts` table; every element of a multi-valued attribute is its own row in
`account_array_items`, so inserting or removing one element is a single
statement and concurrent writers on the same account never overwrite each
other's elements.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Protocol

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError

from marketplace.db.models import Account, AccountArrayItem
from marketplace.db.session import get_session
from marketplace.domain.accounts import (
    ACCOUNT_FIELDS,
    ARRAY_FIELDS,
    ARRAY_OPERATIONS,
    INSERT,
    SCALAR_FIELDS,
)

logger = logging.getLogger(__name__)


class DocumentNotFoundError(LookupError):
    """No account (or array element) matched the filter."""


class DuplicateDocumentError(Exception):
    """A unique key (account email or array element key) already exists."""


class DocumentStore(Protocol):
    def find(self, filter: Mapping[str, Any], projection: Optional[Iterable[str]] = None) -> list[dict]:
        ...

    def search(self, query: str, fields: Iterable[str], projection: Optional[Iterable[str]] = None) -> list[dict]:
        ...

    def create(self, document: Mapping[str, Any]) -> None:
        ...

    def update(self, filter: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        ...

    def mutate_array(self, filter: Mapping[str, Any], field: str, operation: str, value: Any) -> bool:
        """Insert or delete one element of an array field on exactly one account."""
        ...


def _conditions(filter: Mapping[str, Any]) -> list:
    if not filter:
        raise ValueError("A filter is required")
    conditions = []
    for key, value in filter.items():
        if key not in SCALAR_FIELDS:
            raise ValueError(f"Unsupported filter field: {key}")
        conditions.append(getattr(Account, key) == value)
    return conditions


class SQLDocumentStore:
    """find/create/update/mutate_array helpers over the account tables."""

    # -------------------------- reads --------------------------
    def find(self, filter: Mapping[str, Any], projection: Optional[Iterable[str]] = None) -> list[dict]:
        """Return matching accounts, restricted to `projection` when given (email is always kept)."""
        wanted = self._projection(projection)
        with get_session() as session:
            accounts = session.execute(select(Account).where(*_conditions(filter))).scalars().all()
            return self._documents(session, accounts, wanted)

    def search(self, query: str, fields: Iterable[str], projection: Optional[Iterable[str]] = None) -> list[dict]:
        """Case-insensitive exact match of `query` against any of `fields`."""
        needle = (query or "").strip().lower()
        columns = [getattr(Account, name) for name in fields if name in SCALAR_FIELDS]
        if not needle or not columns:
            return []
        wanted = self._projection(projection)
        with get_session() as session:
            stmt = select(Account).where(or_(*[func.lower(col) == needle for col in columns])).order_by(Account.email)
            accounts = session.execute(stmt).scalars().all()
            return self._documents(session, accounts, wanted)

    # -------------------------- writes --------------------------
    def create(self, document: Mapping[str, Any]) -> None:
        email = document.get("email")
        if not email:
            raise ValueError("Account documents require an email")
        scalars = {key: value for key, value in document.items() if key in SCALAR_FIELDS}
        now = datetime.now(timezone.utc)
        with get_session() as session:
            if session.get(Account, email) is not None:
                raise DuplicateDocumentError(f"Account already exists: {email}")
            session.add(Account(created_at=now, updated_at=now, **scalars))
            for name, array_field in ARRAY_FIELDS.items():
                for value in document.get(name) or []:
                    session.add(AccountArrayItem(account_email=email, field=name, item_key=array_field.key_of(value), value=value))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateDocumentError(f"Account already exists: {email}") from exc

    def update(self, filter: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        """Set scalar attributes on every matching account; returns the number of accounts updated."""
        changes = dict(values)
        if "email" in changes:
            raise ValueError("email is immutable")
        unknown = set(changes) - set(SCALAR_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported update field(s): {', '.join(sorted(unknown))}")
        if not changes:
            raise ValueError("Nothing to update")
        changes["updated_at"] = datetime.now(timezone.utc)
        with get_session() as session:
            result = session.execute(update(Account).where(*_conditions(filter)).values(**changes))
            count = result.rowcount
            session.commit()
        if not count:
            raise DocumentNotFoundError(f"No account matches {dict(filter)}")
        return count

    def mutate_array(self, filter: Mapping[str, Any], field: str, operation: str, value: Any) -> bool:
        """
        Insert `value` into, or delete the element matching `value` from, the
        named array of exactly one account.

        Returns False only when inserting an element that a set-like field
        already holds.
        """
        array_field = ARRAY_FIELDS.get(field)
        if array_field is None:
            raise ValueError(f"Unknown array field: {field}")
        if operation not in ARRAY_OPERATIONS:
            raise ValueError(f"Unknown array operation: {operation}")
        key = array_field.key_of(value)
        if not key:
            raise ValueError(f"Element for {field} has no key")

        with get_session() as session:
            email = self._match_one(session, filter)
            if operation == INSERT:
                session.add(AccountArrayItem(account_email=email, field=field, item_key=key, value=value))
                try:
                    session.commit()
                except IntegrityError as exc:
                    session.rollback()
                    if array_field.is_set:
                        logger.debug("%s already holds %s for %s", field, key, email)
                        return False
                    raise DuplicateDocumentError(f"{field} already holds {key}") from exc
                return True

            stmt = delete(AccountArrayItem).where(
                AccountArrayItem.account_email == email,
                AccountArrayItem.field == field,
                AccountArrayItem.item_key == key,
            )
            removed = session.execute(stmt).rowcount
            session.commit()
        if not removed:
            raise DocumentNotFoundError(f"No element {key} in {field} for {email}")
        return True

    # -------------------------- helpers --------------------------
    @staticmethod
    def _projection(projection: Optional[Iterable[str]]) -> tuple[str, ...]:
        if projection is None:
            return ACCOUNT_FIELDS
        wanted = ["email"] + [name for name in projection if name != "email"]
        unknown = set(wanted) - set(ACCOUNT_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported projection field(s): {', '.join(sorted(unknown))}")
        return tuple(wanted)

    @staticmethod
    def _match_one(session, filter: Mapping[str, Any]) -> str:
        emails = session.execute(select(Account.email).where(*_conditions(filter))).scalars().all()
        if not emails:
            raise DocumentNotFoundError(f"No account matches {dict(filter)}")
        if len(emails) > 1:
            raise ValueError(f"Filter {dict(filter)} matches more than one account")
        return emails[0]

    @staticmethod
    def _documents(session, accounts: list[Account], wanted: tuple[str, ...]) -> list[dict]:
        arrays = [name for name in wanted if name in ARRAY_FIELDS]
        elements: dict[tuple[str, str], list] = {}
        if accounts and arrays:
            stmt = (
                select(AccountArrayItem)
                .where(
                    AccountArrayItem.account_email.in_([a.email for a in accounts]),
                    AccountArrayItem.field.in_(arrays),
                )
                .order_by(AccountArrayItem.id)
            )
            for item in session.execute(stmt).scalars():
                elements.setdefault((item.account_email, item.field), []).append(item.value)

        documents = []
        for account in accounts:
            doc = {}
            for name in wanted:
                if name in ARRAY_FIELDS:
                    doc[name] = elements.get((account.email, name), [])
                else:
                    doc[name] = getattr(account, name)
            documents.append(doc)
        return documents
