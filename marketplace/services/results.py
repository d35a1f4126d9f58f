"""Tagged results returned by every public account operation."""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from marketplace.repositories.document_store import DocumentNotFoundError, DuplicateDocumentError
from marketplace.services.errors import (
    CollaboratorError,
    ConflictError,
    ErrorKind,
    NotFoundError,
    ServiceError,
)
from marketplace.services.payment_provider import PaymentProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result:
    ok: bool
    value: Any = None
    error: Optional[ErrorKind] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: ServiceError) -> "Result":
        return cls(ok=False, error=exc.kind, reason=exc.message)


def translate(exc: Exception) -> ServiceError:
    """Map a collaborator exception onto the service error taxonomy."""
    if isinstance(exc, ServiceError):
        return exc
    if isinstance(exc, DocumentNotFoundError):
        return NotFoundError(str(exc))
    if isinstance(exc, DuplicateDocumentError):
        return ConflictError(str(exc))
    if isinstance(exc, PaymentProviderError):
        return CollaboratorError(str(exc))
    if isinstance(exc, SQLAlchemyError):
        return CollaboratorError("Database error")
    return CollaboratorError(f"Unexpected error: {exc}")


def service_boundary(func: Callable[..., Any]) -> Callable[..., Result]:
    """Run an operation and turn its outcome into a Result; nothing is raised past here."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Result:
        try:
            return Result.success(func(*args, **kwargs))
        except ServiceError as exc:
            logger.info("%s rejected (%s): %s", func.__name__, exc.kind.value, exc.message)
            return Result.failure(exc)
        except (DocumentNotFoundError, DuplicateDocumentError) as exc:
            error = translate(exc)
            logger.info("%s rejected (%s): %s", func.__name__, error.kind.value, error.message)
            return Result.failure(error)
        except Exception as exc:
            logger.exception("%s failed in a collaborator", func.__name__)
            return Result.failure(translate(exc))

    return wrapper
