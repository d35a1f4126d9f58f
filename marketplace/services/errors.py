"""Error taxonomy shared by the account services."""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AUTH = "auth"
    CONFLICT = "conflict"
    COLLABORATOR = "collaborator"


class ServiceError(Exception):
    """Base class for failures reported to callers of the account core."""

    kind = ErrorKind.COLLABORATOR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class AuthError(ServiceError):
    kind = ErrorKind.AUTH


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class CollaboratorError(ServiceError):
    kind = ErrorKind.COLLABORATOR
