"""Error taxonomy shared by the identity and project services."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    VALIDATION = "validation"


class ServiceError(RuntimeError):
    """Base class for failures the API layer translates into status codes."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    """Raised when an operation addresses a record that does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(ServiceError):
    """Raised when a write would violate a uniqueness constraint."""

    kind = ErrorKind.CONFLICT


class UnauthorizedError(ServiceError):
    """Raised for bad credentials or a missing/invalid access token."""

    kind = ErrorKind.UNAUTHORIZED


class ValidationError(ServiceError):
    """Raised when input is malformed."""

    kind = ErrorKind.VALIDATION


class ConfigurationError(RuntimeError):
    """Raised when the service is misconfigured."""


__all__ = [
    "ConfigurationError",
    "ConflictError",
    "ErrorKind",
    "NotFoundError",
    "ServiceError",
    "UnauthorizedError",
    "ValidationError",
]
