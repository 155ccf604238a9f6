"""Structured exception hierarchy for repofs.

Every failure raised by a storage backend, the credential store or the
backend factory is one of the exceptions below. Provider SDK exceptions are
wrapped at the backend boundary so callers only ever need to handle
``StorageError``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

__all__ = [
    "StatusCode",
    "StorageError",
    "InvalidArgumentError",
    "CredentialNotFoundError",
    "UnsupportedOperationError",
]


class StatusCode(Enum):
    """Failure category carried by every ``StorageError``."""

    INTERNAL = "internal"
    INVALID_ARG = "invalid_argument"
    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"


class StorageError(Exception):
    """Base exception for all storage errors.

    Provides structured error information for debugging.
    """

    code = StatusCode.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.message = message
        self.path = path
        self.details = details or {}
        self.suggestion = suggestion
        self.cause = cause

        if cause is not None:
            self.details.setdefault("cause", str(cause))
            self.details.setdefault("cause_type", type(cause).__name__)

        parts = [message]

        if self.details:
            detail_lines = [f"  {k}: {v}" for k, v in self.details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "path": self.path,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class InvalidArgumentError(StorageError):
    """Malformed path, URI or bucket name."""

    code = StatusCode.INVALID_ARG


class CredentialNotFoundError(StorageError):
    """No credential prefix matches a path.

    Raised by the credential store when a credential file is configured but
    none of its entries apply to the requested path.
    """

    code = StatusCode.NOT_FOUND

    def __init__(self, message: str, **kwargs: Any) -> None:
        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Add an entry for this path (or an empty-named default entry) "
                "to the file named by REPOFS_CLOUD_CREDENTIAL_PATH."
            )
        super().__init__(message, suggestion=suggestion, **kwargs)


class UnsupportedOperationError(StorageError):
    """Operation not offered by a backend, or backend not installed."""

    code = StatusCode.UNSUPPORTED
