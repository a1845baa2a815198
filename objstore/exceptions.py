"""Custom exception hierarchy for objstore."""

from __future__ import annotations

import errno
from typing import Any


class StorageServiceError(Exception):
    """Base exception for all objstore-specific errors."""

    code: str = "StorageServiceError"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(StorageServiceError):
    """Raised when configuration is invalid or missing."""
    code = "ConfigurationError"


class ValidationError(ConfigurationError):
    """Raised when a storage config does not match the schema."""
    code = "ValidationError"


class MissingBucketError(StorageServiceError):
    """Raised when no bucket is bound to the service and none was supplied."""
    code = "MissingBucket"


class ReadOnlyError(StorageServiceError):
    """Raised when a write is attempted on a readonly service."""
    code = "ReadOnly"


class InvalidKeyError(StorageServiceError):
    """Raised when a key resolves outside the local storage root."""
    code = "InvalidKey"


class TransientTimeoutError(StorageServiceError):
    """Raised when the backend timed out and the request may be retried."""
    code = "RequestTimeout"


class MaxRetriesReached(StorageServiceError):
    """Raised when putObject keeps timing out past the configured limit."""
    code = "MaxRetriesReached"


TIMEOUT_ERROR_CODES = frozenset({"RequestTimeout"})


def error_code(exc: BaseException) -> str | None:
    """Return the comparable error code of a backend error.

    botocore ``ClientError`` exposes it under ``response["Error"]["Code"]``
    (``NoSuchKey``, ``RequestTimeout``...), filesystem errors carry an errno
    (``ENOENT``) and our own errors have a ``code`` class attribute.
    """
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        code = response.get("Error", {}).get("Code")
        if code:
            return str(code)
    if isinstance(exc, OSError) and exc.errno is not None:
        return errno.errorcode.get(exc.errno)
    code = getattr(exc, "code", None)
    return code if isinstance(code, str) else None


def is_transient_timeout(exc: BaseException) -> bool:
    return error_code(exc) in TIMEOUT_ERROR_CODES


__all__ = [
    "StorageServiceError",
    "ConfigurationError",
    "ValidationError",
    "MissingBucketError",
    "ReadOnlyError",
    "InvalidKeyError",
    "TransientTimeoutError",
    "MaxRetriesReached",
    "TIMEOUT_ERROR_CODES",
    "error_code",
    "is_transient_timeout",
]
