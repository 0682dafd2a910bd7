"""
Error taxonomy for the festival store.

- StoreUnavailable: connectivity/credential failure, usually transient
- WriteFailed: any other failure inside an import transaction
- DetectionDegraded: one duplicate-detection pass failed (logged, never raised
  out of detect())
"""

import sqlite3
from typing import Optional

# Substrings of driver messages that indicate the store itself is unreachable.
# SQLite messages first; the Postgres-style ones come from hosted deployments.
UNAVAILABLE_MARKERS = (
    "unable to open database file",
    "database is locked",
    "disk i/o error",
    "tenant or user not found",
    "connection refused",
    "could not connect to server",
)


class FestivalStoreError(Exception):
    """Base class for festival store failures."""

    code = "STORE_ERROR"
    retryable = False

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class StoreUnavailable(FestivalStoreError):
    """The database could not be reached or refused the credentials."""

    code = "STORE_UNAVAILABLE"
    retryable = True


class WriteFailed(FestivalStoreError):
    """A transactional write failed and was rolled back."""

    code = "WRITE_FAILED"


class DetectionDegraded(FestivalStoreError):
    """A single entity-type query inside duplicate detection failed."""

    code = "DETECTION_DEGRADED"


def is_unavailable(exc: BaseException) -> bool:
    """True if the exception looks like a connectivity failure."""
    message = str(exc).lower()
    return any(marker in message for marker in UNAVAILABLE_MARKERS)


def classify_store_error(exc: BaseException) -> FestivalStoreError:
    """Map a raw driver exception onto the taxonomy."""
    if isinstance(exc, FestivalStoreError):
        return exc
    if isinstance(exc, sqlite3.OperationalError) and is_unavailable(exc):
        return StoreUnavailable(
            "Database connection failed. Check that the database is reachable "
            "and the credentials are correct.",
            cause=exc,
        )
    if is_unavailable(exc):
        return StoreUnavailable(str(exc), cause=exc)
    return WriteFailed(str(exc) or exc.__class__.__name__, cause=exc)
