"""
Domain exceptions raised by the service layer.

Routes let these propagate; the handlers registered in ``app.main``
turn them into JSON error responses.
"""
from typing import Dict, Optional
from sqlalchemy.exc import SQLAlchemyError

# Machine-readable error codes
VALIDATION_ERROR = "VALIDATION_ERROR"
ANTI_SPAM_VIOLATION = "ANTI_SPAM_VIOLATION"
NOT_FOUND = "NOT_FOUND"
INTERNAL_ERROR = "INTERNAL_ERROR"


class JournalError(Exception):
    """Base class for all journal domain errors."""
    code = INTERNAL_ERROR
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EntryValidationError(JournalError):
    """Malformed entry input, attributable to individual fields."""
    code = VALIDATION_ERROR
    
    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.details = details or {}


class AntiSpamViolation(JournalError):
    """The user already created an entry within the cooldown window."""
    code = ANTI_SPAM_VIOLATION
    
    def __init__(self, message: str, retry_after: str, current_entry_created_at: str):
        super().__init__(message)
        self.retry_after = retry_after
        self.current_entry_created_at = current_entry_created_at


class EntryNotFoundError(JournalError):
    """Entry does not exist, is soft-deleted, or belongs to another user."""
    code = NOT_FOUND


class StoreError(JournalError):
    """Persistence failure unrelated to business rules."""


class TagResolutionError(JournalError):
    """A tag name could not be mapped to an id after resolution (logic bug)."""


_UNIQUE_VIOLATION_MARKERS = (
    "UNIQUE constraint failed",  # SQLite
    "duplicate key value violates unique constraint",  # PostgreSQL
    "Duplicate entry",  # MySQL
)


def is_unique_violation(exc: SQLAlchemyError, marker: Optional[str] = None) -> bool:
    """
    Check whether a driver error is a uniqueness-constraint violation.

    When ``marker`` is given, the constraint (index or column name) must
    also appear in the driver message.
    """
    orig = getattr(exc, "orig", None)
    if orig is None:
        return False
    message = str(orig)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    unique = pgcode == "23505" or any(m in message for m in _UNIQUE_VIOLATION_MARKERS)
    if not unique:
        return False
    return marker is None or marker in message
