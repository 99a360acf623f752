"""
Anti-spam gate: at most one active entry per user per cooldown window.

The check compares the current time with the user's most recent
active entry. It is advisory; the unique index on
(user_id, cooldown_bucket) settles races between concurrent inserts.
"""
import logging
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from app.core.config import settings
from app.core.exceptions import AntiSpamViolation, StoreError
from app.core.time_window import (
    format_timestamp, minutes_until_retry, retry_after, utcnow, within_cooldown
)
from app.models.entry import Entry
from app.schemas.entry import CooldownStatusResponse

logger = logging.getLogger(__name__)


def get_latest_active_entry(user_id: int, db: Session) -> Optional[Entry]:
    """Most recently created non-deleted entry of the user."""
    try:
        return db.query(Entry).filter(
            Entry.user_id == user_id,
            Entry.deleted_at.is_(None)
        ).order_by(Entry.created_at.desc(), Entry.id.desc()).first()
    except SQLAlchemyError as e:
        raise StoreError(f"Failed to fetch latest entry: {e}") from e


def build_anti_spam_error(last_entry_created_at: datetime) -> AntiSpamViolation:
    """Rejection for a user whose last entry was created at ``last_entry_created_at``."""
    return AntiSpamViolation(
        message=f"You can only create one entry every {settings.ENTRY_COOLDOWN_MINUTES} minutes",
        retry_after=retry_after(last_entry_created_at),
        current_entry_created_at=format_timestamp(last_entry_created_at)
    )


def check_anti_spam(user_id: int, db: Session, now: Optional[datetime] = None) -> None:
    """
    Allow or reject a new entry for the user.

    Raises:
        AntiSpamViolation: the latest active entry is within the cooldown of ``now``.
    """
    now = now or utcnow()
    latest = get_latest_active_entry(user_id, db)
    if latest is None:
        return
    
    if within_cooldown(latest.created_at, now):
        error = build_anti_spam_error(latest.created_at)
        logger.info(f"Anti-spam rejection for user {user_id}; retry after {error.retry_after}")
        raise error


def get_cooldown_status(user_id: int, db: Session, now: Optional[datetime] = None) -> CooldownStatusResponse:
    """Report whether the user can create an entry now and, if not, when."""
    now = now or utcnow()
    latest = get_latest_active_entry(user_id, db)
    if latest is None:
        return CooldownStatusResponse(can_create=True)
    
    last_created = format_timestamp(latest.created_at)
    if not within_cooldown(latest.created_at, now):
        return CooldownStatusResponse(can_create=True, last_entry_created_at=last_created)
    
    retry_at = retry_after(latest.created_at)
    return CooldownStatusResponse(
        can_create=False,
        retry_after=retry_at,
        minutes_until_retry=minutes_until_retry(retry_at, now),
        last_entry_created_at=last_created
    )
