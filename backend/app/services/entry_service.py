"""
Entry service: creation pipeline and the entry read/update/delete paths.

Creation runs gate -> tag resolution -> entry insert -> tag associations,
each step committing on its own. A failure while inserting associations
leaves the entry in place (possibly without tags) and is only logged,
since the mood/task capture already succeeded.
"""
import logging
from datetime import datetime
from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import List, Optional, Tuple
from app.core.exceptions import (
    AntiSpamViolation, EntryNotFoundError, EntryValidationError, StoreError, is_unique_violation
)
from app.core.time_window import cooldown_bucket, parse_timestamp, utcnow, within_cooldown
from app.core.utils import unique_in_order
from app.models.entry import Entry, COOLDOWN_CONSTRAINT_MARKER
from app.models.tag import EntryTag, Tag
from app.schemas.entry import EntryCreate, EntryUpdate
from app.services.anti_spam_service import build_anti_spam_error, check_anti_spam, get_latest_active_entry
from app.services.tag_service import resolve_tag_ids

logger = logging.getLogger(__name__)


def _late_anti_spam_error(user_id: int, now: datetime, db: Session) -> AntiSpamViolation:
    """Anti-spam rejection for an insert refused by the cooldown index."""
    latest = get_latest_active_entry(user_id, db)
    if latest is not None and within_cooldown(latest.created_at, now):
        return build_anti_spam_error(latest.created_at)
    # The conflicting row is not visible as the latest entry; report the bucket start
    return build_anti_spam_error(cooldown_bucket(now))


def _insert_entry(user_id: int, entry_data: EntryCreate, now: datetime, db: Session) -> int:
    """Insert the entry row and return its id."""
    entry = Entry(
        user_id=user_id,
        mood=entry_data.mood,
        task=entry_data.task,
        notes=entry_data.notes,
        cooldown_bucket=cooldown_bucket(now),
        created_at=now,
        updated_at=now
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e, COOLDOWN_CONSTRAINT_MARKER):
            logger.info(f"Concurrent entry for user {user_id} rejected by cooldown index")
            raise _late_anti_spam_error(user_id, now, db) from e
        raise StoreError(f"Failed to create entry: {e}") from e
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to create entry: {e}") from e
    return entry.id


def _insert_entry_tags(entry_id: int, tag_ids: List[int], db: Session) -> None:
    """Associate tags with an entry; repeated ids are stored once."""
    db.add_all([EntryTag(entry_id=entry_id, tag_id=tag_id) for tag_id in unique_in_order(tag_ids)])
    db.commit()


def _replace_entry_tags(entry_id: int, tag_ids: List[int], db: Session) -> None:
    """Swap the entry's associations for ``tag_ids`` in one commit."""
    db.query(EntryTag).filter(EntryTag.entry_id == entry_id).delete(synchronize_session=False)
    _insert_entry_tags(entry_id, tag_ids, db)


def get_entry(entry_id: int, user_id: int, db: Session) -> Optional[Entry]:
    """Fetch an active entry of the user with its tags."""
    try:
        return db.query(Entry).options(
            selectinload(Entry.tags)
        ).filter(
            Entry.id == entry_id,
            Entry.user_id == user_id,
            Entry.deleted_at.is_(None)
        ).first()
    except SQLAlchemyError as e:
        raise StoreError(f"Failed to fetch entry: {e}") from e


def create_entry(
    user_id: int,
    entry_data: EntryCreate,
    db: Session,
    now: Optional[datetime] = None
) -> Entry:
    """
    Create a productivity entry.
    
    Steps:
    1. Anti-spam check against the user's latest active entry
    2. Resolve tag names to ids, creating new tags
    3. Insert the entry (the cooldown index may still reject it)
    4. Insert entry-tag associations (failure is logged, not raised)
    5. Fetch the entry with its tags
    
    Raises:
        AntiSpamViolation: from step 1 or step 3
        StoreError: persistence failure in steps 1-3 or 5
        TagResolutionError: unresolved tag name in step 2
    """
    now = now or utcnow()
    
    check_anti_spam(user_id, db, now)
    
    tag_ids = resolve_tag_ids(entry_data.tags or [], db)
    
    entry_id = _insert_entry(user_id, entry_data, now, db)
    
    if tag_ids:
        try:
            _insert_entry_tags(entry_id, tag_ids, db)
        except SQLAlchemyError:
            db.rollback()
            # Entry stays committed; accepted orphan
            logger.error(
                f"Failed to create entry-tag associations for entry {entry_id}",
                exc_info=True
            )
    
    entry = get_entry(entry_id, user_id, db)
    if entry is None:
        raise StoreError(f"Failed to fetch created entry {entry_id}")
    return entry


def list_entries(
    user_id: int,
    mood: Optional[int] = None,
    tags: Optional[List[str]] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
    db: Session = None
) -> Tuple[List[Entry], int]:
    """
    List the user's active entries, newest first.

    ``tags`` matches entries carrying any of the names; ``search`` is a
    case-insensitive substring match on task and notes.
    """
    query = db.query(Entry).filter(
        Entry.user_id == user_id,
        Entry.deleted_at.is_(None)
    )
    
    if mood is not None:
        query = query.filter(Entry.mood == mood)
    
    if tags:
        tagged = select(EntryTag.entry_id).join(Tag, Tag.id == EntryTag.tag_id).where(
            Tag.name.in_([t.strip().lower() for t in tags])
        )
        query = query.filter(Entry.id.in_(tagged))
    
    if date_from is not None:
        query = query.filter(Entry.created_at >= parse_timestamp(date_from))
    
    if date_to is not None:
        query = query.filter(Entry.created_at <= parse_timestamp(date_to))
    
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Entry.task.ilike(pattern), Entry.notes.ilike(pattern)))
    
    try:
        total = query.count()
        entries = query.options(selectinload(Entry.tags)).order_by(
            Entry.created_at.desc(), Entry.id.desc()
        ).all()
    except SQLAlchemyError as e:
        raise StoreError(f"Failed to fetch entries: {e}") from e
    
    return entries, total


def update_entry(
    entry_id: int,
    user_id: int,
    entry_data: EntryUpdate,
    db: Session,
    now: Optional[datetime] = None
) -> Entry:
    """
    Update mood, task, notes and/or tags of an entry.

    Supplied tags replace the current associations; a failure while
    replacing them is logged and the field updates are kept.
    """
    now = now or utcnow()
    entry = get_entry(entry_id, user_id, db)
    if entry is None:
        raise EntryNotFoundError("Entry not found")
    
    changes = entry_data.model_dump(exclude_unset=True)
    if not changes:
        raise EntryValidationError(
            "Validation failed",
            {"body": "At least one field must be provided"}
        )
    
    tag_ids = None
    if "tags" in changes:
        tag_ids = resolve_tag_ids(changes["tags"] or [], db)
    
    if changes.get("mood") is not None:
        entry.mood = changes["mood"]
    if changes.get("task") is not None:
        entry.task = changes["task"]
    if "notes" in changes:
        entry.notes = changes["notes"] or None
    entry.updated_at = now
    
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to update entry: {e}") from e
    
    if tag_ids is not None:
        try:
            _replace_entry_tags(entry_id, tag_ids, db)
        except SQLAlchemyError:
            db.rollback()
            logger.error(
                f"Failed to update entry-tag associations for entry {entry_id}",
                exc_info=True
            )
    
    db.expire_all()
    updated = get_entry(entry_id, user_id, db)
    if updated is None:
        raise StoreError(f"Failed to fetch updated entry {entry_id}")
    return updated


def delete_entry(entry_id: int, user_id: int, db: Session, now: Optional[datetime] = None) -> None:
    """Soft delete an entry; it stops counting for the anti-spam gate."""
    entry = get_entry(entry_id, user_id, db)
    if entry is None:
        raise EntryNotFoundError("Entry not found")
    
    entry.deleted_at = now or utcnow()
    # Frees the bucket in the cooldown index
    entry.cooldown_bucket = None
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to delete entry: {e}") from e
