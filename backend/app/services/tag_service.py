"""
Tag service: resolves free-text tag names to stable tag ids.

Tags form one global dictionary. Names are unique at the database
level, so concurrent requests introducing the same new name cannot
both win; the loser re-reads what the winner wrote instead of failing.
"""
import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Dict, List, Optional, Tuple
from app.core.config import settings
from app.core.exceptions import StoreError, TagResolutionError, is_unique_violation
from app.core.utils import unique_in_order
from app.models.tag import Tag

logger = logging.getLogger(__name__)


def fetch_tag_ids_by_name(names: List[str], db: Session) -> Dict[str, int]:
    """Map each existing tag name in ``names`` to its id."""
    try:
        rows = db.query(Tag.id, Tag.name).filter(Tag.name.in_(names)).all()
    except SQLAlchemyError as e:
        raise StoreError(f"Failed to fetch tags: {e}") from e
    return {name: tag_id for tag_id, name in rows}


def insert_tags(names: List[str], db: Session) -> Dict[str, int]:
    """
    Create tags for ``names`` in a single commit and return name -> id.

    IntegrityError is left to the caller so it can tell a lost race
    apart from other failures.
    """
    tags = [Tag(name=name) for name in names]
    db.add_all(tags)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return {tag.name: tag.id for tag in tags}


def _insert_remaining_after_conflict(missing: List[str], name_to_id: Dict[str, int], db: Session) -> None:
    """
    Create the names the rolled back batch still owed, in one attempt.

    A second conflict here is not an ordinary race and is not retried.
    """
    remaining = [name for name in missing if name not in name_to_id]
    if not remaining:
        return
    try:
        name_to_id.update(insert_tags(remaining, db))
    except SQLAlchemyError as e:
        raise StoreError(f"Failed to create tags after conflict: {e}") from e


def resolve_tag_ids(tag_names: List[str], db: Session) -> List[int]:
    """
    Resolve tag names to tag ids, creating the missing tags.

    The result has one id per input name, in input order, duplicates
    included. May create Tag rows, so callers must treat it as a write.

    Raises:
        StoreError: fetching or inserting tags failed for a reason other
            than a concurrent creation of the same name.
        TagResolutionError: a name is still unresolved after reconciliation.
    """
    if not tag_names:
        return []
    
    distinct_names = unique_in_order(tag_names)
    name_to_id = fetch_tag_ids_by_name(distinct_names, db)
    
    missing = [name for name in distinct_names if name not in name_to_id]
    if missing:
        try:
            name_to_id.update(insert_tags(missing, db))
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise StoreError(f"Failed to create tags: {e}") from e
            # Another request created some of these names first
            logger.info(f"Tag creation race on {missing}; re-fetching existing tags")
            name_to_id.update(fetch_tag_ids_by_name(missing, db))
            _insert_remaining_after_conflict(missing, name_to_id, db)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create tags: {e}") from e
    
    tag_ids = []
    for name in tag_names:
        tag_id = name_to_id.get(name)
        if tag_id is None:
            raise TagResolutionError(f"Failed to resolve tag: {name}")
        tag_ids.append(tag_id)
    return tag_ids


def list_tags(
    search: Optional[str] = None,
    limit: Optional[int] = None,
    db: Session = None
) -> Tuple[List[Tag], int]:
    """
    List the tag dictionary sorted by name.

    ``search`` is a prefix match; ``limit`` is clamped to
    1..TAG_LIST_MAX_LIMIT. Returns the page of tags and the total
    number of matching tags.
    """
    if limit is None:
        limit = settings.TAG_LIST_DEFAULT_LIMIT
    safe_limit = min(max(limit, 1), settings.TAG_LIST_MAX_LIMIT)
    
    query = db.query(Tag)
    if search and search.strip():
        prefix = search.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        query = query.filter(Tag.name.like(f"{prefix}%", escape="\\"))
    
    total = query.count()
    tags = query.order_by(Tag.name).limit(safe_limit).all()
    return tags, total
