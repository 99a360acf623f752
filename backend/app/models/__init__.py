"""Models package - Import all models for SQLAlchemy registration."""
from app.models.user import User
from app.models.entry import Entry
from app.models.tag import Tag, EntryTag

__all__ = [
    "User",
    "Entry",
    "Tag",
    "EntryTag",
]
