"""
Tag dictionary and entry-tag junction models.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from app.db.base import Base


class Tag(Base):
    """Global tag shared by all users; the name is unique system-wide."""
    __tablename__ = "tags"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(20), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)


class EntryTag(Base):
    """Junction table for Entry and Tag many-to-many relationship."""
    __tablename__ = "entry_tags"
    
    entry_id = Column(Integer, ForeignKey("entries.id"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id"), primary_key=True, index=True)
