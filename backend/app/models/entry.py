"""
Productivity entry model.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, SmallInteger, Text, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

# Name fragment used to recognise violations of the cooldown index
COOLDOWN_CONSTRAINT_MARKER = "cooldown_bucket"


class Entry(BaseModel):
    """One mood + task log record, soft-deleted via deleted_at."""
    __tablename__ = "entries"
    
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    mood = Column(SmallInteger, nullable=False)
    task = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    cooldown_bucket = Column(DateTime(timezone=True), nullable=True)  # created_at floored to the cooldown length; NULL once deleted
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    
    # Relationships
    user = relationship("User", back_populates="entries")
    tags = relationship(
        "Tag",
        secondary="entry_tags",
        order_by="Tag.name",
        viewonly=True
    )
    
    __table_args__ = (
        CheckConstraint("mood BETWEEN 1 AND 5", name="ck_entries_mood_range"),
        # One active entry per user per cooldown bucket; deleted rows hold NULL
        Index("uq_entries_user_cooldown_bucket", "user_id", "cooldown_bucket", unique=True),
        Index("ix_entries_user_created_at", "user_id", "created_at"),
    )
