"""
Pydantic schemas for Entry entity.
"""
import re
from pydantic import BaseModel, field_validator, field_serializer
from typing import List, Optional
from datetime import datetime
from app.core.config import settings
from app.core.time_window import format_timestamp
from app.schemas.tag import TagResponse

TAG_NAME_PATTERN = re.compile(r"^[a-z0-9]{1,20}$")
MIN_TASK_LENGTH = 3


def _check_mood(value: int) -> int:
    if value < 1 or value > 5:
        raise ValueError("Mood must be between 1 and 5")
    return value


def _check_task(value: str) -> str:
    value = value.strip()
    if len(value) < MIN_TASK_LENGTH:
        raise ValueError(f"Task must be at least {MIN_TASK_LENGTH} characters")
    return value


def _normalize_tags(value: List[str]) -> List[str]:
    if len(value) > settings.MAX_TAGS_PER_ENTRY:
        raise ValueError(f"Maximum {settings.MAX_TAGS_PER_ENTRY} tags allowed")
    tags = []
    for raw in value:
        name = raw.strip().lower()
        if not TAG_NAME_PATTERN.match(name):
            raise ValueError("Each tag must be lowercase, alphanumeric, and 1-20 characters")
        tags.append(name)
    return tags


class EntryCreate(BaseModel):
    """Schema for entry creation."""
    mood: int
    task: str
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    
    @field_validator("mood")
    @classmethod
    def validate_mood(cls, v):
        return _check_mood(v)
    
    @field_validator("task")
    @classmethod
    def validate_task(cls, v):
        return _check_task(v)
    
    @field_validator("notes")
    @classmethod
    def empty_notes_to_none(cls, v):
        return v or None
    
    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        """Normalize to lowercase; missing tags become an empty list."""
        return _normalize_tags(v or [])


class EntryUpdate(BaseModel):
    """Schema for entry update. Supplied tags replace the existing ones."""
    mood: Optional[int] = None
    task: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    
    @field_validator("mood")
    @classmethod
    def validate_mood(cls, v):
        # Only runs when the field is sent; an explicit null cannot clear it
        if v is None:
            raise ValueError("Mood cannot be null")
        return _check_mood(v)
    
    @field_validator("task")
    @classmethod
    def validate_task(cls, v):
        if v is None:
            raise ValueError("Task cannot be null")
        return _check_task(v)
    
    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return v if v is None else _normalize_tags(v)


class EntryResponse(BaseModel):
    """Schema for entry response with joined tags."""
    id: int
    user_id: int
    mood: int
    task: str
    notes: Optional[str] = None
    tags: List[TagResponse] = []
    created_at: datetime
    updated_at: datetime
    
    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return format_timestamp(value)
    
    class Config:
        from_attributes = True


class EntryListResponse(BaseModel):
    """Schema for entry history listing."""
    data: List[EntryResponse]
    total: int


class CooldownStatusResponse(BaseModel):
    """Anti-spam gate state for the current user."""
    can_create: bool
    retry_after: Optional[str] = None
    minutes_until_retry: int = 0
    last_entry_created_at: Optional[str] = None
