"""
Pydantic schemas for Tag entity.
"""
from pydantic import BaseModel, field_serializer
from typing import List
from datetime import datetime
from app.core.time_window import format_timestamp


class TagResponse(BaseModel):
    """Schema for tag response."""
    id: int
    name: str
    created_at: datetime
    
    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)
    
    class Config:
        from_attributes = True


class TagListResponse(BaseModel):
    """Schema for tag dictionary listing."""
    data: List[TagResponse]
    total: int
