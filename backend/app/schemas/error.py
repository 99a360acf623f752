"""
Pydantic schemas for error responses.
"""
from pydantic import BaseModel
from typing import Dict


class ErrorResponse(BaseModel):
    """Generic error body."""
    error: str
    code: str


class ValidationErrorResponse(ErrorResponse):
    """Validation error with per-field messages."""
    details: Dict[str, str] = {}


class AntiSpamDetails(BaseModel):
    current_entry_created_at: str


class AntiSpamErrorResponse(ErrorResponse):
    """Anti-spam rejection carrying the time the user may retry."""
    retry_after: str
    details: AntiSpamDetails
