"""
Productivity entry routes.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from app.db.session import get_db
from app.models.user import User
from app.schemas.entry import (
    EntryCreate, EntryUpdate, EntryResponse, EntryListResponse, CooldownStatusResponse
)
from app.schemas.error import AntiSpamErrorResponse, ErrorResponse, ValidationErrorResponse
from app.api.dependencies import get_current_user
from app.services import entry_service
from app.services.anti_spam_service import get_cooldown_status
from app.core.exceptions import EntryNotFoundError

router = APIRouter(prefix="/entries", tags=["entries"])


@router.post(
    "",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ValidationErrorResponse},
        409: {"model": AntiSpamErrorResponse},
    }
)
async def create_entry(
    entry_data: EntryCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new entry (one per cooldown window per user)."""
    entry = entry_service.create_entry(current_user.id, entry_data, db)
    response.headers["Location"] = f"/api/entries/{entry.id}"
    return entry


@router.get("", response_model=EntryListResponse)
async def list_entries(
    mood: Optional[int] = Query(None, ge=1, le=5),
    tag: Optional[List[str]] = Query(None),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the current user's entries, newest first."""
    entries, total = entry_service.list_entries(
        current_user.id,
        mood=mood,
        tags=tag,
        date_from=date_from,
        date_to=date_to,
        search=search,
        db=db
    )
    return {"data": entries, "total": total}


@router.get("/cooldown", response_model=CooldownStatusResponse)
async def get_entry_cooldown(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Whether a new entry can be created now, and if not, when."""
    return get_cooldown_status(current_user.id, db)


@router.get("/{entry_id}", response_model=EntryResponse, responses={404: {"model": ErrorResponse}})
async def get_entry(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single entry with its tags."""
    entry = entry_service.get_entry(entry_id, current_user.id, db)
    if entry is None:
        raise EntryNotFoundError("Entry not found")
    return entry


@router.patch(
    "/{entry_id}",
    response_model=EntryResponse,
    responses={400: {"model": ValidationErrorResponse}, 404: {"model": ErrorResponse}}
)
async def update_entry(
    entry_id: int,
    entry_data: EntryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update an entry; supplied tags replace the existing ones."""
    return entry_service.update_entry(entry_id, current_user.id, entry_data, db)


@router.delete("/{entry_id}", responses={404: {"model": ErrorResponse}})
async def delete_entry(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Soft delete an entry."""
    entry_service.delete_entry(entry_id, current_user.id, db)
    return {"message": "Entry deleted successfully", "id": entry_id}
