"""
Tag dictionary routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from app.db.session import get_db
from app.models.user import User
from app.schemas.tag import TagListResponse
from app.api.dependencies import get_current_user
from app.services.tag_service import list_tags

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=TagListResponse)
async def get_tags(
    search: Optional[str] = None,
    limit: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List tags sorted by name, optionally filtered by name prefix."""
    tags, total = list_tags(search=search, limit=limit, db=db)
    return {"data": tags, "total": total}
