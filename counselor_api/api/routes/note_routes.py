# counselor_api/api/routes/note_routes.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.data.database import get_db
from counselor_api.models.database_models.user import User
from counselor_api.models.note_models import SessionNoteCreate, SessionNoteModel, SessionNoteUpdate
from counselor_api.services import note_services
from counselor_api.services.auth_services import get_current_user_from_cookie

router = APIRouter(tags=["Notes"])


@router.get("/sessions/{session_id}/notes", response_model=List[SessionNoteModel])
async def list_notes(
    session_id: str,
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    """Private notes are filtered out server-side for coverage counselors."""
    return await note_services.list_notes(db, session_id, user, organization_id)


@router.post("/sessions/{session_id}/notes", response_model=SessionNoteModel, status_code=status.HTTP_201_CREATED)
async def create_note(
    session_id: str,
    note_data: SessionNoteCreate,
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    return await note_services.create_note(db, session_id, user, note_data, organization_id)


@router.patch("/notes/{note_id}", response_model=SessionNoteModel)
async def update_note(
    note_id: str,
    note_data: SessionNoteUpdate,
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    return await note_services.update_note(db, note_id, user, note_data, organization_id)


@router.delete("/notes/{note_id}")
async def delete_note(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    await note_services.delete_note(db, note_id, user)
    return {"success": True, "message": "Note deleted"}
