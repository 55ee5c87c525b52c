# counselor_api/models/share_models.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from counselor_api.models.counsel_models import CamelModel, CounselSessionModel
from counselor_api.models.note_models import SessionNoteModel


class CreateShareRequest(CamelModel):
    session_id: str
    shared_with: Optional[str] = None
    allow_notes_access: bool = False
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=365)


class SessionShareModel(CamelModel):
    id: str
    session_id: str
    share_token: str
    shared_by: int
    shared_with: Optional[str] = None
    allow_notes_access: bool
    expires_at: Optional[datetime] = None
    created_at: datetime


class CreateShareResponse(CamelModel):
    share: SessionShareModel
    share_url: str


class SharedSessionModel(CounselSessionModel):
    notes: List[SessionNoteModel] = []


class ShareValidationResponse(CamelModel):
    session: SharedSessionModel
    can_view: bool
    can_add_notes: bool
    shared_by: int
    expires_at: Optional[datetime] = None


class AccessedShareModel(CamelModel):
    share_id: str
    share_token: str
    session_id: str
    session_title: str
    session_created_at: datetime
    owner_id: Optional[int] = None
    owner_name: str
    allow_notes_access: bool
    expires_at: Optional[datetime] = None
    last_accessed_at: datetime
