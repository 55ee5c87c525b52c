# counselor_api/models/note_models.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from counselor_api.models.counsel_models import CamelModel

NoteAuthorRole = Literal["counselor", "user", "viewer"]


class SessionNoteCreate(CamelModel):
    content: str = Field(..., min_length=1, max_length=10000)
    is_private: bool = False


class SessionNoteUpdate(CamelModel):
    content: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    is_private: Optional[bool] = None


class SessionNoteModel(CamelModel):
    id: str
    session_id: str
    author_id: int
    author_name: str
    author_role: NoteAuthorRole
    content: str
    is_private: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
