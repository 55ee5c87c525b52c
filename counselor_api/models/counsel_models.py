# counselor_api/models/counsel_models.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MessageRole = Literal["user", "assistant", "system"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ScriptureReference(CamelModel):
    book: str
    chapter: int
    verse_start: int
    verse_end: Optional[int] = None
    translation: str
    text: str = ""


class CrisisResource(CamelModel):
    name: str
    contact: str
    description: str


class CounselMessageModel(CamelModel):
    id: str
    session_id: Optional[str] = None
    role: MessageRole
    content: str
    scripture_references: List[ScriptureReference] = []
    timestamp: datetime


class CounselRequest(CamelModel):
    message: str = Field(..., min_length=1, max_length=4000)
    session_id: Optional[str] = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message must not be blank")
        return value


class CounselResponse(CamelModel):
    session_id: Optional[str] = None
    message: CounselMessageModel
    requires_clarification: bool = False
    is_crisis_detected: bool = False
    crisis_resources: Optional[List[CrisisResource]] = None
    is_grief_detected: bool = False
    grief_resources: Optional[List[CrisisResource]] = None


class CounselSessionSummary(CamelModel):
    id: str
    title: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class CounselSessionModel(CounselSessionSummary):
    user_id: Optional[int] = None
    messages: List[CounselMessageModel] = []
