# counselor_api/models/database_models/counsel_session.py
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from counselor_api.data.database import Base, utcnow
from counselor_api.models.database_models.counsel_message import CounselMessage
from counselor_api.models.database_models.session_note import SessionNote

SESSION_STATUS_ACTIVE = "active"
SESSION_STATUS_COMPLETED = "completed"


class CounselSession(Base):
    __tablename__ = "counsel_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    title = Column(String(64), nullable=False)
    status = Column(String(16), nullable=False, default=SESSION_STATUS_ACTIVE)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="counsel_sessions")
    messages = relationship(
        "CounselMessage",
        back_populates="session",
        order_by="CounselMessage.timestamp",
    )
    notes = relationship(
        "SessionNote",
        back_populates="session",
        order_by="SessionNote.created_at",
    )
