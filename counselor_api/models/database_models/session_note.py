# counselor_api/models/database_models/session_note.py
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from counselor_api.data.database import Base, utcnow


class SessionNote(Base):
    __tablename__ = "session_notes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(36), ForeignKey("counsel_sessions.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    author_name = Column(String, nullable=False)
    author_role = Column(String(16), nullable=False)  # counselor | user | viewer
    content = Column(Text, nullable=False)
    is_private = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    session = relationship("CounselSession", back_populates="notes")
