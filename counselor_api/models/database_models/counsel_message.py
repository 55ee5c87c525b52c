# counselor_api/models/database_models/counsel_message.py
import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from counselor_api.data.database import Base, utcnow


class CounselMessage(Base):
    __tablename__ = "counsel_messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(36), ForeignKey("counsel_sessions.id"), nullable=False, index=True)
    role = Column(String(16), nullable=False)  # user | assistant | system
    content = Column(Text, nullable=False)
    scripture_references = Column(JSON, nullable=False, default=list)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)

    session = relationship("CounselSession", back_populates="messages")
