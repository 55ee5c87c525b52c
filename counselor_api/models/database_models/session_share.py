# counselor_api/models/database_models/session_share.py
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from counselor_api.data.database import Base, utcnow
from counselor_api.models.database_models.counsel_session import CounselSession
from counselor_api.models.database_models.user import User


class SessionShare(Base):
    __tablename__ = "session_shares"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(36), ForeignKey("counsel_sessions.id"), nullable=False, index=True)
    share_token = Column(String(128), unique=True, index=True, nullable=False)
    shared_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    shared_with = Column(String, nullable=True)  # lower-cased recipient email
    shared_with_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    allow_notes_access = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    session = relationship("CounselSession")
    creator = relationship("User", foreign_keys=[shared_by])


class SessionShareAccess(Base):
    __tablename__ = "session_share_accesses"

    # No foreign key on share_id: access rows outlive a revoked (deleted) share and
    # drop out of listings through the inner join on session_shares.
    share_id = Column(String(36), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    first_accessed_at = Column(DateTime, default=utcnow)
    last_accessed_at = Column(DateTime, default=utcnow, nullable=False)
    is_dismissed = Column(Boolean, nullable=False, default=False)
    dismissed_at = Column(DateTime, nullable=True)
