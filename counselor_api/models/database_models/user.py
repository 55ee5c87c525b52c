# counselor_api/models/database_models/user.py
from sqlalchemy import Boolean, Column, DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import relationship

from counselor_api.data.database import Base, utcnow
from counselor_api.models.database_models.counsel_session import CounselSession
from counselor_api.models.database_models.user_subscription import UserSubscription


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(LargeBinary, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    counsel_sessions = relationship("CounselSession", back_populates="user")
    subscription = relationship("UserSubscription", back_populates="user", uselist=False)

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.username or self.email
