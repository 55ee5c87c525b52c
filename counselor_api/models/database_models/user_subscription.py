# counselor_api/models/database_models/user_subscription.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from counselor_api.data.database import Base, utcnow

ENTITLED_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing"})


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    status = Column(String(16), nullable=False, default="active")  # active | trialing | past_due | canceled
    current_period_end = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="subscription")
