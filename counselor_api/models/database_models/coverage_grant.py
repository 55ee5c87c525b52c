# counselor_api/models/database_models/coverage_grant.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from counselor_api.data.database import Base, utcnow


class CounselorCoverageGrant(Base):
    __tablename__ = "counselor_coverage_grants"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String, nullable=True)
    backup_counselor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    granted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    expires_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
