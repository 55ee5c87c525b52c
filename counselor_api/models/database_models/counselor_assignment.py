# counselor_api/models/database_models/counselor_assignment.py
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text

from counselor_api.data.database import Base, utcnow

ASSIGNMENT_STATUS_ACTIVE = "active"
ASSIGNMENT_STATUS_INACTIVE = "inactive"


class CounselorAssignment(Base):
    __tablename__ = "counselor_assignments"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String, nullable=False, index=True)
    counselor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(16), nullable=False, default=ASSIGNMENT_STATUS_ACTIVE)
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_at = Column(DateTime, default=utcnow)
    ended_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            "uq_counselor_assignments_active_triple",
            "organization_id",
            "counselor_id",
            "member_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )
