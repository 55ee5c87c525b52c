# counselor_api/models/assignment_models.py
from datetime import datetime
from typing import Optional

from counselor_api.models.counsel_models import CamelModel


class CreateAssignmentRequest(CamelModel):
    organization_id: str
    counselor_id: int
    member_id: int


class CounselorAssignmentModel(CamelModel):
    id: int
    organization_id: str
    counselor_id: int
    member_id: int
    status: str
    assigned_at: datetime
    ended_at: Optional[datetime] = None


class CreateCoverageGrantRequest(CamelModel):
    backup_counselor_id: int
    member_id: int
    organization_id: Optional[str] = None
    expires_at: Optional[datetime] = None


class CoverageGrantModel(CamelModel):
    id: int
    organization_id: Optional[str] = None
    backup_counselor_id: int
    member_id: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
