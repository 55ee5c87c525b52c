# counselor_api/api/routes/counselor_routes.py
import logging
from datetime import timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core.errors import NotFoundError, ValidationFailedError
from counselor_api.data.database import get_db
from counselor_api.models.assignment_models import (
    CounselorAssignmentModel,
    CoverageGrantModel,
    CreateAssignmentRequest,
    CreateCoverageGrantRequest,
)
from counselor_api.models.database_models.user import User
from counselor_api.services.auth_services import get_current_admin, get_current_user_from_cookie
from counselor_api.services.database import counselor_database_services
from counselor_api.services.database.user_database_services import get_user_by_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Counselors"])


async def _require_users(db: AsyncSession, *user_ids: int) -> None:
    for user_id in user_ids:
        if await get_user_by_id(db, user_id) is None:
            raise NotFoundError(f"User {user_id} not found.")


@router.post("/assignments", response_model=CounselorAssignmentModel, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    assignment: CreateAssignmentRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Assigns a counselor to a member, ending the member's previous assignment in the organization."""
    if assignment.counselor_id == assignment.member_id:
        raise ValidationFailedError("A counselor cannot be assigned to themselves.")
    await _require_users(db, assignment.counselor_id, assignment.member_id)
    try:
        return await counselor_database_services.create_assignment(
            db,
            organization_id=assignment.organization_id,
            counselor_id=assignment.counselor_id,
            member_id=assignment.member_id,
            assigned_by=admin.id,
        )
    except SQLAlchemyError as e:
        logger.exception(f"Failed to create assignment: {e}")
        raise HTTPException(status_code=500, detail="Unable to create the assignment.")


@router.delete("/assignments/{assignment_id}", response_model=CounselorAssignmentModel)
async def end_assignment(
    assignment_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    assignment = await counselor_database_services.get_assignment(db, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment not found.")
    try:
        return await counselor_database_services.end_assignment(db, assignment)
    except SQLAlchemyError as e:
        logger.exception(f"Failed to end assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail="Unable to end the assignment.")


@router.get("/members")
async def list_members(
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    """Members the caller counsels: standing assignments and currently valid coverage grants."""
    assignments = await counselor_database_services.list_assigned_members(db, user.id, organization_id)
    grants = await counselor_database_services.list_valid_coverage_grants(db, user.id)
    return {
        "assignments": [CounselorAssignmentModel.model_validate(a).model_dump(by_alias=True) for a in assignments],
        "coverageGrants": [CoverageGrantModel.model_validate(g).model_dump(by_alias=True) for g in grants],
    }


@router.post("/coverage-grants", response_model=CoverageGrantModel, status_code=status.HTTP_201_CREATED)
async def create_coverage_grant(
    grant: CreateCoverageGrantRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    if grant.backup_counselor_id == grant.member_id:
        raise ValidationFailedError("A counselor cannot cover for themselves.")
    await _require_users(db, grant.backup_counselor_id, grant.member_id)
    expires_at = grant.expires_at
    if expires_at is not None and expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
    try:
        return await counselor_database_services.create_coverage_grant(
            db,
            backup_counselor_id=grant.backup_counselor_id,
            member_id=grant.member_id,
            organization_id=grant.organization_id,
            expires_at=expires_at,
            granted_by=admin.id,
        )
    except SQLAlchemyError as e:
        logger.exception(f"Failed to create coverage grant: {e}")
        raise HTTPException(status_code=500, detail="Unable to create the coverage grant.")


@router.delete("/coverage-grants/{grant_id}", response_model=CoverageGrantModel)
async def revoke_coverage_grant(
    grant_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    grant = await counselor_database_services.get_coverage_grant(db, grant_id)
    if grant is None:
        raise NotFoundError("Coverage grant not found.")
    try:
        return await counselor_database_services.revoke_coverage_grant(db, grant)
    except SQLAlchemyError as e:
        logger.exception(f"Failed to revoke coverage grant {grant_id}: {e}")
        raise HTTPException(status_code=500, detail="Unable to revoke the coverage grant.")
