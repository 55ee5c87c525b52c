# counselor_api/services/database/counselor_database_services.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.data.database import utcnow
from counselor_api.models.database_models.counselor_assignment import (
    ASSIGNMENT_STATUS_ACTIVE,
    ASSIGNMENT_STATUS_INACTIVE,
    CounselorAssignment,
)
from counselor_api.models.database_models.coverage_grant import CounselorCoverageGrant
from counselor_api.services.access_control import SessionAccess, resolve_session_access

logger = logging.getLogger(__name__)


async def get_relationship_rows(db: AsyncSession, actor_id: int, member_id: int):
    """
    Active assignments and unrevoked coverage grants pairing actor (as counselor) with
    member. Loaded once per request and handed to the access-control functions.
    """
    assignments = await db.execute(
        select(CounselorAssignment).where(
            CounselorAssignment.counselor_id == actor_id,
            CounselorAssignment.member_id == member_id,
            CounselorAssignment.status == ASSIGNMENT_STATUS_ACTIVE,
        )
    )
    grants = await db.execute(
        select(CounselorCoverageGrant).where(
            CounselorCoverageGrant.backup_counselor_id == actor_id,
            CounselorCoverageGrant.member_id == member_id,
            CounselorCoverageGrant.revoked_at.is_(None),
        )
    )
    return assignments.scalars().all(), grants.scalars().all()


async def get_assignment(db: AsyncSession, assignment_id: int) -> Optional[CounselorAssignment]:
    result = await db.execute(select(CounselorAssignment).where(CounselorAssignment.id == assignment_id))
    return result.scalars().first()


async def create_assignment(
    db: AsyncSession, organization_id: str, counselor_id: int, member_id: int, assigned_by: Optional[int] = None
) -> CounselorAssignment:
    """
    Assigns counselor to member within an organization. Any active assignment for the member
    in the same organization is ended first, in the same transaction, so at most one active
    row exists per (organization, counselor, member).
    """
    now = utcnow()
    try:
        await db.execute(
            CounselorAssignment.__table__.update()
            .where(
                CounselorAssignment.organization_id == organization_id,
                CounselorAssignment.member_id == member_id,
                CounselorAssignment.status == ASSIGNMENT_STATUS_ACTIVE,
            )
            .values(status=ASSIGNMENT_STATUS_INACTIVE, ended_at=now)
        )
        assignment = CounselorAssignment(
            organization_id=organization_id,
            counselor_id=counselor_id,
            member_id=member_id,
            status=ASSIGNMENT_STATUS_ACTIVE,
            assigned_by=assigned_by,
            assigned_at=now,
        )
        db.add(assignment)
        await db.commit()
        await db.refresh(assignment)
        logger.info(f"Assigned counselor {counselor_id} to member {member_id} in organization {organization_id}")
        return assignment
    except SQLAlchemyError:
        await db.rollback()
        raise


async def end_assignment(db: AsyncSession, assignment: CounselorAssignment) -> CounselorAssignment:
    try:
        assignment.status = ASSIGNMENT_STATUS_INACTIVE
        assignment.ended_at = utcnow()
        await db.commit()
        await db.refresh(assignment)
        return assignment
    except SQLAlchemyError:
        await db.rollback()
        raise


async def list_assigned_members(
    db: AsyncSession, counselor_id: int, organization_id: Optional[str] = None
) -> List[CounselorAssignment]:
    query = select(CounselorAssignment).where(
        CounselorAssignment.counselor_id == counselor_id,
        CounselorAssignment.status == ASSIGNMENT_STATUS_ACTIVE,
    )
    if organization_id:
        query = query.where(CounselorAssignment.organization_id == organization_id)
    result = await db.execute(query.order_by(CounselorAssignment.assigned_at))
    return result.scalars().all()


async def get_coverage_grant(db: AsyncSession, grant_id: int) -> Optional[CounselorCoverageGrant]:
    result = await db.execute(select(CounselorCoverageGrant).where(CounselorCoverageGrant.id == grant_id))
    return result.scalars().first()


async def create_coverage_grant(
    db: AsyncSession,
    backup_counselor_id: int,
    member_id: int,
    organization_id: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    granted_by: Optional[int] = None,
) -> CounselorCoverageGrant:
    grant = CounselorCoverageGrant(
        organization_id=organization_id,
        backup_counselor_id=backup_counselor_id,
        member_id=member_id,
        expires_at=expires_at,
        granted_by=granted_by,
    )
    try:
        db.add(grant)
        await db.commit()
        await db.refresh(grant)
        return grant
    except SQLAlchemyError:
        await db.rollback()
        raise


async def revoke_coverage_grant(db: AsyncSession, grant: CounselorCoverageGrant) -> CounselorCoverageGrant:
    if grant.revoked_at is not None:
        return grant
    try:
        grant.revoked_at = utcnow()
        await db.commit()
        await db.refresh(grant)
        return grant
    except SQLAlchemyError:
        await db.rollback()
        raise


async def list_valid_coverage_grants(db: AsyncSession, backup_counselor_id: int) -> List[CounselorCoverageGrant]:
    now = utcnow()
    result = await db.execute(
        select(CounselorCoverageGrant).where(
            CounselorCoverageGrant.backup_counselor_id == backup_counselor_id,
            CounselorCoverageGrant.revoked_at.is_(None),
            or_(CounselorCoverageGrant.expires_at.is_(None), CounselorCoverageGrant.expires_at >= now),
        )
    )
    return result.scalars().all()


async def load_session_access(
    db: AsyncSession, actor_id: Optional[int], owner_id: Optional[int], organization_id: Optional[str] = None
) -> SessionAccess:
    """Resolves the actor's role once per request from the relationship tables."""
    if actor_id is None or owner_id is None or actor_id == owner_id:
        return resolve_session_access(actor_id, owner_id, [], [], utcnow(), organization_id)
    assignments, grants = await get_relationship_rows(db, actor_id, owner_id)
    return resolve_session_access(actor_id, owner_id, assignments, grants, utcnow(), organization_id)
