# counselor_api/services/database/share_database_services.py
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import desc, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.data.database import utcnow
from counselor_api.models.database_models.counsel_session import CounselSession
from counselor_api.models.database_models.session_share import SessionShare, SessionShareAccess
from counselor_api.models.database_models.user import User

logger = logging.getLogger(__name__)


async def get_share_by_token(db: AsyncSession, share_token: str) -> Optional[SessionShare]:
    result = await db.execute(select(SessionShare).where(SessionShare.share_token == share_token))
    return result.scalars().first()


async def get_share(db: AsyncSession, share_id: str) -> Optional[SessionShare]:
    result = await db.execute(select(SessionShare).where(SessionShare.id == share_id))
    return result.scalars().first()


async def create_share(
    db: AsyncSession,
    session_id: str,
    share_token: str,
    shared_by: int,
    shared_with: Optional[str] = None,
    shared_with_user_id: Optional[int] = None,
    allow_notes_access: bool = False,
    expires_at: Optional[datetime] = None,
) -> SessionShare:
    share = SessionShare(
        session_id=session_id,
        share_token=share_token,
        shared_by=shared_by,
        shared_with=shared_with.strip().lower() if shared_with else None,
        shared_with_user_id=shared_with_user_id,
        allow_notes_access=allow_notes_access,
        expires_at=expires_at,
    )
    try:
        db.add(share)
        await db.commit()
        await db.refresh(share)
        return share
    except SQLAlchemyError:
        await db.rollback()
        raise


async def list_shares(db: AsyncSession, shared_by: int, session_id: Optional[str] = None) -> List[SessionShare]:
    query = select(SessionShare).where(SessionShare.shared_by == shared_by)
    if session_id:
        query = query.where(SessionShare.session_id == session_id)
    result = await db.execute(query.order_by(desc(SessionShare.created_at)))
    return result.scalars().all()


async def delete_share(db: AsyncSession, share: SessionShare) -> None:
    """Hard delete. Access rows stay behind and drop out of listings through the join."""
    try:
        await db.delete(share)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise


async def get_share_access(db: AsyncSession, share_id: str, user_id: int) -> Optional[SessionShareAccess]:
    result = await db.execute(
        select(SessionShareAccess).where(
            SessionShareAccess.share_id == share_id, SessionShareAccess.user_id == user_id
        )
    )
    return result.scalars().first()


async def record_share_access(db: AsyncSession, share_id: str, user_id: int) -> SessionShareAccess:
    """Inserts the viewer's access row on first visit and refreshes lastAccessedAt after that."""
    now = utcnow()
    try:
        access = await get_share_access(db, share_id, user_id)
        if access is None:
            access = SessionShareAccess(
                share_id=share_id, user_id=user_id, first_accessed_at=now, last_accessed_at=now
            )
            db.add(access)
        else:
            access.last_accessed_at = now
        await db.commit()
        return access
    except SQLAlchemyError:
        await db.rollback()
        raise


async def dismiss_share_access(db: AsyncSession, access: SessionShareAccess) -> SessionShareAccess:
    try:
        access.is_dismissed = True
        access.dismissed_at = utcnow()
        await db.commit()
        return access
    except SQLAlchemyError:
        await db.rollback()
        raise


async def list_accessed_shares(
    db: AsyncSession, user_id: int
) -> List[Tuple[SessionShareAccess, SessionShare, CounselSession, Optional[User]]]:
    """
    The viewer's "shared with me" inbox: shares they opened, not dismissed, still present
    and not expired. Revoked shares vanish because the inner join finds no share row.
    """
    now = utcnow()
    result = await db.execute(
        select(SessionShareAccess, SessionShare, CounselSession, User)
        .join(SessionShare, SessionShare.id == SessionShareAccess.share_id)
        .join(CounselSession, CounselSession.id == SessionShare.session_id)
        .outerjoin(User, User.id == CounselSession.user_id)
        .where(
            SessionShareAccess.user_id == user_id,
            SessionShareAccess.is_dismissed.is_(False),
            or_(SessionShare.expires_at.is_(None), SessionShare.expires_at >= now),
        )
        .order_by(desc(SessionShareAccess.last_accessed_at))
    )
    return result.all()



async def list_session_shares_for_user(db: AsyncSession, session_id: str, user_id: int) -> List[SessionShare]:
    """Shares of this session the user has opened that still exist and have not expired."""
    now = utcnow()
    result = await db.execute(
        select(SessionShare)
        .join(SessionShareAccess, SessionShareAccess.share_id == SessionShare.id)
        .where(
            SessionShare.session_id == session_id,
            SessionShareAccess.user_id == user_id,
            or_(SessionShare.expires_at.is_(None), SessionShare.expires_at >= now),
        )
    )
    return result.scalars().all()
