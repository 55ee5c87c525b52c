# counselor_api/services/database/counsel_database_services.py
import logging
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from counselor_api.data.database import utcnow
from counselor_api.models.counsel_models import ScriptureReference
from counselor_api.models.database_models.counsel_message import CounselMessage
from counselor_api.models.database_models.counsel_session import (
    SESSION_STATUS_ACTIVE,
    SESSION_STATUS_COMPLETED,
    CounselSession,
)

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50
TITLE_ELLIPSIS = "…"
ASSISTANT_ROLE = "assistant"


def derive_title(first_message: str) -> str:
    """First 50 characters of the opening message, with an ellipsis when cut short."""
    if len(first_message) <= TITLE_MAX_LENGTH:
        return first_message
    return first_message[:TITLE_MAX_LENGTH] + TITLE_ELLIPSIS


async def get_session(db: AsyncSession, session_id: str, with_notes: bool = False) -> Optional[CounselSession]:
    """Loads a session with its messages ordered by timestamp, or None."""
    options = [selectinload(CounselSession.messages)]
    if with_notes:
        options.append(selectinload(CounselSession.notes))
    result = await db.execute(
        select(CounselSession).options(*options).where(CounselSession.id == session_id)
    )
    return result.scalars().first()


async def get_or_create_session(
    db: AsyncSession, session_id: Optional[str], first_message: str, user_id: Optional[int] = None
) -> CounselSession:
    """
    Returns the session for session_id, or a new active session when no id is given or it
    does not resolve. New sessions take their title from the first inbound message.
    """
    if session_id:
        session = await get_session(db, session_id)
        if session is not None:
            return session
        logger.info(f"Session {session_id} not found; starting a new session")

    try:
        session = CounselSession(
            user_id=user_id,
            title=derive_title(first_message),
            status=SESSION_STATUS_ACTIVE,
        )
        session.messages = []
        db.add(session)
        await db.commit()
        logger.info(f"Created counsel session {session.id} (user {user_id or 'anonymous'})")
        return session
    except SQLAlchemyError:
        await db.rollback()
        raise


async def append_message(
    db: AsyncSession,
    session: CounselSession,
    role: str,
    content: str,
    scripture_references: Sequence[ScriptureReference] = (),
) -> CounselMessage:
    """
    Appends an immutable message to the session. Timestamps are strictly increasing within
    a session, so the stored order always matches the append order.
    """
    timestamp = utcnow()
    if session.messages:
        latest = session.messages[-1].timestamp
        if latest is not None and timestamp <= latest:
            timestamp = latest + timedelta(microseconds=1)

    message = CounselMessage(
        session_id=session.id,
        role=role,
        content=content,
        scripture_references=[r.model_dump(by_alias=True) for r in scripture_references],
        timestamp=timestamp,
    )
    try:
        db.add(message)
        session.updated_at = timestamp
        await db.commit()
        await db.refresh(message)
    except SQLAlchemyError:
        await db.rollback()
        raise

    session.messages.append(message)
    return message


def clarification_count(session: CounselSession) -> int:
    """Assistant messages containing a question mark. Recomputed on every call."""
    return sum(1 for m in session.messages if m.role == ASSISTANT_ROLE and "?" in (m.content or ""))


def history(session: CounselSession) -> List[Tuple[str, str]]:
    """(role, content) pairs in timestamp order."""
    return [(m.role, m.content) for m in session.messages]


async def list_user_sessions(db: AsyncSession, user_id: int, limit: int = 50) -> List[CounselSession]:
    result = await db.execute(
        select(CounselSession)
        .where(CounselSession.user_id == user_id)
        .order_by(desc(CounselSession.created_at))
        .limit(limit)
    )
    return result.scalars().all()


async def complete_session(db: AsyncSession, session: CounselSession) -> CounselSession:
    try:
        session.status = SESSION_STATUS_COMPLETED
        session.updated_at = utcnow()
        await db.commit()
        return session
    except SQLAlchemyError:
        await db.rollback()
        raise
