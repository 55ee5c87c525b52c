# counselor_api/services/database/note_database_services.py
from typing import List, Optional

from sqlalchemy import asc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.data.database import utcnow
from counselor_api.models.database_models.session_note import SessionNote


async def get_note(db: AsyncSession, note_id: str) -> Optional[SessionNote]:
    result = await db.execute(select(SessionNote).where(SessionNote.id == note_id))
    return result.scalars().first()


async def list_session_notes(db: AsyncSession, session_id: str) -> List[SessionNote]:
    result = await db.execute(
        select(SessionNote).where(SessionNote.session_id == session_id).order_by(asc(SessionNote.created_at))
    )
    return result.scalars().all()


async def create_note(
    db: AsyncSession,
    session_id: str,
    author_id: int,
    author_name: str,
    author_role: str,
    content: str,
    is_private: bool,
) -> SessionNote:
    note = SessionNote(
        session_id=session_id,
        author_id=author_id,
        author_name=author_name,
        author_role=author_role,
        content=content,
        is_private=is_private,
    )
    try:
        db.add(note)
        await db.commit()
        await db.refresh(note)
        return note
    except SQLAlchemyError:
        await db.rollback()
        raise


async def update_note(
    db: AsyncSession, note: SessionNote, content: Optional[str] = None, is_private: Optional[bool] = None
) -> SessionNote:
    try:
        if content is not None:
            note.content = content
        if is_private is not None:
            note.is_private = is_private
        note.updated_at = utcnow()
        await db.commit()
        await db.refresh(note)
        return note
    except SQLAlchemyError:
        await db.rollback()
        raise


async def delete_note(db: AsyncSession, note: SessionNote) -> None:
    try:
        await db.delete(note)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
