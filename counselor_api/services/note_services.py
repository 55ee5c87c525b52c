# counselor_api/services/note_services.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core.errors import NotFoundError, ProcessingError
from counselor_api.models.database_models.counsel_session import CounselSession
from counselor_api.models.database_models.session_note import SessionNote
from counselor_api.models.database_models.user import User
from counselor_api.models.note_models import SessionNoteCreate, SessionNoteUpdate
from counselor_api.services.access_control import (
    SessionAccess,
    check_can_create_note,
    check_can_make_private,
    check_can_mutate_note,
    check_can_read_session,
    note_author_role,
    visible_notes,
)
from counselor_api.services.database import note_database_services
from counselor_api.services.database.counsel_database_services import get_session
from counselor_api.services.database.counselor_database_services import load_session_access
from counselor_api.services.database.share_database_services import list_session_shares_for_user

logger = logging.getLogger(__name__)


async def _resolve(
    db: AsyncSession, session_id: str, user: User, organization_id: Optional[str]
) -> Tuple[CounselSession, SessionAccess, bool, bool]:
    """Loads the session and the actor's role plus any share-derived read/write rights."""
    session = await get_session(db, session_id)
    if session is None or session.user_id is None:
        # Anonymous sessions have no owner to annotate for.
        raise NotFoundError("Session not found.")
    access = await load_session_access(db, user.id, session.user_id, organization_id)
    can_read_by_share, can_write_by_share = False, False
    if not (access.is_owner or access.is_counselor):
        shares = await list_session_shares_for_user(db, session.id, user.id)
        can_read_by_share = bool(shares)
        can_write_by_share = any(s.allow_notes_access for s in shares)
    return session, access, can_read_by_share, can_write_by_share


async def list_notes(
    db: AsyncSession, session_id: str, user: User, organization_id: Optional[str] = None
) -> List[SessionNote]:
    session, access, can_read_by_share, _ = await _resolve(db, session_id, user, organization_id)
    check_can_read_session(access, has_valid_share=can_read_by_share)
    notes = await note_database_services.list_session_notes(db, session.id)
    return visible_notes(access, notes)


async def create_note(
    db: AsyncSession, session_id: str, user: User, note_data: SessionNoteCreate, organization_id: Optional[str] = None
) -> SessionNote:
    session, access, _, can_write_by_share = await _resolve(db, session_id, user, organization_id)
    check_can_create_note(access, note_data.is_private, has_write_share=can_write_by_share)
    try:
        note = await note_database_services.create_note(
            db,
            session_id=session.id,
            author_id=user.id,
            author_name=user.display_name,
            author_role=note_author_role(access),
            content=note_data.content,
            is_private=note_data.is_private,
        )
    except SQLAlchemyError as e:
        logger.exception(f"Failed to create note on session {session_id}: {e}")
        raise ProcessingError("Unable to save the note.") from e
    logger.info(f"User {user.id} added a {note.author_role} note to session {session_id}")
    return note


async def update_note(
    db: AsyncSession, note_id: str, user: User, note_data: SessionNoteUpdate, organization_id: Optional[str] = None
) -> SessionNote:
    note = await note_database_services.get_note(db, note_id)
    if note is None:
        raise NotFoundError("Note not found.")
    check_can_mutate_note(user.id, note)

    if note_data.is_private and not note.is_private:
        session = await get_session(db, note.session_id)
        owner_id = session.user_id if session else None
        access = await load_session_access(db, user.id, owner_id, organization_id)
        check_can_make_private(access, note)

    try:
        return await note_database_services.update_note(
            db, note, content=note_data.content, is_private=note_data.is_private
        )
    except SQLAlchemyError as e:
        logger.exception(f"Failed to update note {note_id}: {e}")
        raise ProcessingError("Unable to update the note.") from e


async def delete_note(db: AsyncSession, note_id: str, user: User) -> None:
    note = await note_database_services.get_note(db, note_id)
    if note is None:
        raise NotFoundError("Note not found.")
    check_can_mutate_note(user.id, note)
    try:
        await note_database_services.delete_note(db, note)
    except SQLAlchemyError as e:
        logger.exception(f"Failed to delete note {note_id}: {e}")
        raise ProcessingError("Unable to delete the note.") from e
