# counselor_api/services/share_services.py
import logging
from datetime import timedelta
from typing import List, Optional
from urllib.parse import quote

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core.config import settings
from counselor_api.core.errors import (
    ConflictError,
    NotFoundError,
    ProcessingError,
    RecipientNotRegisteredError,
    ValidationFailedError,
)
from counselor_api.core.security import generate_share_token
from counselor_api.data.database import utcnow
from counselor_api.models.counsel_models import CounselMessageModel
from counselor_api.models.database_models.session_share import SessionShare
from counselor_api.models.database_models.user import User
from counselor_api.models.note_models import SessionNoteModel
from counselor_api.models.share_models import (
    AccessedShareModel,
    CreateShareRequest,
    CreateShareResponse,
    SessionShareModel,
    SharedSessionModel,
    ShareValidationResponse,
)
from counselor_api.services.access_control import (
    check_can_revoke_share,
    check_can_share,
    evaluate_share,
    visible_notes,
)
from counselor_api.services.database import share_database_services
from counselor_api.services.database.counsel_database_services import get_session
from counselor_api.services.database.counselor_database_services import load_session_access
from counselor_api.services.database.user_database_services import get_user_by_email
from counselor_api.services.entitlement_services import EntitlementService
from counselor_api.services.notification_services import ShareNotifier, deliver_share_notification

logger = logging.getLogger(__name__)


async def find_recipient(db: AsyncSession, email: str) -> Optional[dict]:
    """Identity lookup used while sharing: {"id", "verified"} or None."""
    user = await get_user_by_email(db, email)
    if user is None:
        return None
    return {"id": user.id, "verified": bool(user.email_verified)}


def build_share_url(share_token: str) -> str:
    return f"{settings.WEB_APP_URL.rstrip('/')}/shared/{share_token}"


def build_invitation_url(email: str) -> str:
    return f"{settings.WEB_APP_URL.rstrip('/')}/register?email={quote(email)}"


async def create_share(
    db: AsyncSession,
    user: User,
    share_request: CreateShareRequest,
    entitlements: EntitlementService,
    notifier: Optional[ShareNotifier] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> CreateShareResponse:
    session = await get_session(db, share_request.session_id)
    if session is None:
        raise NotFoundError("Session not found.")

    is_entitled = False
    if session.user_id == user.id:
        is_entitled = await entitlements.is_entitled_to_share(user.id)
    check_can_share(user.id, session.user_id, is_entitled)

    recipient_email = share_request.shared_with.strip().lower() if share_request.shared_with else None
    recipient_id = None
    if recipient_email:
        if recipient_email == (user.email or "").lower():
            raise ValidationFailedError("You cannot share a session with yourself.")
        recipient = await find_recipient(db, recipient_email)
        if recipient is None or not recipient["verified"]:
            raise RecipientNotRegisteredError(recipient_email, build_invitation_url(recipient_email))
        recipient_id = recipient["id"]

    expires_at = None
    if share_request.expires_in_days:
        expires_at = utcnow() + timedelta(days=share_request.expires_in_days)

    try:
        share = await share_database_services.create_share(
            db,
            session_id=session.id,
            share_token=generate_share_token(),
            shared_by=user.id,
            shared_with=recipient_email,
            shared_with_user_id=recipient_id,
            allow_notes_access=share_request.allow_notes_access,
            expires_at=expires_at,
        )
    except IntegrityError as e:
        logger.error(f"Share token collision for session {session.id}: {e}")
        raise ConflictError("Unable to create the share. Please try again.") from e
    except SQLAlchemyError as e:
        logger.exception(f"Failed to create share for session {session.id}: {e}")
        raise ProcessingError("Unable to create the share.") from e

    logger.info(f"User {user.id} shared session {session.id} (restricted={recipient_email is not None})")
    share_url = build_share_url(share.share_token)
    if recipient_email and notifier is not None and background_tasks is not None:
        background_tasks.add_task(
            deliver_share_notification,
            notifier,
            recipient_email=recipient_email,
            sharer_name=user.display_name,
            session_title=session.title,
            share_url=share_url,
            expires_at=expires_at.isoformat() if expires_at else None,
        )
    return CreateShareResponse(share=SessionShareModel.model_validate(share), share_url=share_url)


async def get_shared_session(db: AsyncSession, share_token: str, user: Optional[User]) -> ShareValidationResponse:
    """
    Validates a share token for the actor and returns the session with the notes they may
    see. Non-owner viewers get an access row so the share shows up in their inbox.
    """
    share = await share_database_services.get_share_by_token(db, share_token)
    session = await get_session(db, share.session_id, with_notes=True) if share else None
    if share is not None and session is None:
        raise NotFoundError("Share not found.")

    actor_id = user.id if user else None
    owner_id = session.user_id if session else None
    decision = evaluate_share(share, actor_id, user.email if user else None, owner_id, utcnow())

    if actor_id is not None and not decision.is_owner:
        try:
            await share_database_services.record_share_access(db, share.id, actor_id)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to record share access for share {share.id}: {e}")
            raise ProcessingError("Unable to open the shared session.") from e

    access = await load_session_access(db, actor_id, owner_id)
    notes = visible_notes(access, session.notes) if (decision.is_owner or share.allow_notes_access) else []

    shared_session = SharedSessionModel(
        id=session.id,
        title=session.title,
        status=session.status,
        created_at=session.created_at,
        updated_at=session.updated_at,
        user_id=session.user_id,
        messages=[CounselMessageModel.model_validate(m) for m in session.messages],
        notes=[SessionNoteModel.model_validate(n) for n in notes],
    )
    return ShareValidationResponse(
        session=shared_session,
        can_view=decision.can_view,
        can_add_notes=decision.can_add_notes,
        shared_by=share.shared_by,
        expires_at=share.expires_at,
    )


async def list_shares(db: AsyncSession, user: User, session_id: Optional[str] = None) -> List[SessionShare]:
    return await share_database_services.list_shares(db, user.id, session_id)


async def list_accessed_shares(db: AsyncSession, user: User) -> List[AccessedShareModel]:
    rows = await share_database_services.list_accessed_shares(db, user.id)
    return [
        AccessedShareModel(
            share_id=share.id,
            share_token=share.share_token,
            session_id=session.id,
            session_title=session.title,
            session_created_at=session.created_at,
            owner_id=session.user_id,
            owner_name=owner.display_name if owner else "Unknown",
            allow_notes_access=share.allow_notes_access,
            expires_at=share.expires_at,
            last_accessed_at=access.last_accessed_at,
        )
        for access, share, session, owner in rows
    ]


async def revoke_share(db: AsyncSession, share_id: str, user: User) -> None:
    share = await share_database_services.get_share(db, share_id)
    if share is None:
        raise NotFoundError("Share not found.")
    session = await get_session(db, share.session_id)
    check_can_revoke_share(user.id, share, session.user_id if session else None)
    try:
        await share_database_services.delete_share(db, share)
    except SQLAlchemyError as e:
        logger.exception(f"Failed to revoke share {share_id}: {e}")
        raise ProcessingError("Unable to revoke the share.") from e
    logger.info(f"User {user.id} revoked share {share_id}")


async def dismiss_share(db: AsyncSession, share_id: str, user: User) -> None:
    access = await share_database_services.get_share_access(db, share_id, user.id)
    if access is None:
        raise NotFoundError("Share not found in your shared sessions.")
    if access.is_dismissed:
        return
    try:
        await share_database_services.dismiss_share_access(db, access)
    except SQLAlchemyError as e:
        logger.exception(f"Failed to dismiss share {share_id}: {e}")
        raise ProcessingError("Unable to dismiss the share.") from e

