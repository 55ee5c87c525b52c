# counselor_api/api/routes/share_routes.py
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core.dependencies import get_entitlements, get_notifier, share_rate_limiter
from counselor_api.data.database import get_db
from counselor_api.models.database_models.user import User
from counselor_api.models.share_models import (
    AccessedShareModel,
    CreateShareRequest,
    CreateShareResponse,
    SessionShareModel,
    ShareValidationResponse,
)
from counselor_api.services import share_services
from counselor_api.services.auth_services import get_current_user_from_cookie, get_optional_user_from_cookie
from counselor_api.services.entitlement_services import EntitlementService
from counselor_api.services.notification_services import ShareNotifier

router = APIRouter(tags=["Shares"])


@router.post(
    "",
    response_model=CreateShareResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(share_rate_limiter)],
)
async def create_share(
    share_request: CreateShareRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
    entitlements: EntitlementService = Depends(get_entitlements),
    notifier: ShareNotifier = Depends(get_notifier),
):
    """
    Share a session. A recipient e-mail must belong to a verified account; otherwise the
    400 response carries an invitation URL.
    """
    return await share_services.create_share(db, user, share_request, entitlements, notifier, background_tasks)


@router.get("", response_model=List[SessionShareModel])
async def list_shares(
    session_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    return await share_services.list_shares(db, user, session_id)


@router.get("/accessed", response_model=List[AccessedShareModel])
async def list_accessed_shares(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    return await share_services.list_accessed_shares(db, user)


@router.get("/{share_token}", response_model=ShareValidationResponse)
async def get_shared_session(
    share_token: str,
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user_from_cookie),
):
    return await share_services.get_shared_session(db, share_token, user)


@router.delete("/{share_id}")
async def revoke_share(
    share_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    await share_services.revoke_share(db, share_id, user)
    return {"success": True, "message": "Share revoked"}


@router.post("/{share_id}/dismiss")
async def dismiss_share(
    share_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    await share_services.dismiss_share(db, share_id, user)
    return {"success": True, "message": "Share dismissed"}
