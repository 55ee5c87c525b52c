# counselor_api/api/routes/counsel_routes.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core.dependencies import chat_rate_limiter, get_counsel_orchestrator
from counselor_api.data.database import get_db
from counselor_api.models.counsel_models import (
    CounselRequest,
    CounselResponse,
    CounselSessionModel,
    CounselSessionSummary,
)
from counselor_api.models.database_models.user import User
from counselor_api.services.auth_services import get_current_user_from_cookie, get_optional_user_from_cookie
from counselor_api.services.counsel_services import (
    CounselOrchestrator,
    complete_session_for_owner,
    get_session_for_actor,
    list_sessions,
)

router = APIRouter(tags=["Counsel"])


@router.post("/chat", response_model=CounselResponse, dependencies=[Depends(chat_rate_limiter)])
async def chat(
    request: CounselRequest,
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user_from_cookie),
    orchestrator: CounselOrchestrator = Depends(get_counsel_orchestrator),
):
    """
    One counselling turn. Crisis language returns safety resources and stores nothing.
    """
    return await orchestrator.process_message(db, request, user)


@router.get("/sessions", response_model=List[CounselSessionSummary])
async def get_sessions(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    return await list_sessions(db, user)


@router.get("/sessions/{session_id}", response_model=CounselSessionModel)
async def get_session(
    session_id: str,
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user_from_cookie),
):
    return await get_session_for_actor(db, session_id, user, organization_id)


@router.post("/sessions/{session_id}/complete", response_model=CounselSessionSummary)
async def complete_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user_from_cookie),
):
    return await complete_session_for_owner(db, session_id, user)
