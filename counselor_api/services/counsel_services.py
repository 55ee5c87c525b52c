# counselor_api/services/counsel_services.py
import asyncio
import logging
import time
import uuid
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core.config import settings
from counselor_api.core.errors import (
    ForbiddenError,
    NotFoundError,
    ProcessingError,
    UpstreamGenerationError,
)
from counselor_api.core.locks import SessionLockRegistry
from counselor_api.data.database import utcnow
from counselor_api.models.counsel_models import (
    CounselMessageModel,
    CounselRequest,
    CounselResponse,
    CounselSessionModel,
)
from counselor_api.models.database_models.counsel_session import CounselSession
from counselor_api.models.database_models.user import User
from counselor_api.services.access_control import check_can_read_session
from counselor_api.services.database.counsel_database_services import (
    append_message,
    clarification_count,
    complete_session,
    get_or_create_session,
    get_session,
    history,
    list_user_sessions,
)
from counselor_api.services.database.counselor_database_services import load_session_access
from counselor_api.services.database.share_database_services import list_session_shares_for_user
from counselor_api.services.llm.llm_services import CounselGenerator
from counselor_api.services.safety_services import SafetyEvaluation, SafetyGate
from counselor_api.services.scripture_services import (
    ScriptureCorpus,
    extract_scripture_citations,
    merge_references,
    rank,
)

logger = logging.getLogger(__name__)

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
SYSTEM_ROLE = "system"


class CounselOrchestrator:
    """
    Runs one counselling turn:
    safety gate -> session -> user message -> retrieval -> generation -> assistant message.

    A crisis match returns fixed safety resources before any session is looked up or any
    message is stored. Turns on the same session are serialized by session_locks so the
    clarification count read for a turn is never stale.
    """

    def __init__(
        self,
        safety_gate: SafetyGate,
        corpus: ScriptureCorpus,
        generator: CounselGenerator,
        session_locks: SessionLockRegistry,
        top_k: int = None,
        generation_timeout: float = None,
    ):
        self.safety_gate = safety_gate
        self.corpus = corpus
        self.generator = generator
        self.session_locks = session_locks
        self.top_k = top_k if top_k is not None else settings.RETRIEVAL_TOP_K
        self.generation_timeout = (
            generation_timeout if generation_timeout is not None else settings.GENERATION_TIMEOUT_SECONDS
        )

    async def process_message(
        self, db: AsyncSession, request: CounselRequest, user: Optional[User] = None
    ) -> CounselResponse:
        request_received_time = time.time()
        evaluation = self.safety_gate.evaluate(request.message)
        if evaluation.is_crisis:
            return self.crisis_response(request.session_id)

        if request.session_id:
            async with self.session_locks.hold(request.session_id):
                response = await self._run_turn(db, request, user, evaluation)
        else:
            response = await self._run_turn(db, request, user, evaluation)

        logger.info(
            f"Counsel turn for session {response.session_id} completed in "
            f"{time.time() - request_received_time:.3f} seconds"
        )
        return response

    def crisis_response(self, session_id: Optional[str]) -> CounselResponse:
        message = CounselMessageModel(
            id=str(uuid.uuid4()),
            session_id=session_id,
            role=SYSTEM_ROLE,
            content=self.safety_gate.crisis_response(),
            scripture_references=[],
            timestamp=utcnow(),
        )
        return CounselResponse(
            session_id=session_id,
            message=message,
            requires_clarification=False,
            is_crisis_detected=True,
            crisis_resources=self.safety_gate.crisis_resources,
        )

    async def _run_turn(
        self, db: AsyncSession, request: CounselRequest, user: Optional[User], evaluation: SafetyEvaluation
    ) -> CounselResponse:
        user_id = user.id if user else None
        try:
            session = await get_or_create_session(db, request.session_id, request.message, user_id)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to resolve counsel session {request.session_id}: {e}")
            raise ProcessingError("We were unable to process your message. Please try again.") from e

        if session.user_id is not None and session.user_id != user_id:
            raise ForbiddenError("You do not have access to this session.")

        prior_history = history(session)
        try:
            await append_message(db, session, USER_ROLE, request.message, [])
        except SQLAlchemyError as e:
            logger.exception(f"Failed to store user message in session {session.id}: {e}")
            raise ProcessingError("We were unable to process your message. Please try again.") from e

        count = clarification_count(session)
        passages = rank(request.message, self.corpus, self.top_k)
        logger.debug(f"Session {session.id}: clarification count {count}, {len(passages)} passages retrieved")

        try:
            result = await asyncio.wait_for(
                self.generator.generate(request.message, passages, prior_history, count),
                timeout=self.generation_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Generation timed out after {self.generation_timeout}s for session {session.id}")
            raise UpstreamGenerationError(cause=e) from e
        except Exception as e:
            logger.exception(f"Generation failed for session {session.id}: {e}")
            raise UpstreamGenerationError(cause=e) from e

        references = merge_references(
            [p.to_reference() for p in passages],
            extract_scripture_citations(result.content, self.corpus),
        )
        try:
            assistant_message = await append_message(db, session, ASSISTANT_ROLE, result.content, references)
        except SQLAlchemyError as e:
            logger.exception(f"Failed to store assistant message in session {session.id}: {e}")
            raise ProcessingError("We were unable to process your message. Please try again.") from e

        return CounselResponse(
            session_id=session.id,
            message=CounselMessageModel.model_validate(assistant_message),
            requires_clarification=result.requires_clarification,
            is_crisis_detected=False,
            is_grief_detected=evaluation.is_grief,
            grief_resources=self.safety_gate.grief_resources if evaluation.is_grief else None,
        )


async def get_session_for_actor(
    db: AsyncSession, session_id: str, user: Optional[User], organization_id: Optional[str] = None
) -> CounselSession:
    """
    Sessions are readable by their owner, an assigned or coverage counselor, and anyone who
    opened a valid share of them. Anonymous sessions are readable by id.
    """
    session = await get_session(db, session_id)
    if session is None:
        raise NotFoundError("Session not found.")
    if session.user_id is None:
        return session
    if user is None:
        raise ForbiddenError("You do not have access to this session.")

    access = await load_session_access(db, user.id, session.user_id, organization_id)
    shared = False
    if not (access.is_owner or access.is_counselor):
        shared = bool(await list_session_shares_for_user(db, session.id, user.id))
    check_can_read_session(access, has_valid_share=shared)
    return session


async def list_sessions(db: AsyncSession, user: User) -> List[CounselSession]:
    return await list_user_sessions(db, user.id)


async def complete_session_for_owner(db: AsyncSession, session_id: str, user: User) -> CounselSession:
    session = await get_session(db, session_id)
    if session is None:
        raise NotFoundError("Session not found.")
    if session.user_id != user.id:
        raise ForbiddenError("Only the owner of a session can complete it.")
    try:
        return await complete_session(db, session)
    except SQLAlchemyError as e:
        logger.exception(f"Failed to complete session {session_id}: {e}")
        raise ProcessingError("Unable to update the session.") from e


def to_session_model(session: CounselSession) -> CounselSessionModel:
    return CounselSessionModel.model_validate(session)
