# counselor_api/core/dependencies.py
import redis.asyncio as redis  # Use asyncio Redis client
from fastapi import Depends
from fastapi_limiter.depends import RateLimiter
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core import startup
from counselor_api.core.config import settings
from counselor_api.core.locks import SessionLockRegistry
from counselor_api.data.database import get_db
from counselor_api.services.counsel_services import CounselOrchestrator
from counselor_api.services.entitlement_services import DatabaseEntitlementService, EntitlementService
from counselor_api.services.llm.llm_services import CounselGenerator, GeminiCounselGenerator
from counselor_api.services.notification_services import RedisShareNotifier, ShareNotifier
from counselor_api.services.safety_services import get_safety_gate
from counselor_api.services.scripture_services import get_scripture_corpus

chat_rate_limiter = RateLimiter(times=settings.CHAT_RATE_LIMIT_TIMES, seconds=settings.CHAT_RATE_LIMIT_SECONDS)
share_rate_limiter = RateLimiter(times=settings.SHARE_RATE_LIMIT_TIMES, seconds=settings.SHARE_RATE_LIMIT_SECONDS)
register_rate_limiter = RateLimiter(times=2, seconds=5)


async def get_redis_client():
    """Dependency to provide a Redis client."""
    redis_client = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
    try:
        yield redis_client
    finally:
        await redis_client.close()  # Close the connection when done


def get_session_locks() -> SessionLockRegistry:
    return startup.session_locks


def get_generator() -> CounselGenerator:
    return GeminiCounselGenerator(startup.llm_clients.get("gemini"))


def get_counsel_orchestrator(
    generator: CounselGenerator = Depends(get_generator),
    session_locks: SessionLockRegistry = Depends(get_session_locks),
) -> CounselOrchestrator:
    return CounselOrchestrator(
        safety_gate=get_safety_gate(),
        corpus=get_scripture_corpus(),
        generator=generator,
        session_locks=session_locks,
    )


def get_entitlements(db: AsyncSession = Depends(get_db)) -> EntitlementService:
    return DatabaseEntitlementService(db)


def get_notifier() -> ShareNotifier:
    # Background tasks outlive request-scoped dependencies, so use the app-wide client.
    return RedisShareNotifier(startup.redis_client_instance)
