# counselor_api/core/startup.py
import logging
from typing import Optional

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter
from google import genai
from redis.asyncio import Redis

from counselor_api.core.config import load_gemini_api_key, settings
from counselor_api.core.locks import InProcessSessionLocks, RedisSessionLocks, SessionLockRegistry
from counselor_api.services.safety_services import get_safety_gate
from counselor_api.services.scripture_services import get_scripture_corpus

logger = logging.getLogger(__name__)

redis_client_instance: Optional[Redis] = None
llm_clients = {}
session_locks: SessionLockRegistry = InProcessSessionLocks()


async def startup_event(app: FastAPI):
    """
    Initialize resources on application startup.
    """
    global redis_client_instance
    global session_locks

    try:
        safety_gate = get_safety_gate()
        corpus = get_scripture_corpus()
        logger.info(
            f"Curated data loaded: keyword config {safety_gate.config.version}, {len(corpus)} passages."
        )

        redis_client_instance = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(redis_client_instance, prefix="limit:")
        logger.info("FastAPILimiter initialized successfully.")

        if settings.SESSION_LOCK_BACKEND == "redis":
            session_locks = RedisSessionLocks(redis_client_instance)
        logger.info(f"Session locks: {type(session_locks).__name__}")

        llm_clients["gemini"] = genai.Client(api_key=load_gemini_api_key())
        logger.info(f"Gemini client initialized for model {settings.GENERATION_MODEL}.")

    except Exception as e:
        logger.error(f"Failed to startup: {e}")
        raise


async def shutdown_event(app: FastAPI):
    global redis_client_instance
    if redis_client_instance is not None:
        await redis_client_instance.close()
        redis_client_instance = None
