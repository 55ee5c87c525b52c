# counselor_api/api/routes/root_routes.py
import logging

from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from redis.exceptions import RedisError

from counselor_api.core.dependencies import get_redis_client
from counselor_api.services.safety_services import get_safety_gate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health(redis_client: Redis = Depends(get_redis_client)):
    try:
        await redis_client.ping()
        redis_status = "ok"
    except (RedisError, OSError) as e:
        logger.warning(f"Health check could not reach Redis: {e}")
        redis_status = "unavailable"
    return {
        "status": "ok",
        "redis": redis_status,
        "safetyKeywordVersion": get_safety_gate().config.version,
    }
