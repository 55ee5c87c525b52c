# counselor_api/core/locks.py
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from redis.asyncio import Redis
from redis.exceptions import LockError

from counselor_api.core.config import settings
from counselor_api.core.errors import ConflictError

logger = logging.getLogger(__name__)

SESSION_LOCK_PREFIX = "counsel_session_lock"


class SessionLockRegistry:
    """Serializes counselling turns per session id. Different sessions never wait on each other."""

    def hold(self, session_id: str):
        raise NotImplementedError


class InProcessSessionLocks(SessionLockRegistry):
    """asyncio locks keyed by session id, for a single worker process."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._waiters[session_id] = self._waiters.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[session_id] -= 1
            if self._waiters[session_id] == 0:
                del self._waiters[session_id]
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)


class RedisSessionLocks(SessionLockRegistry):
    """Redis locks keyed by session id, for deployments with several workers."""

    def __init__(self, redis_client: Redis, timeout: float = None):
        self.redis_client = redis_client
        self.timeout = timeout if timeout is not None else settings.SESSION_LOCK_TIMEOUT_SECONDS

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self.redis_client.lock(
            f"{SESSION_LOCK_PREFIX}:{session_id}", timeout=self.timeout, blocking_timeout=self.timeout
        )
        acquired = await lock.acquire()
        if not acquired:
            raise ConflictError("This session is busy with another message. Please try again.")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                logger.warning(f"Session lock for {session_id} expired before release")
