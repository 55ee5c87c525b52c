# counselor_api/services/notification_services.py
import json
import logging
from typing import Optional

from redis.asyncio import Redis

from counselor_api.data.database import utcnow

logger = logging.getLogger(__name__)

EMAIL_QUEUE_KEY = "notifications:email"
SHARE_NOTIFICATION_TEMPLATE = "session_shared"
EMAIL_VERIFICATION_TEMPLATE = "verify_email"


class ShareNotifier:
    async def notify_share_created(
        self, recipient_email: str, sharer_name: str, session_title: str, share_url: str,
        expires_at: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    async def notify_email_verification(self, recipient_email: str, name: str, verification_url: str) -> None:
        raise NotImplementedError


class RedisShareNotifier(ShareNotifier):
    """Queues e-mail jobs on a Redis list drained by the mailer worker."""

    def __init__(self, redis_client: Optional[Redis], queue_key: str = EMAIL_QUEUE_KEY):
        self.redis_client = redis_client
        self.queue_key = queue_key

    async def _queue(self, template: str, recipient_email: str, context: dict) -> None:
        if self.redis_client is None:
            raise RuntimeError("Redis client is not initialised; cannot queue notification")
        job = {
            "template": template,
            "to": recipient_email,
            "context": context,
            "queuedAt": utcnow().isoformat(),
        }
        await self.redis_client.lpush(self.queue_key, json.dumps(job))

    async def notify_share_created(
        self, recipient_email: str, sharer_name: str, session_title: str, share_url: str,
        expires_at: Optional[str] = None,
    ) -> None:
        await self._queue(
            SHARE_NOTIFICATION_TEMPLATE,
            recipient_email,
            {
                "sharerName": sharer_name,
                "sessionTitle": session_title,
                "shareUrl": share_url,
                "expiresAt": expires_at,
            },
        )

    async def notify_email_verification(self, recipient_email: str, name: str, verification_url: str) -> None:
        await self._queue(
            EMAIL_VERIFICATION_TEMPLATE,
            recipient_email,
            {"name": name, "verificationUrl": verification_url},
        )


async def deliver_share_notification(notifier: ShareNotifier, **kwargs) -> None:
    """Fire-and-forget wrapper: a failed notification never fails the share that triggered it."""
    try:
        await notifier.notify_share_created(**kwargs)
        logger.info("Queued share notification e-mail")
    except Exception as e:
        logger.error(f"Failed to queue share notification: {e}")


async def deliver_verification_email(notifier: ShareNotifier, **kwargs) -> None:
    try:
        await notifier.notify_email_verification(**kwargs)
        logger.info("Queued e-mail verification")
    except Exception as e:
        logger.error(f"Failed to queue e-mail verification: {e}")
