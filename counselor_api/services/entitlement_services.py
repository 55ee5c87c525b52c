# counselor_api/services/entitlement_services.py
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.data.database import utcnow
from counselor_api.models.database_models.user_subscription import (
    ENTITLED_SUBSCRIPTION_STATUSES,
    UserSubscription,
)

logger = logging.getLogger(__name__)


class EntitlementService:
    async def is_entitled_to_share(self, user_id: int) -> bool:
        raise NotImplementedError


class DatabaseEntitlementService(EntitlementService):
    """A user may share while their subscription is active or trialing and not past its period end."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_entitled_to_share(self, user_id: int) -> bool:
        result = await self.db.execute(select(UserSubscription).where(UserSubscription.user_id == user_id))
        subscription = result.scalars().first()
        if subscription is None:
            return False
        if subscription.status not in ENTITLED_SUBSCRIPTION_STATUSES:
            logger.info(f"User {user_id} subscription status {subscription.status} does not allow sharing")
            return False
        return subscription.current_period_end is None or subscription.current_period_end > utcnow()
