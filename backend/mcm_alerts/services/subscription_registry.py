"""
Subscription Registry

Stores one row per push endpoint. Registering an existing endpoint refreshes
its keys and bumps updated_at instead of inserting a duplicate.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterable, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from mcm_alerts.core.exceptions import InvalidPayload, StoreFailure
from mcm_alerts.core.timezone import ensure_utc, utc_now
from mcm_alerts.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    id: UUID
    created: bool


def _validate(endpoint: Optional[str], keys: Optional[Mapping[str, Any]]):
    if not endpoint or not str(endpoint).strip():
        raise InvalidPayload("Invalid payload: endpoint is required")
    if not keys or not keys.get("p256dh") or not keys.get("auth"):
        raise InvalidPayload("Invalid payload: keys.p256dh and keys.auth are required")


def _touch(subscription: PushSubscription):
    """updated_at must strictly increase on every re-registration"""
    now = utc_now()
    previous = ensure_utc(subscription.updated_at)
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    subscription.updated_at = now


class SubscriptionRegistry:
    """Push subscription storage. Each operation runs in its own session."""
    
    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker
    
    async def register(
        self,
        endpoint: Optional[str],
        keys: Optional[Mapping[str, Any]],
        user_agent: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Register or refresh a push subscription.
        
        Raises:
            InvalidPayload: endpoint or keys missing
            StoreFailure: the store rejected the write
        """
        _validate(endpoint, keys)
        endpoint = endpoint.strip()
        user_agent = user_agent[:500] if user_agent else None
        
        try:
            existing = await self._refresh(endpoint, keys, user_agent)
            if existing is not None:
                logger.info(f"Refreshed push subscription {existing}")
                return RegistrationResult(id=existing, created=False)
            
            async with self._session_maker() as db:
                subscription = PushSubscription(
                    endpoint=endpoint,
                    p256dh_key=keys["p256dh"],
                    auth_key=keys["auth"],
                    user_agent=user_agent,
                )
                db.add(subscription)
                try:
                    await db.commit()
                except IntegrityError:
                    # Registered concurrently; fall through to the refresh path
                    await db.rollback()
                    subscription = None
            
            if subscription is None:
                existing = await self._refresh(endpoint, keys, user_agent)
                if existing is None:
                    raise StoreFailure(f"Subscription for {endpoint[:60]} vanished during registration")
                return RegistrationResult(id=existing, created=False)
            
            logger.info(f"Created push subscription {subscription.id}")
            return RegistrationResult(id=subscription.id, created=True)
        except SQLAlchemyError as e:
            logger.error(f"Failed to register subscription: {e}")
            raise StoreFailure(str(e)) from e
    
    async def _refresh(
        self,
        endpoint: str,
        keys: Mapping[str, Any],
        user_agent: Optional[str],
    ) -> Optional[UUID]:
        async with self._session_maker() as db:
            result = await db.execute(
                select(PushSubscription).where(PushSubscription.endpoint == endpoint)
            )
            subscription = result.scalar_one_or_none()
            if subscription is None:
                return None
            subscription.p256dh_key = keys["p256dh"]
            subscription.auth_key = keys["auth"]
            if user_agent:
                subscription.user_agent = user_agent
            _touch(subscription)
            await db.commit()
            return subscription.id
    
    async def get(self, subscription_id: UUID) -> Optional[PushSubscription]:
        try:
            async with self._session_maker() as db:
                return await db.get(PushSubscription, subscription_id)
        except SQLAlchemyError as e:
            raise StoreFailure(str(e)) from e
    
    async def list(self, filter_ids: Optional[Iterable[UUID]] = None) -> List[PushSubscription]:
        """All subscriptions, or only those whose id is in filter_ids"""
        query = select(PushSubscription).order_by(PushSubscription.created_at)
        if filter_ids is not None:
            ids = list(filter_ids)
            if not ids:
                return []
            query = query.where(PushSubscription.id.in_(ids))
        try:
            async with self._session_maker() as db:
                result = await db.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list subscriptions: {e}")
            raise StoreFailure(str(e)) from e
    
    async def remove(self, subscription_id: UUID) -> bool:
        """Delete a subscription. Removing an unknown id is a no-op."""
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    delete(PushSubscription).where(PushSubscription.id == subscription_id)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove subscription {subscription_id}: {e}")
            raise StoreFailure(str(e)) from e
        removed = (result.rowcount or 0) > 0
        if removed:
            logger.info(f"Removed push subscription {subscription_id}")
        return removed
    
    async def remove_by_endpoint(self, endpoint: str) -> bool:
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    delete(PushSubscription).where(PushSubscription.endpoint == endpoint.strip())
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to unsubscribe endpoint: {e}")
            raise StoreFailure(str(e)) from e
        return (result.rowcount or 0) > 0
