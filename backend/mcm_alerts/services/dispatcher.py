"""
Fan-out Dispatcher

Delivers one event to every (or every targeted) subscription concurrently.
A failure for one recipient never affects the others. Endpoints the push
service reports as gone are removed from the registry.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from mcm_alerts.core.config import Settings, settings as default_settings
from mcm_alerts.core.exceptions import (
    PermanentDeliveryFailure,
    StoreFailure,
    TransportDeliveryFailure,
)
from mcm_alerts.core.timezone import utc_now
from mcm_alerts.models.notification import AlertEvent
from mcm_alerts.models.push_subscription import PushSubscription
from mcm_alerts.services.event_store import EventStore
from mcm_alerts.services.payload import PushPayload, build_push_payload
from mcm_alerts.services.push_service import PushService
from mcm_alerts.services.subscription_registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


@dataclass
class DeliveryOutcome:
    subscription_id: UUID
    success: bool
    error_code: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class DispatchReport:
    total: int = 0
    success: int = 0
    failed: int = 0
    per_recipient: List[DeliveryOutcome] = field(default_factory=list)


class FanoutDispatcher:
    """Concurrent per-recipient push delivery with pruning of gone endpoints"""
    
    def __init__(
        self,
        registry: SubscriptionRegistry,
        store: EventStore,
        push_service: PushService,
        settings: Optional[Settings] = None,
    ):
        self._registry = registry
        self._store = store
        self._push = push_service
        self._settings = settings or default_settings
    
    async def dispatch(
        self,
        event: AlertEvent,
        target_subscription_ids: Optional[Iterable[UUID]] = None,
    ) -> DispatchReport:
        """
        Fan an event out to its recipients.
        
        Args:
            event: The persisted event
            target_subscription_ids: Limit delivery to these subscriptions
        
        Returns:
            DispatchReport with one outcome per recipient
        
        Raises:
            StoreFailure: If the recipients cannot be read
        """
        subscriptions = await self._registry.list(target_subscription_ids)
        
        if not subscriptions:
            logger.info(f"No push subscriptions for event {event.id}")
            await self._store.record_dispatch_stats(event.id, 0, 0)
            return DispatchReport()
        
        payload = build_push_payload(
            event_id=event.id,
            title=event.title,
            body=event.body,
            type=event.type,
            priority=event.priority,
            metadata=event.meta_data,
            created_at=event.created_at,
            icon=self._settings.push_icon,
            badge=self._settings.push_badge,
            default_url=self._settings.push_default_url,
        )
        
        outcomes = await asyncio.gather(
            *(self._deliver(subscription, payload) for subscription in subscriptions)
        )
        
        report = DispatchReport(
            total=len(outcomes),
            success=sum(1 for outcome in outcomes if outcome.success),
            failed=sum(1 for outcome in outcomes if not outcome.success),
            per_recipient=list(outcomes),
        )
        await self._store.record_dispatch_stats(event.id, report.success, report.failed)
        logger.info(
            f"Dispatched event {event.id}: {report.success}/{report.total} delivered, "
            f"{report.failed} failed"
        )
        return report
    
    async def _deliver(self, subscription: PushSubscription, payload: PushPayload) -> DeliveryOutcome:
        try:
            await self._push.send(subscription.get_subscription_info(), payload)
            return DeliveryOutcome(subscription_id=subscription.id, success=True)
        except PermanentDeliveryFailure as e:
            logger.info(f"Removing expired subscription {subscription.id} ({e.error_code})")
            try:
                await self._registry.remove(subscription.id)
            except StoreFailure as remove_error:
                logger.warning(f"Failed to remove subscription {subscription.id}: {remove_error}")
            return DeliveryOutcome(subscription_id=subscription.id, success=False, error_code=e.error_code)
        except TransportDeliveryFailure as e:
            return DeliveryOutcome(subscription_id=subscription.id, success=False, error_code=e.error_code)
        except Exception as e:
            logger.exception(f"Unexpected push error for subscription {subscription.id}: {e}")
            return DeliveryOutcome(subscription_id=subscription.id, success=False, error_code="unexpected_error")
