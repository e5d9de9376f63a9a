"""
Alert backend: the explicitly constructed service graph behind the API.

Owns the change feed, subscription registry, event store and dispatcher.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncEngine

from mcm_alerts.core.change_feed import ChangeFeed
from mcm_alerts.core.config import Settings, settings as default_settings
from mcm_alerts.db.database import build_engine, create_tables, make_session_maker
from mcm_alerts.models.notification import AlertEvent
from mcm_alerts.schemas.notification import EventCreate
from mcm_alerts.services.dispatcher import DispatchReport, FanoutDispatcher
from mcm_alerts.services.event_store import EventStore
from mcm_alerts.services.push_service import PushService
from mcm_alerts.services.subscription_registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class AlertBackend:
    """
    Usage:
        backend = AlertBackend.from_settings()
        await backend.start()
        event, report = await backend.publish_alert(EventCreate(title="Down", body="..."))
        await backend.stop()
    """
    
    def __init__(
        self,
        engine: AsyncEngine,
        push_service: Optional[PushService] = None,
        settings: Optional[Settings] = None,
        change_feed: Optional[ChangeFeed] = None,
    ):
        self.settings = settings or default_settings
        self.engine = engine
        self.session_maker = make_session_maker(engine)
        self.change_feed = change_feed or ChangeFeed()
        self.push_service = push_service or PushService(self.settings)
        self.registry = SubscriptionRegistry(self.session_maker)
        self.store = EventStore(self.session_maker, self.change_feed)
        self.dispatcher = FanoutDispatcher(
            self.registry, self.store, self.push_service, settings=self.settings
        )
        self._started = False
    
    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AlertBackend":
        settings = settings or default_settings
        return cls(build_engine(settings.database_url), settings=settings)
    
    @property
    def is_started(self) -> bool:
        return self._started
    
    async def start(self):
        if self._started:
            return
        if self.settings.auto_create_tables:
            await create_tables(self.engine)
        self.change_feed.start()
        if not self.push_service.is_configured:
            logger.warning("VAPID keys not configured - push delivery will fail until they are set")
        self._started = True
        logger.info("Alert backend started")
    
    async def stop(self):
        if not self._started:
            return
        self.change_feed.stop()
        await self.engine.dispose()
        self._started = False
        logger.info("Alert backend stopped")
    
    async def publish_alert(self, request: EventCreate) -> Tuple[AlertEvent, DispatchReport]:
        """Persist an event, then fan it out. Raises ValidationError/StoreFailure from the store."""
        event = await self.store.create_event(
            title=request.title,
            body=request.body,
            type=request.type,
            priority=request.priority,
            metadata=request.metadata,
        )
        report = await self.dispatcher.dispatch(event, request.target_subscription_ids)
        return event, report
