"""
Event Store Gateway

Persists alert events, serves recent/since queries and acknowledgments, and
publishes every new event on the change feed after it is committed.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from mcm_alerts.core.change_feed import ChangeFeed
from mcm_alerts.core.exceptions import StoreFailure, ValidationError
from mcm_alerts.core.priority import Priority
from mcm_alerts.core.timezone import ensure_utc, utc_now
from mcm_alerts.models.notification import AlertEvent
from mcm_alerts.schemas.notification import EventResponse

logger = logging.getLogger(__name__)


def serialize_event(event: AlertEvent) -> Dict[str, Any]:
    """Wire representation of an event (camelCase, JSON-safe)"""
    return EventResponse.model_validate(event).model_dump(mode="json", by_alias=True)


def _normalize(event: AlertEvent) -> AlertEvent:
    # SQLite returns naive datetimes
    event.created_at = ensure_utc(event.created_at)
    event.acknowledged_at = ensure_utc(event.acknowledged_at)
    return event


class EventStore:
    """Alert event persistence. Each operation runs in its own session."""
    
    def __init__(self, session_maker: async_sessionmaker, change_feed: Optional[ChangeFeed] = None):
        self._session_maker = session_maker
        self._change_feed = change_feed
    
    async def create_event(
        self,
        title: Optional[str],
        body: Optional[str],
        type: str = "alert",
        priority: Any = Priority.MEDIUM,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AlertEvent:
        """
        Persist a new event and publish it on the change feed.
        
        Raises:
            ValidationError: title or body missing
            StoreFailure: the store rejected the write
        """
        if not title or not str(title).strip():
            raise ValidationError("Title is required")
        if not body or not str(body).strip():
            raise ValidationError("Message body is required")
        
        event = AlertEvent(
            title=str(title).strip(),
            body=str(body).strip(),
            type=(type or "alert").strip() or "alert",
            priority=Priority.parse(priority),
            meta_data=dict(metadata or {}),
            acknowledged=False,
            sent_count=0,
            failed_count=0,
            created_at=utc_now(),
        )
        try:
            async with self._session_maker() as db:
                db.add(event)
                await db.commit()
                await db.refresh(event)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create event: {e}")
            raise StoreFailure(str(e)) from e
        
        _normalize(event)
        logger.info(f"Created event {event.id} ({event.priority.value}): {event.title}")
        
        if self._change_feed is not None:
            reached = self._change_feed.publish(serialize_event(event))
            logger.debug(f"Event {event.id} published to {reached} realtime listeners")
        return event
    
    async def get(self, event_id: int) -> Optional[AlertEvent]:
        try:
            async with self._session_maker() as db:
                event = await db.get(AlertEvent, event_id)
        except SQLAlchemyError as e:
            raise StoreFailure(str(e)) from e
        return _normalize(event) if event else None
    
    async def list_recent(self, limit: int = 10) -> List[AlertEvent]:
        """Newest first"""
        query = (
            select(AlertEvent)
            .order_by(AlertEvent.created_at.desc(), AlertEvent.id.desc())
            .limit(max(limit, 0))
        )
        return await self._fetch(query)
    
    async def list_since(self, since: Optional[datetime], limit: int = 100) -> List[AlertEvent]:
        """Events strictly newer than since, oldest first"""
        query = select(AlertEvent).order_by(AlertEvent.created_at.asc(), AlertEvent.id.asc())
        if since is not None:
            query = query.where(AlertEvent.created_at > ensure_utc(since))
        return await self._fetch(query.limit(max(limit, 0)))
    
    async def _fetch(self, query) -> List[AlertEvent]:
        try:
            async with self._session_maker() as db:
                result = await db.execute(query)
                events = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to query events: {e}")
            raise StoreFailure(str(e)) from e
        return [_normalize(event) for event in events]
    
    async def acknowledge(self, event_id: int) -> Optional[AlertEvent]:
        """Mark an event acknowledged. Idempotent; None when the event does not exist."""
        try:
            async with self._session_maker() as db:
                event = await db.get(AlertEvent, event_id)
                if event is None:
                    return None
                if not event.acknowledged:
                    event.acknowledged = True
                    event.acknowledged_at = utc_now()
                    await db.commit()
                    await db.refresh(event)
                    logger.info(f"Acknowledged event {event_id}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to acknowledge event {event_id}: {e}")
            raise StoreFailure(str(e)) from e
        return _normalize(event)
    
    async def acknowledge_all(self) -> int:
        """Acknowledge every open event. Best-effort: returns 0 on store errors."""
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    update(AlertEvent)
                    .where(AlertEvent.acknowledged == False)  # noqa: E712
                    .values(acknowledged=True, acknowledged_at=utc_now())
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to acknowledge all events: {e}")
            return 0
        count = result.rowcount or 0
        logger.info(f"Acknowledged {count} events")
        return count
    
    async def record_dispatch_stats(self, event_id: int, sent: int, failed: int):
        """Store delivery counts. Best-effort: failures are logged, never raised."""
        try:
            async with self._session_maker() as db:
                await db.execute(
                    update(AlertEvent)
                    .where(AlertEvent.id == event_id)
                    .values(sent_count=sent, failed_count=failed)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to record dispatch stats for event {event_id}: {e}")
    
    async def stats(self) -> Dict[str, Any]:
        try:
            async with self._session_maker() as db:
                total = await db.scalar(select(func.count(AlertEvent.id))) or 0
                unacknowledged = await db.scalar(
                    select(func.count(AlertEvent.id)).where(AlertEvent.acknowledged == False)  # noqa: E712
                ) or 0
                by_type = await db.execute(
                    select(AlertEvent.type, func.count(AlertEvent.id)).group_by(AlertEvent.type)
                )
                by_priority = await db.execute(
                    select(AlertEvent.priority, func.count(AlertEvent.id)).group_by(AlertEvent.priority)
                )
                return {
                    "total": total,
                    "unacknowledged": unacknowledged,
                    "by_type": {row[0]: row[1] for row in by_type.all()},
                    "by_priority": {Priority.parse(row[0]).value: row[1] for row in by_priority.all()},
                }
        except SQLAlchemyError as e:
            logger.error(f"Failed to compute event stats: {e}")
            raise StoreFailure(str(e)) from e
