"""
Alert client runtime.

All inputs (pushed events, connection state changes, page visibility) are
turned into typed messages and routed through a single dispatch() call.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional, Union

import httpx

from mcm_alerts.client.api import AlertsApiClient
from mcm_alerts.client.messages import (
    ConnectionStateChanged,
    IncomingEvent,
    PushReceived,
    VisibilityChanged,
)
from mcm_alerts.client.presentation import Presentation, PresentationAdapter, PresentationEnvironment
from mcm_alerts.client.realtime import RealtimeClient, Scheduler
from mcm_alerts.client.state import ConnectionStatus
from mcm_alerts.client.transports import PollingTransport, SseTransport, WebSocketTransport
from mcm_alerts.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

Message = Union[PushReceived, ConnectionStateChanged, VisibilityChanged]
StatusObserver = Callable[[ConnectionStatus], None]


class AlertClient:
    
    def __init__(
        self,
        realtime: RealtimeClient,
        presentation: PresentationAdapter,
        api: Optional[AlertsApiClient] = None,
    ):
        self.realtime = realtime
        self.presentation = presentation
        self.api = api
        self.status: ConnectionStatus = realtime.status
        self._observers: List[StatusObserver] = []
        self._last_seen: Optional[datetime] = None
        self._catch_up: Optional[asyncio.Task] = None
        self._remove_listeners: List[Callable[[], None]] = []
    
    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        environment: Optional[PresentationEnvironment] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> "AlertClient":
        """WebSocket, then SSE, then polling against settings.api_base_url"""
        settings = settings or default_settings
        api = AlertsApiClient(settings.api_base_url)
        transports = [
            WebSocketTransport(settings.websocket_url, open_timeout=settings.realtime_connect_timeout),
            SseTransport(
                f"{settings.api_base_url.rstrip('/')}/events/stream",
                connect_timeout=settings.realtime_connect_timeout,
            ),
            PollingTransport(api.poll, interval=settings.poll_interval),
        ]
        realtime = RealtimeClient(
            transports,
            base_delay=settings.realtime_base_delay,
            max_delay=settings.realtime_max_delay,
            max_attempts=settings.realtime_max_attempts,
            scheduler=scheduler,
            seen_capacity=settings.seen_event_capacity,
        )
        presentation = PresentationAdapter(
            environment=environment,
            scheduler=scheduler,
            auto_dismiss_seconds=settings.auto_dismiss_seconds,
            seen_capacity=settings.seen_event_capacity,
            on_acknowledge=api.acknowledge,
        )
        return cls(realtime, presentation, api)
    
    def add_status_observer(self, observer: StatusObserver) -> Callable[[], None]:
        self._observers.append(observer)
        
        def remove():
            if observer in self._observers:
                self._observers.remove(observer)
        return remove
    
    def start(self):
        self._remove_listeners = [
            self.realtime.add_listener(lambda event: self.dispatch(PushReceived(event=event))),
            self.realtime.add_status_listener(
                lambda status: self.dispatch(ConnectionStateChanged(status=status))
            ),
        ]
        self.realtime.connect()
    
    async def stop(self):
        for remove in self._remove_listeners:
            remove()
        self._remove_listeners = []
        await self.realtime.stop()
        if self._catch_up is not None and not self._catch_up.done():
            self._catch_up.cancel()
            try:
                await self._catch_up
            except asyncio.CancelledError:
                pass
        self.presentation.clear()
        if self.api is not None:
            await self.api.close()
    
    def dispatch(self, message: Message) -> Optional[Presentation]:
        """Single routing point for every client-side input. Returns the presentation for new pushes."""
        if isinstance(message, PushReceived):
            return self._on_push(message)
        elif isinstance(message, ConnectionStateChanged):
            self._on_status(message.status)
        elif isinstance(message, VisibilityChanged):
            self._on_visibility(message.visible)
        else:
            raise TypeError(f"Unsupported message: {message!r}")
    
    def _on_push(self, message: PushReceived) -> Optional[Presentation]:
        event = message.event
        if event.created_at and (self._last_seen is None or event.created_at > self._last_seen):
            self._last_seen = event.created_at
        return self.presentation.present(event)
    
    def _on_status(self, status: ConnectionStatus):
        self.status = status
        for observer in list(self._observers):
            try:
                observer(status)
            except Exception as e:
                logger.error(f"Status observer failed: {e}")
    
    def _on_visibility(self, visible: bool):
        self.realtime.handle_visibility_change(visible)
        if visible and self.status.is_connected and self.api is not None and self._last_seen is not None:
            if self._catch_up is None or self._catch_up.done():
                self._catch_up = asyncio.ensure_future(self.check_for_missed())
    
    async def check_for_missed(self) -> int:
        """Fetch events created while the page was hidden. Returns how many were presented."""
        if self.api is None:
            return 0
        since = self._last_seen.isoformat() if self._last_seen else None
        try:
            result = await self.api.poll(since)
        except httpx.HTTPError as e:
            logger.warning(f"Missed-event check failed: {e}")
            return 0
        presented = 0
        for payload in result.get("events", []):
            try:
                event = IncomingEvent.from_payload(payload)
            except ValueError as e:
                logger.warning(f"Ignoring malformed event payload: {e}")
                continue
            if self.dispatch(PushReceived(event=event, source="catch_up")) is not None:
                presented += 1
        return presented
