"""
Realtime Transport Client

Keeps one live channel to the server, reconnecting with exponential backoff
and falling back WebSocket -> SSE -> polling when a transport exhausts its
retries. Every event is forwarded to listeners once, deduplicated by id.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from mcm_alerts.client.backoff import compute_backoff_delay
from mcm_alerts.client.dedup import SeenIds
from mcm_alerts.client.messages import IncomingEvent
from mcm_alerts.client.state import ConnectionState, ConnectionStatus
from mcm_alerts.client.transports import Transport
from mcm_alerts.core.exceptions import RealtimeConnectionFailure, TransportUnavailable

logger = logging.getLogger(__name__)

EventListener = Callable[[IncomingEvent], None]
StatusListener = Callable[[ConnectionStatus], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules callbacks on the running asyncio loop"""
    
    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class RealtimeClient:
    """
    Usage:
        client = RealtimeClient([WebSocketTransport(url), SseTransport(sse_url)])
        remove = client.add_listener(lambda event: print(event.title))
        client.connect()
        ...
        await client.stop()
    """
    
    def __init__(
        self,
        transports: Sequence[Transport],
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        max_attempts: int = 5,
        scheduler: Optional[Scheduler] = None,
        seen_capacity: int = 200,
    ):
        if not transports:
            raise ValueError("At least one transport is required")
        self._transports = list(transports)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self._scheduler = scheduler or LoopScheduler()
        self._seen = SeenIds(seen_capacity)
        
        self._listeners: List[EventListener] = []
        self._status_listeners: List[StatusListener] = []
        self._state = ConnectionState.DISCONNECTED
        self._tier = 0
        self._attempts = 0
        self._fallback_engaged = False
        self._timer: Optional[TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        # Bumped on every open/disconnect; callbacks from older runs are ignored
        self._generation = 0
    
    # ============== Observable state ==============
    
    @property
    def state(self) -> ConnectionState:
        return self._state
    
    @property
    def attempts(self) -> int:
        return self._attempts
    
    @property
    def transport(self) -> Transport:
        return self._transports[self._tier]
    
    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None
    
    @property
    def status(self) -> ConnectionStatus:
        idle = (ConnectionState.DISCONNECTED, ConnectionState.GIVEN_UP)
        connected_kind = None if self._state in idle else self.transport.kind
        return ConnectionStatus(
            state=self._state,
            connection_type=connected_kind,
            attempts=self._attempts,
            fallback_engaged=self._fallback_engaged,
        )
    
    def add_listener(self, listener: EventListener) -> Callable[[], None]:
        """Register an event listener. Returns a function that removes it."""
        self._listeners.append(listener)
        
        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return remove
    
    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        self._status_listeners.append(listener)
        
        def remove():
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)
        return remove
    
    # ============== Lifecycle ==============
    
    def connect(self):
        """Open the current transport unless a connection is live or opening"""
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return
        self._cancel_timer()
        self._open()
    
    def start(self):
        self.connect()
    
    def disconnect(self):
        """Safe from any state: tears down the channel, timers, counter, tier and listeners"""
        self._generation += 1
        self._cancel_timer()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._attempts = 0
        self._tier = 0
        self._fallback_engaged = False
        self._listeners.clear()
        self._set_state(ConnectionState.DISCONNECTED)
    
    async def stop(self):
        """disconnect() and wait for the transport task to unwind"""
        task = self._task
        self.disconnect()
        self._status_listeners.clear()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
    
    def handle_visibility_change(self, visible: bool):
        """Becoming visible while disconnected or given up reconnects from the primary transport"""
        if not visible:
            return
        if self._state in (ConnectionState.DISCONNECTED, ConnectionState.GIVEN_UP):
            logger.info("Page visible again, reconnecting")
            self._cancel_timer()
            self._attempts = 0
            self._tier = 0
            self._fallback_engaged = False
            self._open()
    
    # ============== State machine ==============
    
    def _open(self):
        self._generation += 1
        generation = self._generation
        transport = self.transport
        self._set_state(ConnectionState.CONNECTING)
        logger.info(f"Connecting via {transport.kind.value} (attempt {self._attempts})")
        self._task = asyncio.ensure_future(self._run(transport, generation))
    
    async def _run(self, transport: Transport, generation: int):
        try:
            await transport.run(
                lambda: self._on_subscribed(generation),
                lambda payload: self._on_event(generation, payload),
            )
        except TransportUnavailable as e:
            if generation == self._generation:
                logger.warning(f"{transport.kind.value} unavailable: {e}")
                self._set_state(ConnectionState.ERROR)
                self._fall_back()
            return
        except RealtimeConnectionFailure as e:
            if generation == self._generation:
                logger.warning(f"{transport.kind.value} connection failed: {e}")
                self._handle_failure(ConnectionState.ERROR)
            return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if generation == self._generation:
                logger.exception(f"Unexpected {transport.kind.value} transport error: {e}")
                self._handle_failure(ConnectionState.ERROR)
            return
        
        if generation == self._generation:
            logger.info(f"{transport.kind.value} channel closed")
            self._handle_failure(ConnectionState.CLOSED)
    
    def _on_subscribed(self, generation: int):
        if generation != self._generation:
            return
        self._set_state(ConnectionState.CONNECTED)
    
    def _on_event(self, generation: int, payload: Dict[str, Any]):
        if generation != self._generation:
            return
        self._attempts = 0
        try:
            event = IncomingEvent.from_payload(payload)
        except (ValueError, TypeError) as e:
            logger.warning(f"Ignoring malformed event payload: {e}")
            return
        if not self._seen.add(event.id):
            logger.debug(f"Duplicate event {event.id} ignored")
            return
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Event listener failed for event {event.id}: {e}")
    
    def _handle_failure(self, state: ConnectionState):
        self._set_state(state)
        if self._attempts >= self.max_attempts:
            self._fall_back()
            return
        delay = compute_backoff_delay(self._attempts, self.base_delay, self.max_delay)
        self._schedule_reconnect(delay)
    
    def _fall_back(self):
        if self._tier + 1 >= len(self._transports):
            logger.warning("All transports exhausted, giving up until the page becomes visible again")
            self._cancel_timer()
            self._set_state(ConnectionState.GIVEN_UP)
            return
        previous = self.transport.kind.value
        self._tier += 1
        self._attempts = 0
        self._fallback_engaged = True
        logger.warning(f"Falling back from {previous} to {self.transport.kind.value}")
        self._open()
    
    def _schedule_reconnect(self, delay: float):
        self._cancel_timer()
        self._set_state(ConnectionState.RECONNECT_SCHEDULED)
        logger.info(f"Reconnecting in {delay:.1f}s")
        self._timer = self._scheduler.call_later(delay, self._on_timer)
    
    def _on_timer(self):
        self._timer = None
        if self._state != ConnectionState.RECONNECT_SCHEDULED:
            return
        self._attempts += 1
        self._open()
    
    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
    
    def _set_state(self, state: ConnectionState):
        if state == self._state:
            return
        self._state = state
        status = self.status
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Status listener failed: {e}")
