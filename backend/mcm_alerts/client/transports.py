"""
Realtime transports: WebSocket, server-sent events and polling.

Each transport's run() calls on_subscribed() once the channel is live and
on_event(payload) for every delivered event. It returns when the server
closes the channel and raises RealtimeConnectionFailure on errors.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import websockets

from mcm_alerts.client.state import TransportKind
from mcm_alerts.core.exceptions import RealtimeConnectionFailure, TransportUnavailable
from mcm_alerts.core.sse import NOTIFICATION_EVENT, SUBSCRIBED_EVENT, parse_sse_lines
from mcm_alerts.core.timezone import utc_now

logger = logging.getLogger(__name__)

SubscribedCallback = Callable[[], None]
EventCallback = Callable[[Dict[str, Any]], None]


class Transport(ABC):
    kind: TransportKind
    
    @abstractmethod
    async def run(self, on_subscribed: SubscribedCallback, on_event: EventCallback) -> None:
        """Hold the channel open until it closes or fails"""


class WebSocketTransport(Transport):
    kind = TransportKind.WEBSOCKET
    
    def __init__(self, url: str, open_timeout: float = 10.0):
        if not url.startswith(("ws://", "wss://")):
            raise ValueError(f"Not a WebSocket URL: {url}")
        self.url = url
        self.open_timeout = open_timeout
    
    async def run(self, on_subscribed: SubscribedCallback, on_event: EventCallback) -> None:
        try:
            async with websockets.connect(self.url, open_timeout=self.open_timeout) as ws:
                async for raw in ws:
                    try:
                        message = json.loads(raw)
                    except ValueError:
                        continue
                    if not isinstance(message, dict):
                        continue
                    message_type = message.get("type")
                    if message_type == "subscribed":
                        on_subscribed()
                    elif message_type == "notification:new" and isinstance(message.get("data"), dict):
                        on_event(message["data"])
        except websockets.exceptions.ConnectionClosedOK:
            return
        except (websockets.exceptions.WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise RealtimeConnectionFailure(f"WebSocket error: {e}") from e


class SseTransport(Transport):
    kind = TransportKind.SSE
    
    def __init__(
        self,
        url: str,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.connect_timeout = connect_timeout
        self._transport = transport
    
    async def run(self, on_subscribed: SubscribedCallback, on_event: EventCallback) -> None:
        # No read timeout: the stream idles between events (server sends keep-alives)
        timeout = httpx.Timeout(self.connect_timeout, read=None)
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
                async with client.stream("GET", self.url, headers={"Accept": "text/event-stream"}) as response:
                    if response.status_code == 404:
                        raise TransportUnavailable(f"SSE endpoint not found: {self.url}")
                    if response.status_code != 200:
                        raise RealtimeConnectionFailure(f"SSE stream rejected ({response.status_code})")
                    async for event, data in parse_sse_lines(response.aiter_lines()):
                        if event == SUBSCRIBED_EVENT:
                            on_subscribed()
                        elif event == NOTIFICATION_EVENT and isinstance(data, dict):
                            on_event(data)
        except httpx.HTTPError as e:
            raise RealtimeConnectionFailure(f"SSE error: {e}") from e


class PollingTransport(Transport):
    """
    Periodic GET /events/poll?since=<cursor>.
    
    The cursor lives on the transport, so it survives reconnects and every
    poll only asks for events newer than the newest one already seen.
    """
    kind = TransportKind.POLLING
    
    def __init__(
        self,
        poll: Callable[[Optional[str]], Awaitable[Dict[str, Any]]],
        interval: float = 5.0,
        since: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._poll = poll
        self.interval = interval
        self.cursor = since or utc_now().isoformat()
        self._sleep = sleep
    
    async def run(self, on_subscribed: SubscribedCallback, on_event: EventCallback) -> None:
        subscribed = False
        while True:
            try:
                result = await self._poll(self.cursor)
            except httpx.HTTPError as e:
                raise RealtimeConnectionFailure(f"Polling failed: {e}") from e
            if not subscribed:
                subscribed = True
                on_subscribed()
            for event in result.get("events", []):
                on_event(event)
            if result.get("cursor"):
                self.cursor = result["cursor"]
            await self._sleep(self.interval)
