"""
Tests for the SSE, polling and WebSocket transports
"""
import httpx
import pytest

from mcm_alerts.client.transports import PollingTransport, SseTransport, WebSocketTransport
from mcm_alerts.core.exceptions import RealtimeConnectionFailure, TransportUnavailable
from mcm_alerts.core.sse import KEEP_ALIVE, format_sse


class StopPolling(Exception):
    pass


class Recorder:
    def __init__(self):
        self.subscribed = 0
        self.events = []
    
    def on_subscribed(self):
        self.subscribed += 1
    
    def on_event(self, payload):
        self.events.append(payload)


class TestSseTransport:
    
    @pytest.mark.asyncio
    async def test_reads_subscribed_and_notifications(self):
        body = (
            format_sse("subscribed", {"status": "subscribed"})
            + KEEP_ALIVE
            + format_sse("notification", {"id": 1, "title": "t", "body": "b"})
            + format_sse("notification", {"id": 2, "title": "t", "body": "b"})
        )
        
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["accept"] == "text/event-stream"
            return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})
        
        recorder = Recorder()
        transport = SseTransport("http://test/api/v1/events/stream", transport=httpx.MockTransport(handler))
        
        # Stream end is a clean close
        await transport.run(recorder.on_subscribed, recorder.on_event)
        
        assert recorder.subscribed == 1
        assert [event["id"] for event in recorder.events] == [1, 2]
    
    @pytest.mark.asyncio
    async def test_missing_endpoint_is_unavailable(self):
        transport = SseTransport(
            "http://test/stream",
            transport=httpx.MockTransport(lambda request: httpx.Response(404)),
        )
        
        with pytest.raises(TransportUnavailable):
            await transport.run(lambda: None, lambda payload: None)
    
    @pytest.mark.asyncio
    async def test_server_error_is_connection_failure(self):
        transport = SseTransport(
            "http://test/stream",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        
        with pytest.raises(RealtimeConnectionFailure):
            await transport.run(lambda: None, lambda payload: None)
    
    @pytest.mark.asyncio
    async def test_network_error_is_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        
        transport = SseTransport("http://test/stream", transport=httpx.MockTransport(handler))
        
        with pytest.raises(RealtimeConnectionFailure):
            await transport.run(lambda: None, lambda payload: None)


class TestPollingTransport:
    
    @pytest.mark.asyncio
    async def test_cursor_advances_and_survives_reconnect(self):
        cursors = []
        responses = [
            {"events": [{"id": 1}, {"id": 2}], "cursor": "2026-01-01T00:00:02Z"},
            {"events": [], "cursor": "2026-01-01T00:00:02Z"},
            {"events": [{"id": 3}], "cursor": "2026-01-01T00:00:03Z"},
        ]
        
        async def poll(since):
            cursors.append(since)
            return responses.pop(0)
        
        sleeps = []
        
        async def sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) >= 2:
                raise StopPolling()
        
        recorder = Recorder()
        transport = PollingTransport(poll, interval=5.0, since="2026-01-01T00:00:00Z", sleep=sleep)
        
        with pytest.raises(StopPolling):
            await transport.run(recorder.on_subscribed, recorder.on_event)
        
        assert recorder.subscribed == 1
        assert [event["id"] for event in recorder.events] == [1, 2]
        assert cursors == ["2026-01-01T00:00:00Z", "2026-01-01T00:00:02Z"]
        assert sleeps == [5.0, 5.0]
        
        # A later run continues from the stored cursor
        with pytest.raises(StopPolling):
            await transport.run(recorder.on_subscribed, recorder.on_event)
        assert cursors[-1] == "2026-01-01T00:00:02Z"
        assert transport.cursor == "2026-01-01T00:00:03Z"
        assert recorder.subscribed == 2
    
    @pytest.mark.asyncio
    async def test_http_error_is_connection_failure(self):
        async def poll(since):
            raise httpx.ConnectError("connection refused")
        
        transport = PollingTransport(poll)
        
        with pytest.raises(RealtimeConnectionFailure):
            await transport.run(lambda: None, lambda payload: None)
    
    def test_default_cursor_is_now(self):
        async def poll(since):
            return {"events": []}
        
        assert PollingTransport(poll).cursor.endswith("+00:00")


class TestWebSocketTransport:
    
    def test_rejects_http_url(self):
        with pytest.raises(ValueError):
            WebSocketTransport("http://localhost:8000/api/v1/ws")
    
    @pytest.mark.asyncio
    async def test_refused_connection_is_failure(self):
        transport = WebSocketTransport("ws://127.0.0.1:9/api/v1/ws", open_timeout=2)
        
        with pytest.raises(RealtimeConnectionFailure):
            await transport.run(lambda: None, lambda payload: None)
