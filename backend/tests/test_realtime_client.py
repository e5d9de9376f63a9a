"""
Tests for the realtime client's reconnect, fallback and dedup behavior
"""
import asyncio

import pytest

from mcm_alerts.client.backoff import compute_backoff_delay
from mcm_alerts.client.realtime import RealtimeClient
from mcm_alerts.client.state import ConnectionState, TransportKind
from mcm_alerts.client.transports import Transport
from mcm_alerts.core.exceptions import RealtimeConnectionFailure, TransportUnavailable


class ScriptedTransport(Transport):
    """Each run() consumes one scripted outcome: fail, unavailable, close or hold"""
    
    def __init__(self, kind: TransportKind, outcomes=None, default: str = "fail"):
        self.kind = kind
        self.outcomes = list(outcomes or [])
        self.default = default
        self.runs = 0
        self.on_event = None
    
    async def run(self, on_subscribed, on_event):
        self.runs += 1
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if outcome == "fail":
            raise RealtimeConnectionFailure("connection refused")
        if outcome == "unavailable":
            raise TransportUnavailable("not supported")
        if outcome == "close":
            return
        on_subscribed()
        self.on_event = on_event
        await asyncio.Event().wait()


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


def event(event_id, **extra):
    return {"id": event_id, "title": f"Alert {event_id}", "body": "b", "priority": "high", **extra}


class TestBackoff:
    
    @pytest.mark.parametrize(
        "attempt,expected",
        [(0, 1.0), (1, 2.0), (2, 4.0), (3, 8.0), (4, 16.0), (5, 30.0), (50, 30.0), (-1, 1.0)],
    )
    def test_compute_backoff_delay(self, attempt, expected):
        assert compute_backoff_delay(attempt, 1.0, 30.0) == expected


class TestReconnect:
    
    @pytest.mark.asyncio
    async def test_three_failures_back_off_then_connect(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET, outcomes=["fail"] * 3, default="hold")
        client = RealtimeClient([transport], scheduler=scheduler)
        
        client.connect()
        delays = []
        for _ in range(3):
            await settle()
            assert client.state == ConnectionState.RECONNECT_SCHEDULED
            assert len(scheduler.pending) == 1
            delays.append(scheduler.fire_next().delay)
        
        assert delays == [1.0, 2.0, 4.0]
        assert client.attempts == 3
        await settle()
        assert client.state == ConnectionState.CONNECTED
        assert transport.runs == 4
        assert scheduler.pending == []
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_gives_up_after_ceiling(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET)
        client = RealtimeClient([transport], max_attempts=2, scheduler=scheduler)
        
        client.connect()
        await settle()
        scheduler.fire_next()
        await settle()
        scheduler.fire_next()
        await settle()
        
        assert client.state == ConnectionState.GIVEN_UP
        assert scheduler.pending == []
        assert transport.runs == 3
        
        await asyncio.sleep(0.01)
        assert transport.runs == 3
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_visibility_reconnects_after_giving_up(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET, outcomes=["fail"], default="hold")
        client = RealtimeClient([transport], max_attempts=0, scheduler=scheduler)
        
        client.connect()
        await settle()
        assert client.state == ConnectionState.GIVEN_UP
        
        client.handle_visibility_change(False)
        assert client.state == ConnectionState.GIVEN_UP
        
        client.handle_visibility_change(True)
        await settle()
        
        assert client.state == ConnectionState.CONNECTED
        assert client.attempts == 0
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_server_close_schedules_reconnect(self, scheduler):
        transport = ScriptedTransport(TransportKind.SSE, outcomes=["close"], default="hold")
        client = RealtimeClient([transport], scheduler=scheduler)
        states = []
        client.add_status_listener(lambda status: states.append(status.state))
        
        client.connect()
        await settle()
        
        assert ConnectionState.CLOSED in states
        assert client.state == ConnectionState.RECONNECT_SCHEDULED
        scheduler.fire_next()
        await settle()
        assert client.state == ConnectionState.CONNECTED
        await client.stop()


class TestFallback:
    
    @pytest.mark.asyncio
    async def test_falls_back_to_sse_after_retries(self, scheduler):
        websocket = ScriptedTransport(TransportKind.WEBSOCKET)
        sse = ScriptedTransport(TransportKind.SSE, default="hold")
        client = RealtimeClient([websocket, sse], max_attempts=1, scheduler=scheduler)
        
        client.connect()
        await settle()
        scheduler.fire_next()
        await settle()
        
        status = client.status
        assert status.is_connected
        assert status.connection_type == TransportKind.SSE
        assert status.fallback_engaged is True
        assert websocket.runs == 2
        assert sse.runs == 1
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_unavailable_transport_is_skipped_immediately(self, scheduler):
        websocket = ScriptedTransport(TransportKind.WEBSOCKET, default="unavailable")
        sse = ScriptedTransport(TransportKind.SSE, default="unavailable")
        polling = ScriptedTransport(TransportKind.POLLING, default="hold")
        client = RealtimeClient([websocket, sse, polling], scheduler=scheduler)
        
        client.connect()
        await settle()
        
        assert client.status.connection_type == TransportKind.POLLING
        assert client.state == ConnectionState.CONNECTED
        assert scheduler.pending == []
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_exhausting_last_tier_gives_up(self, scheduler):
        websocket = ScriptedTransport(TransportKind.WEBSOCKET, default="unavailable")
        polling = ScriptedTransport(TransportKind.POLLING)
        client = RealtimeClient([websocket, polling], max_attempts=0, scheduler=scheduler)
        
        client.connect()
        await settle()
        
        assert client.state == ConnectionState.GIVEN_UP
        assert client.status.fallback_engaged is True
        assert client.status.connection_type is None
        assert client.status.is_connected is False
        await client.stop()


class TestEvents:
    
    @pytest.mark.asyncio
    async def test_events_forwarded_once_per_id(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET, default="hold")
        client = RealtimeClient([transport], scheduler=scheduler)
        received = []
        client.add_listener(received.append)
        
        client.connect()
        await settle()
        transport.on_event(event(1))
        transport.on_event(event(1))
        transport.on_event(event(2))
        
        assert [item.id for item in received] == [1, 2]
        assert received[0].title == "Alert 1"
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_event_resets_attempt_counter(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET, outcomes=["fail", "fail"], default="hold")
        client = RealtimeClient([transport], scheduler=scheduler)
        
        client.connect()
        await settle()
        scheduler.fire_next()
        await settle()
        scheduler.fire_next()
        await settle()
        assert client.state == ConnectionState.CONNECTED
        assert client.attempts == 2
        
        transport.on_event(event(1))
        
        assert client.attempts == 0
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET, default="hold")
        client = RealtimeClient([transport], scheduler=scheduler)
        received = []
        
        def broken(item):
            raise RuntimeError("listener bug")
        
        client.add_listener(broken)
        client.add_listener(received.append)
        client.connect()
        await settle()
        transport.on_event(event(1))
        
        assert [item.id for item in received] == [1]
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_remove_listener(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET, default="hold")
        client = RealtimeClient([transport], scheduler=scheduler)
        received = []
        remove = client.add_listener(received.append)
        
        client.connect()
        await settle()
        remove()
        remove()
        transport.on_event(event(1))
        
        assert received == []
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_seen_ids_are_bounded(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET, default="hold")
        client = RealtimeClient([transport], scheduler=scheduler, seen_capacity=2)
        received = []
        client.add_listener(received.append)
        
        client.connect()
        await settle()
        for event_id in (1, 2, 3, 1):
            transport.on_event(event(event_id))
        
        # id 1 was evicted by 3, so it is forwarded again
        assert [item.id for item in received] == [1, 2, 3, 1]
        await client.stop()


class TestDisconnect:
    
    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_timer(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET)
        client = RealtimeClient([transport], scheduler=scheduler)
        
        client.connect()
        await settle()
        timer = scheduler.pending[0]
        
        client.disconnect()
        
        assert timer.cancelled
        assert client.state == ConnectionState.DISCONNECTED
        assert client.attempts == 0
        assert not client.has_pending_timer
    
    @pytest.mark.asyncio
    async def test_disconnect_tears_down_live_channel_and_listeners(self, scheduler):
        transport = ScriptedTransport(TransportKind.WEBSOCKET, default="hold")
        client = RealtimeClient([transport], scheduler=scheduler)
        received = []
        client.add_listener(received.append)
        client.connect()
        await settle()
        stale_callback = transport.on_event
        
        client.disconnect()
        await settle()
        stale_callback(event(1))
        
        assert received == []
        assert client.state == ConnectionState.DISCONNECTED
        
        client.add_listener(received.append)
        client.connect()
        await settle()
        transport.on_event(event(2))
        assert [item.id for item in received] == [2]
        await client.stop()
    
    @pytest.mark.asyncio
    async def test_disconnect_is_safe_from_any_state(self, scheduler):
        client = RealtimeClient([ScriptedTransport(TransportKind.WEBSOCKET)], scheduler=scheduler)
        
        client.disconnect()
        client.disconnect()
        
        assert client.state == ConnectionState.DISCONNECTED
        await client.stop()
