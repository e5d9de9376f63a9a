"""
Server-sent events framing for the realtime stream
"""
import asyncio
import json
from typing import Any, AsyncIterable, AsyncIterator, Dict, Optional, Tuple

from mcm_alerts.core.change_feed import ChangeFeed, END_OF_STREAM

SUBSCRIBED_EVENT = "subscribed"
NOTIFICATION_EVENT = "notification"
KEEP_ALIVE = ": keep-alive\n\n"


def format_sse(event: str, data: Any) -> str:
    """Encode one SSE frame. Multi-line payloads are split into data lines."""
    payload = data if isinstance(data, str) else json.dumps(data, default=str)
    lines = [f"event: {event}"]
    lines.extend(f"data: {line}" for line in payload.splitlines() or [""])
    return "\n".join(lines) + "\n\n"


async def sse_event_stream(feed: ChangeFeed, heartbeat_seconds: float) -> AsyncIterator[str]:
    """
    Stream new events from the change feed.
    
    Emits a subscribed acknowledgment first, then one notification frame per
    event, with keep-alive comments while idle. Ends when the feed stops.
    """
    async with feed.listen() as queue:
        yield format_sse(SUBSCRIBED_EVENT, {"status": "subscribed"})
        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                yield KEEP_ALIVE
                continue
            if event is END_OF_STREAM:
                return
            yield format_sse(NOTIFICATION_EVENT, event)


async def parse_sse_lines(lines: AsyncIterable[str]) -> AsyncIterator[Tuple[str, Optional[Dict[str, Any]]]]:
    """
    Decode an SSE line stream into (event, data) pairs.
    
    Comment lines are skipped. Data is JSON-decoded when possible.
    """
    event_name = "message"
    data_lines = []
    async for raw in lines:
        line = raw.rstrip("\r")
        if line == "":
            if data_lines:
                text = "\n".join(data_lines)
                try:
                    data = json.loads(text)
                except ValueError:
                    data = {"raw": text}
                yield event_name, data
            event_name = "message"
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)
