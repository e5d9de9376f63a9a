"""
WebSocket Endpoint for real-time alert delivery
"""
import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from mcm_alerts.api.deps import get_ws_backend
from mcm_alerts.core.change_feed import END_OF_STREAM

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time alerts.
    
    Connect with: ws://host/api/v1/ws
    
    Messages sent:
    - {"type": "subscribed"} - once the connection is listening
    - {"type": "notification:new", "data": {...}} - one per new event
    - {"type": "pong"} - reply to {"type": "ping"} (plain "ping" gets "pong")
    """
    backend = get_ws_backend(websocket)
    await websocket.accept()
    
    async with backend.change_feed.listen() as queue:
        await websocket.send_json({"type": "subscribed"})
        forwarder = asyncio.create_task(_forward_events(websocket, queue))
        try:
            while True:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
                    continue
                try:
                    message = json.loads(data)
                except ValueError:
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
        except WebSocketDisconnect:
            logger.info("WebSocket client disconnected")
        finally:
            forwarder.cancel()
            try:
                await forwarder
            except asyncio.CancelledError:
                pass


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue):
    """Relay change-feed events to the client until the feed stops"""
    try:
        while True:
            event = await queue.get()
            if event is END_OF_STREAM:
                await websocket.close(code=1001, reason="Server shutting down")
                return
            await websocket.send_json({"type": "notification:new", "data": event})
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.warning(f"Failed to send to WebSocket client: {e}")
