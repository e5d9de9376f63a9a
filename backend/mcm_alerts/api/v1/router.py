"""
API v1 Router - combines all route modules
"""
from fastapi import APIRouter

from mcm_alerts.api.v1.endpoints import alerts, events, push, subscriptions, websocket

api_router = APIRouter()

api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["Subscriptions"])
api_router.include_router(events.router, prefix="/events", tags=["Events"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["Alerts"])
api_router.include_router(push.router, prefix="/push", tags=["Push Notifications"])
api_router.include_router(websocket.router, tags=["WebSocket"])
