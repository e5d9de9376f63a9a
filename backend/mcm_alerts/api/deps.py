"""
API Dependencies
"""
from fastapi import Request, WebSocket

from mcm_alerts.services.backend import AlertBackend


def get_backend(request: Request) -> AlertBackend:
    """The alert backend attached to the application at startup"""
    return request.app.state.backend


def get_ws_backend(websocket: WebSocket) -> AlertBackend:
    return websocket.app.state.backend
