"""
HTTP client for the MCM Alerts API
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class AlertsApiClient:
    """
    Thin async wrapper over the REST endpoints.
    
    Usage:
        api = AlertsApiClient("http://localhost:8000/api/v1")
        await api.publish("Site down", "example.com is not responding", priority="high")
        await api.close()
    """
    
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )
    
    async def close(self):
        await self._client.aclose()
    
    async def __aenter__(self) -> "AlertsApiClient":
        return self
    
    async def __aexit__(self, *exc_info):
        await self.close()
    
    async def register_subscription(
        self,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        response = await self._client.post(
            "/subscriptions",
            json={
                "endpoint": endpoint,
                "keys": {"p256dh": p256dh, "auth": auth},
                "userAgent": user_agent,
            },
        )
        response.raise_for_status()
        return response.json()
    
    async def unsubscribe(self, endpoint: str):
        response = await self._client.post("/subscriptions/unsubscribe", json={"endpoint": endpoint})
        response.raise_for_status()
    
    async def publish(
        self,
        title: str,
        body: str,
        type: str = "alert",
        priority: str = "medium",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        response = await self._client.post(
            "/events",
            json={
                "title": title,
                "body": body,
                "type": type,
                "priority": priority,
                "metadata": metadata or {},
            },
        )
        response.raise_for_status()
        return response.json()
    
    async def recent(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"limit": limit} if limit else None
        response = await self._client.get("/events", params=params)
        response.raise_for_status()
        return response.json()
    
    async def poll(self, since: Optional[str] = None) -> Dict[str, Any]:
        """Events newer than the cursor: {"events": [...], "cursor": ...}"""
        params = {"since": since} if since else None
        response = await self._client.get("/events/poll", params=params)
        response.raise_for_status()
        return response.json()
    
    async def acknowledge(self, event_id: Any) -> Dict[str, Any]:
        response = await self._client.put(f"/events/{event_id}")
        response.raise_for_status()
        return response.json()
    
    async def acknowledge_all(self) -> int:
        response = await self._client.put("/events", json={"acknowledgeAll": True})
        response.raise_for_status()
        return response.json()["acknowledged"]
