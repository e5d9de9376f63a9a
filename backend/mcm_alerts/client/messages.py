"""
Typed messages routed through the alert client runtime
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from mcm_alerts.client.state import ConnectionStatus
from mcm_alerts.core.priority import Priority
from mcm_alerts.core.timezone import parse_since


class MessageKind(str, Enum):
    PUSH_RECEIVED = "push_received"
    CONNECTION_STATE_CHANGED = "connection_state_changed"
    VISIBILITY_CHANGED = "visibility_changed"


@dataclass(frozen=True)
class IncomingEvent:
    """An alert as seen by the client, whatever channel it came through"""
    id: Any
    title: str
    body: str
    type: str = "alert"
    priority: Priority = Priority.MEDIUM
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    
    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "IncomingEvent":
        """
        Accepts the realtime/poll wire form ({"id", "body", "createdAt", ...})
        and the push message form ({"title", "body", "data": {"eventId", ...}}).
        """
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        event_id = payload.get("id", data.get("eventId"))
        if event_id is None:
            raise ValueError("Event payload has no id")
        created = payload.get("createdAt", payload.get("created_at", data.get("createdAt")))
        return cls(
            id=event_id,
            title=payload.get("title") or "",
            body=payload.get("body") or payload.get("message") or "",
            type=payload.get("type") or data.get("type") or "alert",
            priority=Priority.parse(payload.get("priority", data.get("priority"))),
            metadata=payload.get("metadata") or data.get("metadata") or {},
            created_at=parse_since(created) if created else None,
        )


@dataclass(frozen=True)
class PushReceived:
    event: IncomingEvent
    source: str = "realtime"
    kind: MessageKind = MessageKind.PUSH_RECEIVED


@dataclass(frozen=True)
class ConnectionStateChanged:
    status: ConnectionStatus
    kind: MessageKind = MessageKind.CONNECTION_STATE_CHANGED


@dataclass(frozen=True)
class VisibilityChanged:
    visible: bool
    kind: MessageKind = MessageKind.VISIBILITY_CHANGED
