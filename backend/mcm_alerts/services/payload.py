"""
Push payload construction.

Maps an alert event onto the JSON document the service worker renders.
Total over priorities: every priority has a profile.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from mcm_alerts.core.config import settings
from mcm_alerts.core.priority import Priority, profile_for
from mcm_alerts.core.timezone import ensure_utc


def event_tag(event_id: Any) -> str:
    """Notification tag; browsers collapse notifications with the same tag"""
    return f"mcm-{event_id}"


@dataclass(frozen=True)
class PushPayload:
    title: str
    body: str
    icon: str
    badge: str
    tag: str
    require_interaction: bool
    vibrate: List[int]
    actions: List[Dict[str, str]]
    data: Dict[str, Any] = field(default_factory=dict)
    ttl: int = 3600
    urgency: str = "normal"
    
    def to_message(self) -> Dict[str, Any]:
        """The document sent through the push service (TTL/urgency travel as headers)"""
        return {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "tag": self.tag,
            "requireInteraction": self.require_interaction,
            "vibrate": list(self.vibrate),
            "actions": [dict(action) for action in self.actions],
            "data": self.data,
        }
    
    def to_json(self) -> str:
        return json.dumps(self.to_message(), default=str)


def build_push_payload(
    event_id: Any,
    title: str,
    body: str,
    type: str = "alert",
    priority: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
    url: Optional[str] = None,
    icon: Optional[str] = None,
    badge: Optional[str] = None,
    default_url: Optional[str] = None,
) -> PushPayload:
    """
    Build the push payload for an alert.
    
    Args:
        event_id: Event id (also the notification tag suffix)
        title: Alert title
        body: Alert body
        type: Alert type tag
        priority: Priority or raw priority string
        metadata: Producer metadata, passed through untouched
        created_at: Event creation time
        url: URL opened when the notification is clicked
        icon: Override for the notification icon
        badge: Override for the notification badge
        default_url: Click target when neither url nor metadata names one
    
    Returns:
        PushPayload with the priority profile applied
    """
    level = Priority.parse(priority)
    profile = profile_for(level)
    metadata = metadata or {}
    created = ensure_utc(created_at)
    
    return PushPayload(
        title=title,
        body=body,
        icon=icon or settings.push_icon,
        badge=badge or settings.push_badge,
        tag=event_tag(event_id),
        require_interaction=profile.require_interaction,
        vibrate=profile.vibrate_list(),
        actions=profile.action_list(),
        data={
            "eventId": event_id,
            "type": type,
            "priority": level.value,
            "metadata": metadata,
            "url": url or metadata.get("url") or default_url or settings.push_default_url,
            "createdAt": created.isoformat() if created else None,
        },
        ttl=profile.ttl,
        urgency=profile.urgency,
    )
