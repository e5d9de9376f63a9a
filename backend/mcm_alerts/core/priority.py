"""
Alert priorities and their delivery profiles
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Priority(str, Enum):
    """Alert priority. Stored as lowercase strings."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    
    @classmethod
    def parse(cls, value: Any) -> "Priority":
        """Normalize producer input. Unknown or missing values become MEDIUM."""
        if isinstance(value, Priority):
            return value
        if value is None:
            return cls.MEDIUM
        text = str(value).strip().lower()
        text = _PRIORITY_ALIASES.get(text, text)
        try:
            return cls(text)
        except ValueError:
            return cls.MEDIUM


_PRIORITY_ALIASES = {
    "urgent": "high",
    "critical": "high",
    "normal": "medium",
}


@dataclass(frozen=True)
class PriorityProfile:
    """How an alert of a given priority is presented and delivered"""
    require_interaction: bool
    vibrate: Tuple[int, ...]
    ttl: int
    urgency: str
    actions: Tuple[Dict[str, str], ...]
    
    def vibrate_list(self) -> List[int]:
        return list(self.vibrate)
    
    def action_list(self) -> List[Dict[str, str]]:
        return [dict(action) for action in self.actions]


_ACKNOWLEDGE = {"action": "acknowledge", "title": "Acknowledge"}
_VIEW = {"action": "view", "title": "View"}
_DISMISS = {"action": "dismiss", "title": "Dismiss"}

PRIORITY_PROFILES: Dict[Priority, PriorityProfile] = {
    Priority.HIGH: PriorityProfile(
        require_interaction=True,
        vibrate=(300, 100, 300, 100, 300),
        ttl=86400,
        urgency="high",
        actions=(_ACKNOWLEDGE, _VIEW),
    ),
    Priority.MEDIUM: PriorityProfile(
        require_interaction=False,
        vibrate=(200, 100, 200),
        ttl=3600,
        urgency="normal",
        actions=(_VIEW, _DISMISS),
    ),
    Priority.LOW: PriorityProfile(
        require_interaction=False,
        vibrate=(100,),
        ttl=3600,
        urgency="normal",
        actions=(_VIEW, _DISMISS),
    ),
}


def profile_for(priority: Optional[Any]) -> PriorityProfile:
    return PRIORITY_PROFILES[Priority.parse(priority)]
