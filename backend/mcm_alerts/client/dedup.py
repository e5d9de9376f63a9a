"""
Bounded set of already-seen event ids
"""
from collections import OrderedDict
from typing import Any, Hashable


class SeenIds:
    """Insertion-ordered; the oldest id is evicted once capacity is reached"""
    
    def __init__(self, capacity: int = 200):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._ids: "OrderedDict[Hashable, None]" = OrderedDict()
    
    def __contains__(self, event_id: Any) -> bool:
        return self._key(event_id) in self._ids
    
    def __len__(self) -> int:
        return len(self._ids)
    
    def add(self, event_id: Any) -> bool:
        """Record an id. Returns False when it was already present."""
        key = self._key(event_id)
        if key in self._ids:
            return False
        self._ids[key] = None
        while len(self._ids) > self.capacity:
            self._ids.popitem(last=False)
        return True
    
    def clear(self):
        self._ids.clear()
    
    @staticmethod
    def _key(event_id: Any) -> str:
        # Ids arrive as ints from JSON bodies and as strings from some push payloads
        return str(event_id)
