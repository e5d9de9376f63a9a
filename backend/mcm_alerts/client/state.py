"""
Realtime connection state
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    CLOSED = "closed"
    RECONNECT_SCHEDULED = "reconnect_scheduled"
    GIVEN_UP = "given_up"


class TransportKind(str, Enum):
    """Fallback ladder, in order of preference"""
    WEBSOCKET = "websocket"
    SSE = "sse"
    POLLING = "polling"


@dataclass(frozen=True)
class ConnectionStatus:
    """Snapshot for the connection indicator"""
    state: ConnectionState
    connection_type: Optional[TransportKind]
    attempts: int = 0
    fallback_engaged: bool = False
    
    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED
