"""Model host connection status tracking."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    PROCESSING = "processing"
    ERROR = "error"


@dataclass
class ConnectionStatus:
    state: ConnectionState = ConnectionState.DISCONNECTED
    message: Optional[str] = "Not connected to model host"
    last_error: Optional[str] = None
    connected_at: Optional[float] = None
    disconnected_at: Optional[float] = None
    retry_count: int = 0
    next_retry_at: Optional[float] = None
