"""
Data models and session state for the stranger relay service
"""
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel


# Inbound event names
FIND_STRANGER = "find-stranger"
WEBRTC_SIGNAL = "webrtc-signal"
SEND_MESSAGE = "send-message"
MEDIA_STATUS_CHANGED = "media-status-changed"
DISCONNECT_CHAT = "disconnect-chat"

# Outbound event names
CONNECTED = "connected"
STRANGER_FOUND = "stranger-found"
NEW_MESSAGE = "new-message"
STRANGER_MEDIA_STATUS = "stranger-media-status"
STRANGER_DISCONNECTED = "stranger-disconnected"


# Pydantic models for inbound payloads
class Envelope(BaseModel):
    event: str
    data: Optional[Any] = None


class FindStrangerRequest(BaseModel):
    type: str


class SignalRequest(BaseModel):
    to: str
    signal: Any


class MessageRequest(BaseModel):
    text: str


class MediaStatusRequest(BaseModel):
    video: bool


class OutboundEvent(NamedTuple):
    """An event addressed to one connection id, produced by the core and sent by the delivery layer."""
    target_id: str
    event: str
    data: Optional[Dict[str, Any]] = None

    def to_frame(self) -> Dict[str, Any]:
        return {"event": self.event, "data": self.data}


class Connection:
    """One client's live session"""
    def __init__(self, connection_id: str):
        self.id = connection_id
        # Chat type requested with find-stranger ("video", "audio", ...)
        self.desired_mode: Optional[str] = None
        # Id of the paired connection; a reference only, never ownership
        self.partner_id: Optional[str] = None

    @property
    def is_paired(self) -> bool:
        return self.partner_id is not None

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, desired_mode={self.desired_mode!r}, partner_id={self.partner_id!r})"


class ServiceState:
    """Container for all matching state"""
    def __init__(self):
        # connection_id -> Connection, for every live transport connection
        self.connections: Dict[str, Connection] = {}

        # Ids of connections that asked for a stranger and are not yet paired, oldest first
        self.waiting_queue: List[str] = []

    def get(self, connection_id: Optional[str]) -> Optional[Connection]:
        if connection_id is None:
            return None
        return self.connections.get(connection_id)

    def is_waiting(self, connection_id: str) -> bool:
        return connection_id in self.waiting_queue

    def paired_count(self) -> int:
        return sum(1 for conn in self.connections.values() if conn.is_paired)
