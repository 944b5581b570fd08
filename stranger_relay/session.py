"""
Session manager: owns the matching state and dispatches inbound events to the Matcher and Relay.

Every method runs to completion without awaiting, so one event's state changes
are never interleaved with another's on the event loop. Methods return the
outbound events to deliver instead of sending them.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from stranger_relay.models import (
    DISCONNECT_CHAT,
    FIND_STRANGER,
    MEDIA_STATUS_CHANGED,
    SEND_MESSAGE,
    WEBRTC_SIGNAL,
    Connection,
    FindStrangerRequest,
    MediaStatusRequest,
    MessageRequest,
    OutboundEvent,
    ServiceState,
    SignalRequest,
)
from stranger_relay.pairing import Matcher
from stranger_relay.relay import Relay

logger = logging.getLogger(__name__)


class UnknownEventError(Exception):
    """Raised for an inbound event name the service does not handle"""
    def __init__(self, event: str):
        super().__init__(f"Unknown event '{event}'")
        self.event = event


class SessionManager:
    def __init__(self, state: Optional[ServiceState] = None):
        self.state = state if state is not None else ServiceState()
        self.matcher = Matcher(self.state)
        self.relay = Relay(self.state, self.matcher)

        self._handlers: Dict[str, Callable[[Connection, Any], List[OutboundEvent]]] = {
            FIND_STRANGER: self._on_find_stranger,
            WEBRTC_SIGNAL: self._on_webrtc_signal,
            SEND_MESSAGE: self._on_send_message,
            MEDIA_STATUS_CHANGED: self._on_media_status_changed,
            DISCONNECT_CHAT: self._on_disconnect_chat,
        }

    # --- Connection lifecycle ---

    def connect(self, connection_id: str) -> Connection:
        if connection_id in self.state.connections:
            raise ValueError(f"Connection id '{connection_id}' is already registered")
        connection = Connection(connection_id)
        self.state.connections[connection_id] = connection
        logger.info(f"User connected: '{connection_id}'. Total: {len(self.state.connections)}")
        return connection

    def disconnect(self, connection_id: str) -> List[OutboundEvent]:
        """Transport-level disconnect: tear down, then forget the connection"""
        connection = self.state.get(connection_id)
        if connection is None:
            return []
        events = self.relay.end_chat(connection)
        del self.state.connections[connection_id]
        logger.info(f"User disconnected: '{connection_id}'. Total: {len(self.state.connections)}")
        return events

    # --- Inbound events ---

    def handle_event(self, connection_id: str, event: str, data: Any = None) -> List[OutboundEvent]:
        """Dispatch one inbound event.

        Raises UnknownEventError for unhandled event names and
        pydantic.ValidationError for payloads missing expected fields; the
        caller drops the frame in both cases. Events from connections that are
        no longer registered are ignored.
        """
        handler = self._handlers.get(event)
        if handler is None:
            raise UnknownEventError(event)
        connection = self.state.get(connection_id)
        if connection is None:
            logger.debug(f"Ignoring '{event}' from unknown connection '{connection_id}'.")
            return []
        return handler(connection, data)

    def end_chat(self, connection_id: str) -> List[OutboundEvent]:
        connection = self.state.get(connection_id)
        if connection is None:
            return []
        return self.relay.end_chat(connection)

    def stats(self) -> Dict[str, int]:
        return {
            "connected_count": len(self.state.connections),
            "waiting_count": len(self.state.waiting_queue),
            "paired_count": self.state.paired_count() // 2,
        }

    # --- Handlers ---

    @staticmethod
    def _parse(model: type, data: Any) -> BaseModel:
        return model.model_validate(data if data is not None else {})

    def _on_find_stranger(self, connection: Connection, data: Any) -> List[OutboundEvent]:
        request = self._parse(FindStrangerRequest, data)
        return self.matcher.request_match(connection, request.type)

    def _on_webrtc_signal(self, connection: Connection, data: Any) -> List[OutboundEvent]:
        request = self._parse(SignalRequest, data)
        return self.relay.relay_signal(connection, request.to, request.signal)

    def _on_send_message(self, connection: Connection, data: Any) -> List[OutboundEvent]:
        request = self._parse(MessageRequest, data)
        return self.relay.relay_message(connection, request.text)

    def _on_media_status_changed(self, connection: Connection, data: Any) -> List[OutboundEvent]:
        request = self._parse(MediaStatusRequest, data)
        return self.relay.relay_media_status(connection, request.video)

    def _on_disconnect_chat(self, connection: Connection, data: Any) -> List[OutboundEvent]:
        logger.info(f"User ended chat: '{connection.id}'")
        return self.relay.end_chat(connection)
