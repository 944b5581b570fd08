"""
Relay of signaling data, chat text and media status between paired connections
"""
import logging
from typing import Any, List

from stranger_relay.models import (
    NEW_MESSAGE,
    STRANGER_DISCONNECTED,
    STRANGER_MEDIA_STATUS,
    WEBRTC_SIGNAL,
    Connection,
    OutboundEvent,
    ServiceState,
)
from stranger_relay.pairing import Matcher

logger = logging.getLogger(__name__)


class Relay:
    """Forwards payloads to a partner without inspecting them"""

    def __init__(self, state: ServiceState, matcher: Matcher):
        self.state = state
        self.matcher = matcher

    def relay_signal(self, sender: Connection, to_id: str, signal: Any) -> List[OutboundEvent]:
        # Any connected id is a valid target, not only the current partner.
        if to_id not in self.state.connections:
            logger.debug(f"Relay: Dropping WebRTC signal from '{sender.id}' to unknown connection '{to_id}'.")
            return []
        logger.debug(f"Relay: WebRTC signal from '{sender.id}' to '{to_id}'.")
        return [OutboundEvent(to_id, WEBRTC_SIGNAL, {"from": sender.id, "signal": signal})]

    def relay_message(self, sender: Connection, text: str) -> List[OutboundEvent]:
        if not sender.is_paired:
            return []
        logger.debug(f"Relay: Message from '{sender.id}' to '{sender.partner_id}'.")
        return [OutboundEvent(sender.partner_id, NEW_MESSAGE, {"text": text})]

    def relay_media_status(self, sender: Connection, video: bool) -> List[OutboundEvent]:
        if not sender.is_paired:
            return []
        logger.debug(f"Relay: Media status (video={video}) from '{sender.id}' to '{sender.partner_id}'.")
        return [OutboundEvent(sender.partner_id, STRANGER_MEDIA_STATUS, {"video": video})]

    def end_chat(self, connection: Connection) -> List[OutboundEvent]:
        """Tear down the connection's pairing and queue membership.

        The former partner is told the stranger left and goes back to an
        unpaired, non-queued state; it is not re-enqueued. Calling this again
        for the same connection produces no events.
        """
        events: List[OutboundEvent] = []
        partner_id = self.matcher.unpair(connection)
        if partner_id is not None:
            events.append(OutboundEvent(partner_id, STRANGER_DISCONNECTED))
        self.matcher.remove_from_queue(connection.id)
        return events
