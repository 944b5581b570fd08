"""
Stranger pairing logic: FIFO waiting queue and the pairing link between two connections
"""
import logging
from typing import List, Optional

from stranger_relay.models import (
    STRANGER_FOUND,
    Connection,
    OutboundEvent,
    ServiceState,
)

logger = logging.getLogger(__name__)


class Matcher:
    """Admits match requests into the waiting queue and forms pairings"""

    def __init__(self, state: ServiceState):
        self.state = state

    def request_match(self, connection: Connection, desired_mode: str) -> List[OutboundEvent]:
        """Queue a connection looking for a stranger and pair the two oldest waiters if possible"""
        if connection.is_paired:
            logger.info(f"Pairing: '{connection.id}' is already paired with '{connection.partner_id}'. Ignoring find-stranger.")
            return []
        if self.state.is_waiting(connection.id):
            logger.info(f"Pairing: '{connection.id}' is already waiting. Ignoring duplicate find-stranger.")
            return []

        connection.desired_mode = desired_mode
        self.state.waiting_queue.append(connection.id)
        logger.info(f"Pairing: '{connection.id}' is looking for a {desired_mode} chat. Waiting: {len(self.state.waiting_queue)}")

        if len(self.state.waiting_queue) < 2:
            return []

        peer_a_id = self.state.waiting_queue.pop(0)
        peer_b_id = self.state.waiting_queue.pop(0)
        peer_a = self.state.connections[peer_a_id]
        peer_b = self.state.connections[peer_b_id]
        self.pair(peer_a, peer_b)

        return [
            OutboundEvent(peer_a.id, STRANGER_FOUND, {"id": peer_b.id, "callType": peer_b.desired_mode}),
            OutboundEvent(peer_b.id, STRANGER_FOUND, {"id": peer_a.id, "callType": peer_a.desired_mode}),
        ]

    def pair(self, peer_a: Connection, peer_b: Connection) -> None:
        """Link two unpaired connections to each other"""
        if peer_a.id == peer_b.id:
            raise ValueError(f"Cannot pair connection '{peer_a.id}' with itself")
        if peer_a.is_paired or peer_b.is_paired:
            raise ValueError(f"Cannot pair '{peer_a.id}' and '{peer_b.id}': one of them already has a partner")

        peer_a.partner_id = peer_b.id
        peer_b.partner_id = peer_a.id
        logger.info(f"Pairing: Paired '{peer_a.id}' ({peer_a.desired_mode}) with '{peer_b.id}' ({peer_b.desired_mode}).")

    def unpair(self, connection: Connection) -> Optional[str]:
        """Break the connection's pairing on both sides. Returns the former partner id, if any."""
        partner_id = connection.partner_id
        if partner_id is None:
            return None

        connection.partner_id = None
        partner = self.state.get(partner_id)
        if partner is not None and partner.partner_id == connection.id:
            partner.partner_id = None
        logger.info(f"Pairing: Unpaired '{connection.id}' from '{partner_id}'.")
        return partner_id

    def remove_from_queue(self, connection_id: str) -> bool:
        if connection_id not in self.state.waiting_queue:
            return False
        self.state.waiting_queue.remove(connection_id)
        logger.info(f"Pairing: '{connection_id}' removed from waiting queue. Waiting: {len(self.state.waiting_queue)}")
        return True
