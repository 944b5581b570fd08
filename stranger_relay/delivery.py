"""
Outbound delivery: per-connection outboxes drained by a writer task
"""
import asyncio
import json
import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import WebSocket

from stranger_relay.models import OutboundEvent

logger = logging.getLogger(__name__)


class Outboxes:
    """Maps connection ids to their pending outbound frames"""

    def __init__(self):
        self._queues: Dict[str, "asyncio.Queue[Optional[Dict[str, Any]]]"] = {}

    def open(self, connection_id: str) -> "asyncio.Queue[Optional[Dict[str, Any]]]":
        queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self._queues[connection_id] = queue
        return queue

    def close(self, connection_id: str) -> None:
        queue = self._queues.pop(connection_id, None)
        if queue is not None:
            # Wakes the writer so it can exit
            queue.put_nowait(None)

    def deliver(self, events: Iterable[OutboundEvent]) -> int:
        """Queue each event on its target's outbox. Events for unknown targets are dropped."""
        delivered = 0
        for event in events:
            queue = self._queues.get(event.target_id)
            if queue is None:
                logger.debug(f"Delivery: No outbox for '{event.target_id}', dropping '{event.event}'.")
                continue
            queue.put_nowait(event.to_frame())
            delivered += 1
        return delivered

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._queues

    def __len__(self) -> int:
        return len(self._queues)


async def pump_outbox(websocket: WebSocket, connection_id: str,
                      queue: "asyncio.Queue[Optional[Dict[str, Any]]]") -> None:
    """Send queued frames to the websocket in order until the outbox is closed"""
    while True:
        frame = await queue.get()
        if frame is None:
            return
        try:
            await websocket.send_text(json.dumps(frame))
        except Exception as e:
            logger.warning(f"Delivery: Error sending '{frame.get('event')}' to '{connection_id}': {e}")
            return
