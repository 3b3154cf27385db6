# wastetrack/services/broadcaster.py
"""
Real-time fan-out of container status changes to WebSocket clients, grouped by
center room (center:<centerId>).

Delivery is best-effort and at-most-once: nothing is persisted or replayed, a
client that is not subscribed at publish time misses the event and is expected
to re-fetch on reconnect. A failing recipient never affects the others or the
publisher.
"""

import asyncio
from collections import defaultdict
from typing import Any, Dict, Protocol, Set

from wastetrack.config import settings
from wastetrack.constants import center_room
from wastetrack.utils.logger import get_logger

logger = get_logger(__name__)


class Connection(Protocol):
    async def send_json(self, data: Any) -> None: ...


class EventBroadcaster:
    def __init__(self, send_timeout: float = settings.BROADCAST_SEND_TIMEOUT_SECONDS):
        self.send_timeout = send_timeout
        self._rooms: Dict[str, Set[Connection]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def subscribe(self, connection: Connection, center_id) -> str:
        room = center_room(center_id)
        async with self._lock:
            self._rooms[room].add(connection)
        logger.debug(f"Joined {room} ({self.room_size(center_id)} connections)")
        return room

    async def unsubscribe(self, connection: Connection, center_id) -> str:
        room = center_room(center_id)
        async with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(connection)
                if not members:
                    del self._rooms[room]
        return room

    async def disconnect(self, connection: Connection) -> None:
        """Remove a closed connection from every room."""
        async with self._lock:
            for room in list(self._rooms):
                self._rooms[room].discard(connection)
                if not self._rooms[room]:
                    del self._rooms[room]

    def room_size(self, center_id) -> int:
        return len(self._rooms.get(center_room(center_id), ()))

    async def _send(self, connection: Connection, message: dict):
        # A stuck client is dropped from this delivery, not waited on
        await asyncio.wait_for(connection.send_json(message), timeout=self.send_timeout)

    async def publish(self, center_id, event: str, data: dict) -> int:
        """Send {event, data} to every subscriber of the center. Returns deliveries."""
        room = center_room(center_id)
        async with self._lock:
            recipients = list(self._rooms.get(room, ()))
        if not recipients:
            return 0

        message = {"event": event, "data": data}
        results = await asyncio.gather(
            *(self._send(conn, message) for conn in recipients), return_exceptions=True
        )
        delivered = 0
        for result in results:
            if isinstance(result, Exception):
                if isinstance(result, asyncio.TimeoutError):
                    result = f"no ack within {self.send_timeout}s"
                logger.warning(f"Broadcast to a {room} client failed: {result!r}")
            else:
                delivered += 1
        logger.info(f"📡 {event} → {room}: {delivered}/{len(recipients)} delivered")
        return delivered


broadcaster = EventBroadcaster()


def get_broadcaster() -> EventBroadcaster:
    """FastAPI dependency."""
    return broadcaster
