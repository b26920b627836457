"""Per-user real-time push over WebSockets."""

import logging
from collections import defaultdict
from typing import Dict, Set

import anyio.from_thread
from fastapi import WebSocket

logger = logging.getLogger(__name__)


def user_room(user_id: int) -> str:
    return f"user-{user_id}"


class ConnectionManager:
    """
    Tracks open sockets by room and pushes events to them.

    Delivery is at-most-once: a socket that fails to receive is dropped and
    the event is not retried. Clients that were offline read the stored
    notification over REST instead.
    """

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = defaultdict(set)

    def join(self, user_id: int, websocket: WebSocket) -> None:
        self.rooms[user_room(user_id)].add(websocket)
        logger.debug(f"Socket joined {user_room(user_id)}")

    def leave(self, websocket: WebSocket) -> None:
        for room in list(self.rooms.keys()):
            self.rooms[room].discard(websocket)
            if not self.rooms[room]:
                del self.rooms[room]

    def is_connected(self, user_id: int) -> bool:
        return bool(self.rooms.get(user_room(user_id)))

    async def emit(self, user_id: int, event: str, data: dict) -> int:
        """Send an event to every socket in the user's room. Returns how many got it."""
        sockets = list(self.rooms.get(user_room(user_id), ()))
        delivered = 0
        for websocket in sockets:
            try:
                await websocket.send_json({"event": event, "data": data})
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping socket in {user_room(user_id)} after failed send: {e}")
                self.leave(websocket)
        return delivered

    def send(self, user_id: int, event: str, data: dict) -> int:
        """
        emit() for sync code running in a worker thread, such as a plain `def` route.

        The send is handed back to the event loop that owns the sockets.
        Users with no open socket return 0 without touching the loop.
        """
        if not self.is_connected(user_id):
            return 0
        return anyio.from_thread.run(self.emit, user_id, event, data)
