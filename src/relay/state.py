"""In-memory relay state.

One ``RelayState`` is created when the app starts, stored on ``app.state``
and dropped at shutdown. Nothing survives a restart.

Snapshots, revision counters and room locks are kept for every tournament
ever seen, even after its room empties, so they grow by one entry per
tournament for the life of the process. Only room membership shrinks.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Set

from starlette.websockets import WebSocketDisconnect

logger = logging.getLogger(__name__)


def room_name(tournament_id: str) -> str:
    return f"tournament:{tournament_id}"


class RelayState:

    def __init__(self):
        # access code -> last published snapshot
        self.snapshots: Dict[str, dict] = {}
        # tournament id -> access code
        self.codes: Dict[str, str] = {}
        # room name -> connected sockets
        self.rooms: Dict[str, Set[Any]] = {}
        # room name -> number of snapshots stored so far
        self.revisions: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, room: str) -> asyncio.Lock:
        if room not in self._locks:
            self._locks[room] = asyncio.Lock()
        return self._locks[room]

    def store(self, snapshot: dict) -> int:
        """Keep ``snapshot`` as the latest for its tournament; last write wins."""
        tid, code = snapshot["id"], snapshot["accessCode"]
        self.snapshots[code] = snapshot
        self.codes[tid] = code
        room = room_name(tid)
        self.revisions[room] = self.revisions.get(room, 0) + 1
        return self.revisions[room]

    def lookup(self, access_code: str) -> Optional[dict]:
        return self.snapshots.get(access_code)

    def revision(self, room: str) -> int:
        return self.revisions.get(room, 0)

    def join(self, room: str, connection):
        self.rooms.setdefault(room, set()).add(connection)

    def leave_all(self, connection):
        for room in list(self.rooms):
            members = self.rooms[room]
            members.discard(connection)
            if not members:
                del self.rooms[room]

    def members(self, room: str) -> Set[Any]:
        return set(self.rooms.get(room, ()))

    async def send(self, connection, message: dict) -> bool:
        try:
            await connection.send_json(message)
            return True
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.warning("Dropping connection after failed send: %s", exc)
            self.leave_all(connection)
            return False

    async def broadcast(self, room: str, message: dict, exclude=None) -> int:
        sent = 0
        for connection in self.members(room):
            if connection is exclude:
                continue
            if await self.send(connection, message):
                sent += 1
        return sent

    async def close(self):
        rooms = len(self.rooms)
        self.rooms.clear()
        self.snapshots.clear()
        self.codes.clear()
        self.revisions.clear()
        self._locks.clear()
        logger.info("Relay state closed (%d rooms)", rooms)
