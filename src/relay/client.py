"""Client side of the relay protocol.

``TournamentClient`` works over any connection object exposing async
``send_json`` and ``receive_json``. Each ``tournament:sync`` replaces the
local snapshot wholesale; ``toast:score`` messages are only queued for display.
"""
import asyncio
import logging
from typing import List, Optional

from config import JOIN_TIMEOUT_SECONDS
from relay.protocol import (
    CREATE_TOURNAMENT, JOIN_TOURNAMENT, TOURNAMENT_UPDATE,
    TOURNAMENT_SYNC, TOAST_SCORE,
)
from tournament.exceptions import JoinTimeout, TournamentFinalized
from tournament.functions import apply_score
from tournament.models import ScoreResult, Tournament

logger = logging.getLogger(__name__)


class TournamentClient:

    def __init__(self, connection, join_timeout: float = JOIN_TIMEOUT_SECONDS):
        self.connection = connection
        self.join_timeout = join_timeout
        self.tournament: Optional[Tournament] = None
        self.revision = 0
        self.toasts: List[dict] = []

    async def _send(self, event: str, data: dict):
        await self.connection.send_json({"event": event, "data": data})

    async def create(self, tournament: Tournament):
        self.tournament = tournament
        await self._send(CREATE_TOURNAMENT, tournament.to_dict())

    async def join(self, access_code: str) -> Tournament:
        """Ask the relay for the tournament behind ``access_code``.

        The relay stays silent for unknown codes, so this raises
        ``JoinTimeout`` once ``join_timeout`` seconds pass without a sync.
        """
        await self._send(JOIN_TOURNAMENT, {"accessCode": access_code})
        try:
            return await asyncio.wait_for(self._wait_for_sync(access_code), self.join_timeout)
        except asyncio.TimeoutError:
            raise JoinTimeout(access_code, self.join_timeout) from None

    async def _wait_for_sync(self, access_code: str) -> Tournament:
        while True:
            message = await self.connection.receive_json()
            if message.get("event") == TOURNAMENT_SYNC:
                if (message.get("data") or {}).get("accessCode") != access_code:
                    continue
                self.handle(message)
                return self.tournament
            self.handle(message)

    async def publish(self, tournament: Tournament, update: Optional[dict] = None):
        self.tournament = tournament
        data = {"tournament": tournament.to_dict()}
        if update is not None:
            data["update"] = update
        await self._send(TOURNAMENT_UPDATE, data)

    async def submit_score(self, match_id: int, score_a: int, score_b: int, is_edit: bool = False) -> ScoreResult:
        """Score a match locally and publish the new snapshot when accepted."""
        if self.tournament is None:
            raise RuntimeError("No tournament loaded")
        if self.tournament.is_finalized:
            raise TournamentFinalized(self.tournament.id)

        result = apply_score(self.tournament, match_id, score_a, score_b, is_edit)
        if not result.accepted:
            return result
        match = result.tournament.get_match(match_id)
        await self.publish(result.tournament, {
            "matchId": match.id,
            "round": match.round,
            "scoreA": match.score_a,
            "scoreB": match.score_b,
        })
        return result

    def handle(self, message: dict):
        event = message.get("event")
        if event == TOURNAMENT_SYNC:
            self.tournament = Tournament.from_dict(message["data"])
            self.revision = message.get("revision", self.revision)
        elif event == TOAST_SCORE:
            self.toasts.append(message["data"])
        else:
            logger.debug("Ignoring relay event %s", event)

    async def listen(self):
        """Apply relay messages until the connection fails."""
        while True:
            self.handle(await self.connection.receive_json())
