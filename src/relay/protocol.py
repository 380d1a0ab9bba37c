"""Relay wire messages.

Every message is an envelope ``{"event": ..., "data": ...}``; inbound
messages are validated against a union discriminated on ``event``.
"""
import time
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

CREATE_TOURNAMENT = "create-tournament"
JOIN_TOURNAMENT = "join-tournament"
TOURNAMENT_UPDATE = "tournament:update"
TOURNAMENT_SYNC = "tournament:sync"
TOAST_SCORE = "toast:score"


class Snapshot(BaseModel):
    # Only the room keys are checked, the rest is relayed untouched
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(min_length=1)
    access_code: str = Field(alias="accessCode", min_length=1)


class ScoreUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    match_id: int = Field(alias="matchId")
    round: int
    score_a: int = Field(alias="scoreA")
    score_b: int = Field(alias="scoreB")


class JoinData(BaseModel):
    access_code: str = Field(alias="accessCode", min_length=1)


class UpdateData(BaseModel):
    tournament: Snapshot
    update: Optional[ScoreUpdate] = None


class CreateTournament(BaseModel):
    event: Literal["create-tournament"]
    data: Snapshot


class JoinTournament(BaseModel):
    event: Literal["join-tournament"]
    data: JoinData


class TournamentUpdate(BaseModel):
    event: Literal["tournament:update"]
    data: UpdateData


InboundMessage = Annotated[
    Union[CreateTournament, JoinTournament, TournamentUpdate],
    Field(discriminator="event"),
]

_inbound = TypeAdapter(InboundMessage)


def parse_message(raw) -> Union[CreateTournament, JoinTournament, TournamentUpdate]:
    """Validate an inbound envelope; raises pydantic.ValidationError."""
    return _inbound.validate_python(raw)


def snapshot_dict(snapshot: Snapshot) -> dict:
    return snapshot.model_dump(by_alias=True)


def sync_message(snapshot: dict, revision: int) -> dict:
    return {"event": TOURNAMENT_SYNC, "data": snapshot, "revision": revision}


def toast_message(update: ScoreUpdate, ts: Optional[int] = None) -> dict:
    data = update.model_dump(by_alias=True)
    data["ts"] = ts if ts is not None else int(time.time() * 1000)
    return {"event": TOAST_SCORE, "data": data}
