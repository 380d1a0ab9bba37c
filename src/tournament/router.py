from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_session
from tournament import lifecycle
from tournament.exceptions import ActiveTournamentConflict, TournamentFinalized
from tournament.functions import rank_players, validate_player_names

router = APIRouter(prefix='/api/tournaments', tags=['Tournaments'])


class CreateTournamentIn(BaseModel):
    access_code: str = Field(alias="accessCode")
    player_names: List[str] = Field(alias="playerNames")
    date: Optional[str] = None


class ScoreIn(BaseModel):
    match_id: int = Field(alias="matchId")
    score_a: int = Field(alias="scoreA")
    score_b: int = Field(alias="scoreB")
    is_edit: bool = Field(default=False, alias="isEdit")


class PlayersIn(BaseModel):
    player_names: List[str] = Field(alias="playerNames")


def _check_names(names: List[str]):
    error = validate_player_names(names)
    if error:
        raise HTTPException(status_code=400, detail=error)


# Routes

@router.post("")
async def create_tournament(body: CreateTournamentIn, session: AsyncSession = Depends(get_session)):
    if not body.access_code.strip():
        raise HTTPException(status_code=400, detail="Access code is required")
    _check_names(body.player_names)
    try:
        t = await lifecycle.create(session, body.access_code.strip(), body.player_names, body.date)
    except ActiveTournamentConflict:
        raise HTTPException(status_code=409, detail="active_tournament_exists")
    return t.to_dict()


@router.get("/active")
async def active_tournament(session: AsyncSession = Depends(get_session)):
    t = await lifecycle.get_active(session)
    if not t:
        return {"active": False, "tournament": None}
    return {"active": True, "tournament": {"id": t.id, "accessCode": t.access_code}}


@router.get("/history")
async def tournament_history(session: AsyncSession = Depends(get_session)):
    history = []
    for t in await lifecycle.list_finalized(session):
        data = t.to_dict()
        data["players"] = [p.to_dict() for p in rank_players(t)]
        history.append(data)
    return history


@router.get("/by-code/{code}")
async def tournament_by_code(code: str, session: AsyncSession = Depends(get_session)):
    t = await lifecycle.get_by_code(session, code)
    if not t:
        raise HTTPException(status_code=404, detail="No active tournament")
    return t.to_dict()


@router.get("/{tid}")
async def tournament_view(tid: str, session: AsyncSession = Depends(get_session)):
    t = await lifecycle.get_by_id(session, tid)
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return t.to_dict()


@router.get("/{tid}/ranking")
async def tournament_ranking(tid: str, session: AsyncSession = Depends(get_session)):
    t = await lifecycle.get_by_id(session, tid)
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return [p.to_dict() for p in rank_players(t)]


@router.post("/{tid}/score")
async def submit_score(tid: str, body: ScoreIn, session: AsyncSession = Depends(get_session)):
    try:
        result = await lifecycle.submit_score(
            session, tid, body.match_id, body.score_a, body.score_b, body.is_edit,
        )
    except TournamentFinalized:
        raise HTTPException(status_code=409, detail="Tournament is finalized")
    if result is None:
        raise HTTPException(status_code=404, detail="Tournament not found")
    if not result.accepted:
        if result.reason == "match_not_found":
            raise HTTPException(status_code=404, detail="Match not found")
        raise HTTPException(status_code=400, detail="Invalid score")
    return result.tournament.to_dict()


@router.post("/{tid}/players")
async def update_players(tid: str, body: PlayersIn, session: AsyncSession = Depends(get_session)):
    _check_names(body.player_names)
    try:
        t = await lifecycle.rename_players(session, tid, body.player_names)
    except TournamentFinalized:
        raise HTTPException(status_code=409, detail="Tournament is finalized")
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return t.to_dict()


@router.post("/{tid}/finalize")
async def finalize_tournament(tid: str, session: AsyncSession = Depends(get_session)):
    t = await lifecycle.finalize(session, tid)
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return t.to_dict()


@router.delete("/{tid}", status_code=204)
async def delete_tournament(tid: str, session: AsyncSession = Depends(get_session)):
    if not await lifecycle.delete(session, tid):
        raise HTTPException(status_code=404, detail="Tournament not found")
    return Response(status_code=204)
