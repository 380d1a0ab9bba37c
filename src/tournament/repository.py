"""Row-level reads and writes for tournaments, players and matches."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import TournamentORM, PlayerORM, MatchORM
from tournament.functions import rebuild_scores
from tournament.models import Player, Tournament, Match


def orm_to_tournament(t_row: TournamentORM) -> Tournament:
    """Convert ORM rows into a snapshot with scores derived from the matches."""
    players = [
        Player(id=p.id, name=p.name, total_score=p.total_score)
        for p in t_row.players
    ]
    matches = [
        Match(
            id=m.id, round=m.round,
            team_a=list(m.team_a), team_b=list(m.team_b),
            score_a=m.score_a, score_b=m.score_b,
            completed=m.completed,
        )
        for m in t_row.matches
    ]
    snapshot = Tournament(
        id=t_row.id, access_code=t_row.access_code, date=t_row.date,
        players=players, matches=matches,
        current_round=t_row.current_round,
        is_finalized=t_row.is_finalized,
        created_at=t_row.created_at,
    )
    return rebuild_scores(snapshot)


def add_tournament(session: AsyncSession, tournament: Tournament) -> TournamentORM:
    t_orm = TournamentORM(
        id=tournament.id, access_code=tournament.access_code, date=tournament.date,
        current_round=tournament.current_round, is_finalized=tournament.is_finalized,
        created_at=tournament.created_at,
        players=[
            PlayerORM(id=p.id, name=p.name, total_score=p.total_score)
            for p in tournament.players
        ],
        matches=[
            MatchORM(
                id=m.id, round=m.round,
                team_a=list(m.team_a), team_b=list(m.team_b),
                score_a=m.score_a, score_b=m.score_b, completed=m.completed,
            )
            for m in tournament.matches
        ],
    )
    session.add(t_orm)
    return t_orm


def write_snapshot(t_orm: TournamentORM, tournament: Tournament):
    """Copy mutable snapshot state onto already loaded rows."""
    matches_map = {m.id: m for m in t_orm.matches}
    for m in tournament.matches:
        row = matches_map.get(m.id)
        if row is None:
            continue
        row.score_a = m.score_a
        row.score_b = m.score_b
        row.completed = m.completed

    players_map = {p.id: p for p in t_orm.players}
    for p in tournament.players:
        row = players_map.get(p.id)
        if row is None:
            continue
        row.name = p.name
        row.total_score = p.total_score

    t_orm.current_round = tournament.current_round
    t_orm.is_finalized = tournament.is_finalized


async def get_tournament_orm(session: AsyncSession, tid: str) -> Optional[TournamentORM]:
    return await session.get(TournamentORM, tid)


async def get_active_orm(session: AsyncSession, access_code: Optional[str] = None) -> Optional[TournamentORM]:
    stmt = select(TournamentORM).where(TournamentORM.is_finalized.is_(False))
    if access_code is not None:
        stmt = stmt.where(TournamentORM.access_code == access_code)
    stmt = stmt.order_by(TournamentORM.created_at.desc()).limit(1)
    result = await session.execute(stmt)
    return result.scalars().first()


async def list_stale_orm(session: AsyncSession, cutoff: datetime) -> List[TournamentORM]:
    stmt = select(TournamentORM).where(
        TournamentORM.is_finalized.is_(False),
        TournamentORM.created_at < cutoff,
    )
    return list((await session.execute(stmt)).scalars().all())


async def list_finalized_orm(session: AsyncSession) -> List[TournamentORM]:
    stmt = (
        select(TournamentORM)
        .where(TournamentORM.is_finalized.is_(True))
        .order_by(TournamentORM.created_at.desc())
    )
    return list((await session.execute(stmt)).scalars().all())
