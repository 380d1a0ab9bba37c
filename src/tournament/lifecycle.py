"""Tournament lifecycle: creation, scoring writes, finalization and deletion.

Only one tournament may be active (not finalized) at a time. Creation is
refused while one exists, and a tournament left open longer than
``AUTO_FINALIZE_HOURS`` is finalized the next time anything looks it up.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import AUTO_FINALIZE_HOURS
from database import TournamentORM
from tournament import repository
from tournament.exceptions import ActiveTournamentConflict, TournamentFinalized
from tournament.functions import apply_score, create_tournament
from tournament.models import ScoreResult, Tournament

logger = logging.getLogger(__name__)


def _finalize_orm(t_orm: TournamentORM) -> Tournament:
    # Totals are rebuilt from the match history before the flag flips
    snapshot = repository.orm_to_tournament(t_orm)
    snapshot.is_finalized = True
    repository.write_snapshot(t_orm, snapshot)
    return snapshot


async def expire_stale(session: AsyncSession, now: Optional[datetime] = None) -> List[str]:
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=AUTO_FINALIZE_HOURS)
    stale = await repository.list_stale_orm(session, cutoff)
    for t_orm in stale:
        _finalize_orm(t_orm)
        logger.info("Auto-finalized tournament %s created at %s", t_orm.id, t_orm.created_at)
    if stale:
        await session.commit()
    return [t.id for t in stale]


async def create(
    session: AsyncSession,
    access_code: str,
    player_names: List[str],
    date: Optional[str] = None,
) -> Tournament:
    await expire_stale(session)
    active = await repository.get_active_orm(session)
    if active is not None:
        raise ActiveTournamentConflict(active.id)

    tournament = create_tournament(access_code, player_names, date)
    repository.add_tournament(session, tournament)
    await session.commit()
    logger.info("Created tournament %s with access code %s", tournament.id, access_code)
    return tournament


async def get_by_id(session: AsyncSession, tid: str) -> Optional[Tournament]:
    await expire_stale(session)
    t_orm = await repository.get_tournament_orm(session, tid)
    if t_orm is None:
        return None
    return repository.orm_to_tournament(t_orm)


async def get_by_code(session: AsyncSession, access_code: str) -> Optional[Tournament]:
    await expire_stale(session)
    t_orm = await repository.get_active_orm(session, access_code)
    if t_orm is None:
        return None
    return repository.orm_to_tournament(t_orm)


async def get_active(session: AsyncSession) -> Optional[Tournament]:
    await expire_stale(session)
    t_orm = await repository.get_active_orm(session)
    if t_orm is None:
        return None
    return repository.orm_to_tournament(t_orm)


async def list_finalized(session: AsyncSession) -> List[Tournament]:
    rows = await repository.list_finalized_orm(session)
    return [repository.orm_to_tournament(t_orm) for t_orm in rows]


async def submit_score(
    session: AsyncSession,
    tid: str,
    match_id: int,
    score_a: int, score_b: int,
    is_edit: bool = False,
) -> Optional[ScoreResult]:
    """Apply and persist one match result in a single transaction.

    Returns None when the tournament does not exist.
    """
    t_orm = await repository.get_tournament_orm(session, tid)
    if t_orm is None:
        return None
    if t_orm.is_finalized:
        raise TournamentFinalized(tid)

    result = apply_score(repository.orm_to_tournament(t_orm), match_id, score_a, score_b, is_edit)
    if not result.accepted:
        return result

    repository.write_snapshot(t_orm, result.tournament)
    await session.commit()
    logger.info(
        "Tournament %s match %s scored %s-%s%s",
        tid, match_id, score_a, score_b, " (edit)" if is_edit else "",
    )
    return result


async def rename_players(session: AsyncSession, tid: str, player_names: List[str]) -> Optional[Tournament]:
    t_orm = await repository.get_tournament_orm(session, tid)
    if t_orm is None:
        return None
    if t_orm.is_finalized:
        raise TournamentFinalized(tid)

    snapshot = repository.orm_to_tournament(t_orm)
    for player, name in zip(snapshot.players, player_names):
        player.name = name.strip()
    repository.write_snapshot(t_orm, snapshot)
    await session.commit()
    return snapshot


async def finalize(session: AsyncSession, tid: str) -> Optional[Tournament]:
    t_orm = await repository.get_tournament_orm(session, tid)
    if t_orm is None:
        return None
    if t_orm.is_finalized:
        return repository.orm_to_tournament(t_orm)

    snapshot = _finalize_orm(t_orm)
    await session.commit()
    logger.info("Finalized tournament %s", tid)
    return snapshot


async def delete(session: AsyncSession, tid: str) -> bool:
    t_orm = await repository.get_tournament_orm(session, tid)
    if t_orm is None:
        return False
    await session.delete(t_orm)
    await session.commit()
    logger.info("Deleted tournament %s", tid)
    return True
