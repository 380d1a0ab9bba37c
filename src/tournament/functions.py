import copy
import logging
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from config import TOURNAMENT_TIMEZONE
from tournament.models import (
    Match, Player, ScoreResult, Tournament, generate_id, with_rank,
    NUM_PLAYERS, NUM_ROUNDS, WINNING_SCORE,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 8

# Pre-solved partner rotation for 8 players: every pair of ids partners
# exactly once and each round seats all 8 ids. Rows are rounds, each row
# holds two (teamA, teamB) matchups.
ROUND_MATCHUPS = (
    (((8, 1), (2, 6)), ((7, 5), (3, 4))),
    (((8, 2), (3, 7)), ((1, 6), (4, 5))),
    (((8, 3), (4, 1)), ((2, 7), (5, 6))),
    (((8, 4), (5, 2)), ((3, 1), (6, 7))),
    (((8, 5), (6, 3)), ((4, 2), (7, 1))),
    (((8, 6), (7, 4)), ((5, 3), (1, 2))),
    (((8, 7), (1, 5)), ((6, 4), (2, 3))),
)


def generate_matches() -> List[Match]:
    """Build the 14 scheduled matches, ids 1..14 in round-major order."""
    matches = []
    match_id = 1
    for round_idx, round_matchups in enumerate(ROUND_MATCHUPS):
        for team_a, team_b in round_matchups:
            matches.append(Match(
                id=match_id,
                round=round_idx + 1,
                team_a=list(team_a),
                team_b=list(team_b),
            ))
            match_id += 1
    return matches


def today(tz_name: str = TOURNAMENT_TIMEZONE) -> str:
    return datetime.now(ZoneInfo(tz_name)).strftime("%Y-%m-%d")


def validate_player_names(names: List[str]) -> Optional[str]:
    """Return an error message for a bad roster, None when it is fine."""
    if len(names) != NUM_PLAYERS:
        return f"Exactly {NUM_PLAYERS} player names are required"
    cleaned = [n.strip() for n in names]
    if any(not n for n in cleaned):
        return "Player names must not be empty"
    if any(len(n) > MAX_NAME_LENGTH for n in cleaned):
        return f"Player names must be at most {MAX_NAME_LENGTH} characters"
    if len(set(cleaned)) != len(cleaned):
        return "Player names must be unique"
    return None


def create_tournament(access_code: str, player_names: List[str], date: Optional[str] = None) -> Tournament:
    players = [
        Player(id=idx + 1, name=name.strip())
        for idx, name in enumerate(player_names)
    ]
    return Tournament(
        id=generate_id(),
        access_code=access_code,
        date=date or today(),
        players=players,
        matches=generate_matches(),
    )


def validate_score(score_a: int, score_b: int) -> bool:
    # One side must reach exactly 21, the other must stay below it
    if score_a < 0 or score_b < 0 or score_a > WINNING_SCORE or score_b > WINNING_SCORE:
        return False
    if score_a == WINNING_SCORE and score_b < WINNING_SCORE:
        return True
    if score_b == WINNING_SCORE and score_a < WINNING_SCORE:
        return True
    return False


def _recompute_totals(tournament: Tournament):
    for player in tournament.players:
        player.total_score = sum(player.scores)


def apply_score(
    tournament: Tournament,
    match_id: int,
    score_a: int, score_b: int,
    is_edit: bool = False,
) -> ScoreResult:
    """Record a match result on a copy of the snapshot.

    Both teammates receive their side's score in the round slot. The current
    round advances only for a first entry that completes the current round.
    """
    if not validate_score(score_a, score_b):
        logger.debug("Rejected score %s-%s for match %s", score_a, score_b, match_id)
        return ScoreResult(accepted=False, tournament=tournament, reason="invalid_score")
    if tournament.get_match(match_id) is None:
        logger.debug("Match %s not found in tournament %s", match_id, tournament.id)
        return ScoreResult(accepted=False, tournament=tournament, reason="match_not_found")

    updated = copy.deepcopy(tournament)
    match = updated.get_match(match_id)
    match.score_a = score_a
    match.score_b = score_b
    match.completed = True
    match.winner_team = "A" if score_a == WINNING_SCORE else "B"

    slot = match.round - 1
    for pid in match.team_a:
        player = updated.get_player(pid)
        if player:
            player.scores[slot] = score_a
    for pid in match.team_b:
        player = updated.get_player(pid)
        if player:
            player.scores[slot] = score_b

    if not is_edit:
        round_done = all(m.completed for m in updated.round_matches(match.round))
        if round_done and match.round == updated.current_round:
            updated.current_round = min(updated.current_round + 1, NUM_ROUNDS)

    _recompute_totals(updated)
    return ScoreResult(accepted=True, tournament=updated)


def rebuild_scores(tournament: Tournament) -> Tournament:
    """Derive every player's round slots and total from the completed matches."""
    rebuilt = copy.deepcopy(tournament)
    for player in rebuilt.players:
        player.scores = [0] * NUM_ROUNDS
    for match in rebuilt.matches:
        if not match.completed or match.score_a is None or match.score_b is None:
            continue
        if match.winner_team is None:
            match.winner_team = "A" if match.score_a > match.score_b else "B"
        slot = match.round - 1
        for pid in match.team_a:
            player = rebuilt.get_player(pid)
            if player:
                player.scores[slot] = match.score_a
        for pid in match.team_b:
            player = rebuilt.get_player(pid)
            if player:
                player.scores[slot] = match.score_b
    _recompute_totals(rebuilt)
    return rebuilt


def rank_players(tournament: Tournament) -> List[Player]:
    """Competition ranking by total score: ties share the earlier rank."""
    ordered = sorted(tournament.players, key=lambda p: -p.total_score)
    ranked: List[Player] = []
    for i, player in enumerate(ordered):
        if i > 0 and ordered[i - 1].total_score == player.total_score:
            rank = ranked[i - 1].rank
        else:
            rank = i + 1
        ranked.append(with_rank(player, rank))
    return ranked


def is_tournament_complete(tournament: Tournament) -> bool:
    return all(m.completed for m in tournament.matches)
