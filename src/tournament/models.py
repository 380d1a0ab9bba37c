from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import List, Optional

NUM_PLAYERS = 8
NUM_ROUNDS = 7
WINNING_SCORE = 21


def generate_id():
    import uuid
    return str(uuid.uuid4())[:8]


@dataclass
class Player:
    id: int
    name: str
    scores: List[int] = field(default_factory=lambda: [0] * NUM_ROUNDS)
    total_score: int = 0
    rank: Optional[int] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "scores": list(self.scores),
            "totalScore": self.total_score,
        }
        if self.rank is not None:
            data["rank"] = self.rank
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Player":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            scores=[int(s) for s in data.get("scores") or [0] * NUM_ROUNDS],
            total_score=int(data.get("totalScore", 0)),
            rank=data.get("rank"),
        )


@dataclass
class Match:
    id: int
    round: int
    team_a: List[int]  # player ids
    team_b: List[int]  # player ids
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    completed: bool = False
    winner_team: Optional[str] = None  # "A" | "B"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "round": self.round,
            "teamA": {"player1": self.team_a[0], "player2": self.team_a[1]},
            "teamB": {"player1": self.team_b[0], "player2": self.team_b[1]},
            "scoreA": self.score_a,
            "scoreB": self.score_b,
            "completed": self.completed,
            "winnerTeam": self.winner_team,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Match":
        team_a, team_b = data["teamA"], data["teamB"]
        return cls(
            id=int(data["id"]),
            round=int(data["round"]),
            team_a=[int(team_a["player1"]), int(team_a["player2"])],
            team_b=[int(team_b["player1"]), int(team_b["player2"])],
            score_a=data.get("scoreA"),
            score_b=data.get("scoreB"),
            completed=bool(data.get("completed", False)),
            winner_team=data.get("winnerTeam"),
        )


@dataclass
class Tournament:
    id: str
    access_code: str
    date: str
    players: List[Player] = field(default_factory=list)
    matches: List[Match] = field(default_factory=list)
    current_round: int = 1
    is_finalized: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def get_player(self, pid: int) -> Optional[Player]:
        return next((p for p in self.players if p.id == pid), None)

    def get_match(self, match_id: int) -> Optional[Match]:
        return next((m for m in self.matches if m.id == match_id), None)

    def round_matches(self, round_num: int) -> List[Match]:
        return [m for m in self.matches if m.round == round_num]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "accessCode": self.access_code,
            "date": self.date,
            "players": [p.to_dict() for p in self.players],
            "matches": [m.to_dict() for m in self.matches],
            "currentRound": self.current_round,
            "isFinalized": self.is_finalized,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Tournament":
        created_at = data.get("createdAt")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        return cls(
            id=str(data["id"]),
            access_code=str(data["accessCode"]),
            date=data.get("date", ""),
            players=[Player.from_dict(p) for p in data.get("players", [])],
            matches=[Match.from_dict(m) for m in data.get("matches", [])],
            current_round=int(data.get("currentRound", 1)),
            is_finalized=bool(data.get("isFinalized", False)),
            created_at=created_at or datetime.now(timezone.utc),
        )


@dataclass
class ScoreResult:
    """Outcome of a score submission.

    ``tournament`` is the new snapshot when accepted and the untouched input
    snapshot when rejected.
    """
    accepted: bool
    tournament: Tournament
    reason: Optional[str] = None  # invalid_score | match_not_found


def with_rank(player: Player, rank: int) -> Player:
    return replace(player, scores=list(player.scores), rank=rank)
