class TournamentError(Exception):
    """Base class for tournament lifecycle errors."""


class ActiveTournamentConflict(TournamentError):
    """Another tournament is still active."""

    def __init__(self, active_id: str):
        super().__init__(f"Tournament {active_id} is still active")
        self.active_id = active_id


class TournamentFinalized(TournamentError):
    """The tournament no longer accepts changes."""

    def __init__(self, tournament_id: str):
        super().__init__(f"Tournament {tournament_id} is finalized")
        self.tournament_id = tournament_id


class JoinTimeout(TournamentError):
    """No snapshot arrived from the relay for the requested access code."""

    def __init__(self, access_code: str, timeout: float):
        super().__init__(f"No active tournament for access code {access_code!r} after {timeout:g}s")
        self.access_code = access_code
        self.timeout = timeout
