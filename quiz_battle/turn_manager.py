"""
Turn alternation between the two teams.
"""
from .models import TEAM_ONE, TEAM_TWO


class TurnManager:
    """Tracks which team is up next."""

    def __init__(self):
        self._current_team = TEAM_ONE

    @property
    def current_team(self) -> int:
        return self._current_team

    def toggle(self) -> int:
        self._current_team = TEAM_TWO if self._current_team == TEAM_ONE else TEAM_ONE
        return self._current_team

    def reset(self) -> None:
        self._current_team = TEAM_ONE
