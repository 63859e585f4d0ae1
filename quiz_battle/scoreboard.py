"""
Per-team cumulative scores.
"""
import logging
from typing import Dict, Union

from .errors import ValidationError
from .models import TEAMS, TEAM_ONE, TEAM_TWO, TIE


def check_team(team: int) -> None:
    """Raise ValidationError unless team is 1 or 2."""
    if isinstance(team, bool) or team not in TEAMS:
        raise ValidationError("invalid team index")


class ScoreBoard:
    """Owns the running score of both teams."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._scores: Dict[int, int] = {team: 0 for team in TEAMS}

    def score(self, team: int) -> int:
        check_team(team)
        return self._scores[team]

    def scores(self) -> Dict[int, int]:
        return dict(self._scores)

    def award(self, team: int, points: int) -> int:
        """
        Add points to a team's running total.

        Args:
            team: Team index (1 or 2)
            points: Non-negative number of points

        Returns:
            The team's new score
        """
        check_team(team)
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValidationError("points must be a non-negative integer")

        self._scores[team] += points
        self.logger.info(f"Team {team} awarded {points} points (total {self._scores[team]})")
        return self._scores[team]

    def adjust(self, team: int, delta: int) -> int:
        """
        Manually correct a team's score; the result never drops below zero.

        Returns:
            The team's new score
        """
        check_team(team)
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("adjustment must be an integer")

        old_score = self._scores[team]
        self._scores[team] = max(0, old_score + delta)
        self.logger.info(f"Team {team} score adjusted {old_score} -> {self._scores[team]}")
        return self._scores[team]

    def leader(self) -> Union[int, str]:
        """Team with the strictly higher score, or TIE."""
        first, second = self._scores[TEAM_ONE], self._scores[TEAM_TWO]
        if first > second:
            return TEAM_ONE
        if second > first:
            return TEAM_TWO
        return TIE

    def reset(self) -> None:
        for team in TEAMS:
            self._scores[team] = 0
