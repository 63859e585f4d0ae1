"""
Exception hierarchy for the Quiz Battle game.
"""
from typing import Optional


class QuizBattleError(Exception):
    """Base exception for all Quiz Battle errors."""
    pass


class ValidationError(QuizBattleError):
    """
    Raised when a user action is rejected.

    Always recoverable: the game state is left exactly as it was.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class DataLoadError(QuizBattleError):
    """Raised when the question catalog cannot be fetched or is malformed."""

    def __init__(self, reason: str, source: Optional[str] = None):
        self.reason = reason
        self.source = source
        message = f"{reason} ({source})" if source else reason
        super().__init__(message)
