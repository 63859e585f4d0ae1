"""
Semantic notification events emitted by the game core.

The core never formats these for display; a presentation layer subscribes
to a NotificationChannel and renders them as transient messages.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Union


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationFailed:
    reason: str


@dataclass(frozen=True)
class AnswerCorrect:
    team: int
    team_name: str
    points: int


@dataclass(frozen=True)
class AnswerIncorrect:
    correct_answer: str


@dataclass(frozen=True)
class PointsAwarded:
    team: int
    team_name: str
    points: int


@dataclass(frozen=True)
class DataLoadFailed:
    reason: str


GameEvent = Union[ValidationFailed, AnswerCorrect, AnswerIncorrect, PointsAwarded, DataLoadFailed]
Listener = Callable[[GameEvent], None]


class NotificationChannel:
    """Synchronous publish/subscribe channel for game events."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: GameEvent) -> None:
        logger.debug(
            f"Emitting {type(event).__name__}",
            extra={'event_type': 'notification', 'notification': type(event).__name__}
        )
        for listener in list(self._listeners):
            listener(event)
