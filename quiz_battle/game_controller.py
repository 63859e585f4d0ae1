"""
Game state machine for the Quiz Battle game.
Sequences screens, turns, grading and scoring in response to user actions.
"""
import logging
import time
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator, List, Optional, Union

from .answer_evaluator import AutoGradedEvaluator, Evaluation, ManualAwardEvaluator, evaluator_for
from .errors import DataLoadError, ValidationError
from .models import GameState, Question, QuestionCatalog, Screen, Team, TEAMS, TIE
from .notifications import (
    AnswerCorrect, AnswerIncorrect, DataLoadFailed, NotificationChannel, PointsAwarded,
    ValidationFailed
)
from .scoreboard import ScoreBoard, check_team
from .turn_manager import TurnManager


CatalogLoaderFunc = Callable[[], Awaitable[QuestionCatalog]]


class GameStateMachine:
    """
    Orchestrates a single two-team game session.

    Every mutation goes through one of the named transitions below. A
    rejected action raises ValidationError, emits ValidationFailed on the
    notification channel and leaves the state untouched.
    """

    def __init__(
        self,
        catalog: Optional[QuestionCatalog] = None,
        notifications: Optional[NotificationChannel] = None
    ):
        """
        Initialize the state machine.

        Args:
            catalog: Question catalog, or None to start in the loading state
            notifications: Channel that receives game events
        """
        self.logger = logging.getLogger(__name__)
        self.notifications = notifications or NotificationChannel()
        self.scoreboard = ScoreBoard()
        self.turns = TurnManager()

        self._catalog = catalog
        self._load_error: Optional[str] = None
        self._screen = Screen.SETUP if catalog is not None else Screen.LOADING
        self._team_names: List[str] = ["", ""]
        self._selected_category: Optional[str] = None
        self._question_index = 0
        self._revealed = False
        self._pending_selection: Optional[str] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def catalog(self) -> Optional[QuestionCatalog]:
        return self._catalog

    @property
    def is_loading(self) -> bool:
        return self._screen == Screen.LOADING

    @property
    def load_error(self) -> Optional[str]:
        return self._load_error

    async def load_catalog(self, loader: CatalogLoaderFunc) -> QuestionCatalog:
        """
        Await the one-time catalog load and enter the setup screen.

        On failure the machine stays in the loading state, DataLoadFailed is
        emitted and the DataLoadError is re-raised. Retrying is left to the
        caller.
        """
        with self._action("load_catalog"):
            self._require_screen(Screen.LOADING, reason="question catalog already loaded")

        try:
            catalog = await loader()
        except DataLoadError as e:
            self._load_error = e.reason
            self.logger.error(f"Question catalog failed to load: {e}")
            self.notifications.emit(DataLoadFailed(e.reason))
            raise

        self._catalog = catalog
        self._load_error = None
        self._transition(Screen.SETUP, "catalog loaded")
        self.logger.info(
            f"Question catalog ready: {len(catalog)} categories, "
            f"{catalog.total_questions()} questions"
        )
        return catalog

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_game(self, team1_name: str, team2_name: str) -> GameState:
        with self._action("start_game"):
            self._require_screen(Screen.SETUP)
            names = [name.strip() if isinstance(name, str) else "" for name in (team1_name, team2_name)]
            if not all(names):
                raise ValidationError("missing team name")

            self._team_names = names
            self._transition(Screen.CATEGORY_SELECT, "teams registered")
        return self.snapshot()

    def select_category(self, key: str) -> GameState:
        with self._action("select_category"):
            self._require_screen(Screen.CATEGORY_SELECT, Screen.QUIZ)
            if not self._catalog.has_category(key):
                raise ValidationError("invalid category")

            self._selected_category = key
            self._question_index = 0
            self._clear_answer()
            self._transition(Screen.QUIZ, f"category '{key}' selected")
        return self.snapshot()

    def select_option(self, option: str) -> GameState:
        """Record the option the current team has picked, without grading it."""
        with self._action("select_option"):
            evaluator = self._auto_evaluator()
            self._pending_selection = evaluator.check_selection(option)
        return self.snapshot()

    def resolve_answer(self, selection: Optional[str] = None) -> Evaluation:
        """
        Grade the pending (or given) selection and reveal the correct option.

        A correct answer awards the question's points to the current team.
        """
        with self._action("resolve_answer"):
            evaluator = self._auto_evaluator()
            if selection is None:
                selection = self._pending_selection
            evaluation = evaluator.evaluate(selection)

            question = self._current_question()
            self._pending_selection = evaluation.selection
            self._revealed = True

        team = self.turns.current_team
        if evaluation.correct:
            self.scoreboard.award(team, question.points)
            self.notifications.emit(AnswerCorrect(team, self._team_name(team), question.points))
        else:
            self.notifications.emit(AnswerIncorrect(evaluation.correct_option))

        self.logger.info(
            f"Team {team} answered {'correctly' if evaluation.correct else 'incorrectly'}",
            extra={
                'event_type': 'answer_resolved',
                'team': team,
                'correct': evaluation.correct,
                'timestamp': time.time()
            }
        )
        return evaluation

    def reveal_answer(self) -> str:
        """Expose the expected answer of a manually graded question."""
        with self._action("reveal_answer"):
            evaluator = self._evaluator()
            if not isinstance(evaluator, ManualAwardEvaluator):
                raise ValidationError("question is not manually graded")
            self._revealed = True
        return evaluator.reveal()

    def award(self, team: int, points: int) -> GameState:
        """Give points to either team for a revealed, manually graded question."""
        with self._action("award"):
            check_team(team)
            evaluator = self._evaluator(allow_revealed=True)
            if not isinstance(evaluator, ManualAwardEvaluator):
                raise ValidationError("question is not manually graded")
            if not self._revealed:
                raise ValidationError("answer not revealed yet")
            self.scoreboard.award(team, points)

        self.notifications.emit(PointsAwarded(team, self._team_name(team), points))
        return self.snapshot()

    def adjust_score(self, team: int, delta: int) -> GameState:
        """Manually correct a score; never drops below zero."""
        with self._action("adjust_score"):
            self._require_screen(Screen.CATEGORY_SELECT, Screen.QUIZ, Screen.RESULTS)
            self.scoreboard.adjust(team, delta)
        return self.snapshot()

    def next_question(self) -> GameState:
        with self._action("next_question"):
            self._require_screen(Screen.QUIZ)
            if not self._revealed:
                raise ValidationError("answer not revealed yet")

            if self._question_index + 1 < self._catalog.question_count(self._selected_category):
                self._question_index += 1
                self._clear_answer()
                self.turns.toggle()
                self.logger.info(
                    f"Advanced to question {self._question_index + 1} of '{self._selected_category}', "
                    f"team {self.turns.current_team} is up"
                )
            else:
                self._transition(Screen.RESULTS, "category exhausted")
        return self.snapshot()

    def back_to_categories(self) -> GameState:
        with self._action("back_to_categories"):
            self._require_screen(Screen.QUIZ)
            self._clear_answer()
            self._transition(Screen.CATEGORY_SELECT, "back to categories")
        return self.snapshot()

    def reset_game(self) -> GameState:
        """Start over from the setup screen with zeroed scores."""
        with self._action("reset_game"):
            if self._catalog is None:
                raise ValidationError("question catalog not loaded")

            self.scoreboard.reset()
            self.turns.reset()
            self._team_names = ["", ""]
            self._selected_category = None
            self._question_index = 0
            self._clear_answer()
            self._transition(Screen.SETUP, "reset")
        return self.snapshot()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> GameState:
        """Build an immutable view of the current game for rendering."""
        question = None
        question_count = 0
        if self._screen == Screen.QUIZ:
            question = self._catalog.question_at(self._selected_category, self._question_index)
            question_count = self._catalog.question_count(self._selected_category)

        return GameState(
            screen=self._screen,
            teams=tuple(
                Team(name=self._team_names[team - 1], score=self.scoreboard.score(team))
                for team in TEAMS
            ),
            current_team=self.turns.current_team,
            selected_category=self._selected_category,
            current_question_index=self._question_index,
            revealed=self._revealed,
            pending_selection=self._pending_selection,
            current_question=question,
            question_count=question_count,
            load_error=self._load_error,
            leader=self.scoreboard.leader() if self._screen == Screen.RESULTS else None
        )

    def outcome_text(self) -> str:
        """Winner announcement for the results screen."""
        leader = self.scoreboard.leader()
        if leader == TIE:
            return "It's a Tie!"
        return f"{self._team_name(leader)} Wins!"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _action(self, name: str) -> Iterator[None]:
        try:
            yield
        except ValidationError as e:
            self.logger.info(
                f"Rejected {name}: {e.reason}",
                extra={
                    'event_type': 'action_rejected',
                    'action': name,
                    'reason': e.reason,
                    'screen': self._screen.value,
                    'timestamp': time.time()
                }
            )
            self.notifications.emit(ValidationFailed(e.reason))
            raise

    def _require_screen(self, *screens: Screen, reason: str = "action not available") -> None:
        if self._screen not in screens:
            if self._screen == Screen.LOADING and reason == "action not available":
                reason = "question catalog not loaded"
            raise ValidationError(reason)

    def _current_question(self) -> Question:
        self._require_screen(Screen.QUIZ)
        question = self._catalog.question_at(self._selected_category, self._question_index)
        if question is None:
            raise ValidationError("no question available")
        return question

    def _evaluator(self, allow_revealed: bool = False) -> Union[AutoGradedEvaluator, ManualAwardEvaluator]:
        question = self._current_question()
        if self._revealed and not allow_revealed:
            raise ValidationError("answer already revealed")
        return evaluator_for(question)

    def _auto_evaluator(self) -> AutoGradedEvaluator:
        evaluator = self._evaluator()
        if not isinstance(evaluator, AutoGradedEvaluator):
            raise ValidationError("question is not auto-graded")
        return evaluator

    def _clear_answer(self) -> None:
        self._revealed = False
        self._pending_selection = None

    def _team_name(self, team: int) -> str:
        return self._team_names[team - 1]

    def _transition(self, to_screen: Screen, reason: str) -> None:
        from_screen = self._screen
        self._screen = to_screen
        self.logger.info(
            f"Screen transition: {from_screen.value} -> {to_screen.value} ({reason})",
            extra={
                'event_type': 'screen_transition',
                'from_screen': from_screen.value,
                'to_screen': to_screen.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )
