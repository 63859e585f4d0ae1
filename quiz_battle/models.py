"""
Core data models for the Quiz Battle game.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union


class Screen(Enum):
    """Macro-states of play."""
    LOADING = "loading"
    SETUP = "setup"
    CATEGORY_SELECT = "category_select"
    QUIZ = "quiz"
    RESULTS = "results"


class GradingMode(Enum):
    """Grading discipline of a question."""
    AUTO = "auto"
    MANUAL = "manual"


TEAM_ONE = 1
TEAM_TWO = 2
TEAMS = (TEAM_ONE, TEAM_TWO)
TIE = "tie"


@dataclass(frozen=True)
class AutoGradedPayload:
    """Multiple-choice payload compared against a stored correct option."""
    options: Tuple[str, ...]
    correct_option: str


@dataclass(frozen=True)
class ManualAwardPayload:
    """Open-answer payload; only the expected answer is revealed."""
    reveal_text: str


GradingPayload = Union[AutoGradedPayload, ManualAwardPayload]


@dataclass(frozen=True)
class Question:
    """Represents a single trivia question."""
    text: str
    points: int
    payload: GradingPayload
    image_ref: Optional[str] = None

    @property
    def mode(self) -> GradingMode:
        if isinstance(self.payload, AutoGradedPayload):
            return GradingMode.AUTO
        return GradingMode.MANUAL

    @property
    def answer_text(self) -> str:
        """The answer shown to players once the question is revealed."""
        if isinstance(self.payload, AutoGradedPayload):
            return self.payload.correct_option
        return self.payload.reveal_text


@dataclass(frozen=True)
class Category:
    """Named, ordered group of questions."""
    name: str
    questions: Tuple[Question, ...]

    def __len__(self) -> int:
        return len(self.questions)


class QuestionCatalog:
    """
    Immutable mapping from category name to Category.

    Category order follows the source document.
    """

    def __init__(self, categories: List[Category]):
        self._categories: Dict[str, Category] = {}
        for category in categories:
            if category.name in self._categories:
                raise ValueError(f"Duplicate category: {category.name}")
            self._categories[category.name] = category

    def __contains__(self, name: object) -> bool:
        return name in self._categories

    def __iter__(self) -> Iterator[Category]:
        return iter(self._categories.values())

    def __len__(self) -> int:
        return len(self._categories)

    def category_names(self) -> List[str]:
        return list(self._categories.keys())

    def has_category(self, name: str) -> bool:
        return name in self._categories

    def get_category(self, name: str) -> Optional[Category]:
        return self._categories.get(name)

    def question_count(self, name: str) -> int:
        """Number of questions in a category, or 0 if the category is unknown."""
        category = self._categories.get(name)
        return len(category) if category else 0

    def question_at(self, name: str, index: int) -> Optional[Question]:
        """
        Get the question at a position within a category.

        Returns:
            The Question, or None when the category or index is out of range
        """
        category = self._categories.get(name)
        if category is None or not 0 <= index < len(category):
            return None
        return category.questions[index]

    def total_questions(self) -> int:
        return sum(len(category) for category in self._categories.values())


@dataclass(frozen=True)
class Team:
    """A competing team."""
    name: str = ""
    score: int = 0


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of a game session for rendering."""
    screen: Screen
    teams: Tuple[Team, Team]
    current_team: int = TEAM_ONE
    selected_category: Optional[str] = None
    current_question_index: int = 0
    revealed: bool = False
    pending_selection: Optional[str] = None
    current_question: Optional[Question] = None
    question_count: int = 0
    load_error: Optional[str] = None
    leader: Optional[Union[int, str]] = None

    def team(self, index: int) -> Team:
        return self.teams[index - 1]

    @property
    def current_team_name(self) -> str:
        return self.team(self.current_team).name

    @property
    def has_question(self) -> bool:
        """False on every screen where no question is shown."""
        return self.current_question is not None

    @property
    def is_last_question(self) -> bool:
        return self.has_question and self.current_question_index + 1 >= self.question_count


@dataclass
class GameSettings:
    """Configuration settings for hosting games."""
    catalog_source: str = "./data/catalog.json"
    image_directory: str = "./images/"
    placeholder_image_url: str = "https://images.unsplash.com/photo-1485846234645-a62644f84728?w=800"
    default_points: int = 10
    load_timeout: float = 10.0
