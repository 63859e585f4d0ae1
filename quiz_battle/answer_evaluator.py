"""
Grading strategies for trivia questions.

Each question carries exactly one grading payload, and evaluator_for()
picks the matching strategy. There is no fallback between the two modes.
"""
from dataclasses import dataclass
from typing import Optional, Union

from .errors import ValidationError
from .models import AutoGradedPayload, ManualAwardPayload, Question


@dataclass(frozen=True)
class Evaluation:
    """Outcome of grading a multiple-choice selection."""
    correct: bool
    selection: str
    correct_option: str


class AutoGradedEvaluator:
    """Compares a selection against the stored correct option."""

    def __init__(self, payload: AutoGradedPayload):
        self.payload = payload

    def check_selection(self, selection: Optional[str]) -> str:
        """
        Ensure the selection is one of the listed options.

        Raises:
            ValidationError: If nothing was selected or the option is not listed
        """
        if not selection:
            raise ValidationError("no answer selected")
        if selection not in self.payload.options:
            raise ValidationError("answer is not one of the options")
        return selection

    def evaluate(self, selection: Optional[str]) -> Evaluation:
        selection = self.check_selection(selection)
        return Evaluation(
            correct=selection == self.payload.correct_option,
            selection=selection,
            correct_option=self.payload.correct_option
        )


class ManualAwardEvaluator:
    """Reveals the expected answer; scoring is left to a moderator."""

    def __init__(self, payload: ManualAwardPayload):
        self.payload = payload

    def reveal(self) -> str:
        return self.payload.reveal_text


AnswerEvaluator = Union[AutoGradedEvaluator, ManualAwardEvaluator]


def evaluator_for(question: Question) -> AnswerEvaluator:
    """Dispatch on the question's grading payload."""
    payload = question.payload
    if isinstance(payload, AutoGradedPayload):
        return AutoGradedEvaluator(payload)
    if isinstance(payload, ManualAwardPayload):
        return ManualAwardEvaluator(payload)
    raise TypeError(f"Unsupported grading payload: {type(payload).__name__}")
