"""
Test fixtures and sample data for Quiz Battle tests.
"""
import asyncio
import json
from pathlib import Path
from typing import Dict, List
from unittest.mock import AsyncMock, Mock

import discord

from quiz_battle.models import (
    AutoGradedPayload, Category, ManualAwardPayload, Question, QuestionCatalog
)


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def create_auto_questions() -> List[Question]:
        """Create multiple-choice questions worth 10, 20 and 30 points."""
        return [
            Question(
                text="What is 2+2?",
                points=10,
                payload=AutoGradedPayload(options=("3", "4", "5"), correct_option="4")
            ),
            Question(
                text="What is the capital of France?",
                points=20,
                payload=AutoGradedPayload(
                    options=("London", "Berlin", "Paris", "Madrid"), correct_option="Paris"
                ),
                image_ref="paris.jpg"
            ),
            Question(
                text="What is the largest planet?",
                points=30,
                payload=AutoGradedPayload(
                    options=("Earth", "Mars", "Jupiter", "Saturn"), correct_option="Jupiter"
                )
            ),
        ]

    @staticmethod
    def create_manual_questions() -> List[Question]:
        """Create open-answer questions."""
        return [
            Question(
                text="Name the chemical symbol for gold.",
                points=10,
                payload=ManualAwardPayload(reveal_text="Au")
            ),
            Question(
                text="Who painted the Mona Lisa?",
                points=20,
                payload=ManualAwardPayload(reveal_text="Leonardo da Vinci")
            ),
        ]

    @staticmethod
    def create_sample_catalog() -> QuestionCatalog:
        """Create a catalog with one auto-graded and one manual category."""
        return QuestionCatalog([
            Category(name="Science", questions=tuple(TestFixtures.create_auto_questions())),
            Category(name="Open Round", questions=tuple(TestFixtures.create_manual_questions())),
        ])

    @staticmethod
    def create_single_category_catalog(question_count: int) -> QuestionCatalog:
        questions = tuple(
            Question(
                text=f"Question {i + 1}?",
                points=10,
                payload=AutoGradedPayload(options=("yes", "no"), correct_option="yes")
            )
            for i in range(question_count)
        )
        return QuestionCatalog([Category(name="Only", questions=questions)])

    @staticmethod
    def create_valid_catalog_json() -> Dict:
        """Create valid catalog JSON structure."""
        return {
            "categories": {
                "Movies": {
                    "questions": [
                        {
                            "question": "Who directed Jaws?",
                            "image": "jaws.jpg",
                            "options": ["George Lucas", "Steven Spielberg"],
                            "correct": "Steven Spielberg",
                            "points": 10
                        },
                        {
                            "question": "Which film won the first Best Picture award?",
                            "options": ["Wings", "Sunrise"],
                            "correct": "Wings"
                        }
                    ]
                },
                "Open Round": {
                    "questions": [
                        {
                            "question": "What is the chemical symbol for gold?",
                            "answer": "Au",
                            "points": 20
                        }
                    ]
                }
            }
        }

    @staticmethod
    def create_invalid_catalog_json_structures() -> List:
        """Create various invalid catalog structures for testing."""
        return [
            # Not an object
            ["Movies"],
            # No categories
            {"categories": {}},
            # Category without questions array
            {"categories": {"Movies": {"items": []}}},
            # Empty questions
            {"categories": {"Movies": {"questions": []}}},
            # Missing question text
            {"categories": {"Movies": {"questions": [{"answer": "Au"}]}}},
            # Neither options nor answer
            {"categories": {"Movies": {"questions": [{"question": "Q?"}]}}},
            # Both payload shapes
            {"categories": {"Movies": {"questions": [
                {"question": "Q?", "options": ["a", "b"], "correct": "a", "answer": "a"}
            ]}}},
            # Correct option not listed
            {"categories": {"Movies": {"questions": [
                {"question": "Q?", "options": ["a", "b"], "correct": "c"}
            ]}}},
            # Non-positive points
            {"categories": {"Movies": {"questions": [
                {"question": "Q?", "answer": "a", "points": 0}
            ]}}},
            # Points as string
            {"categories": {"Movies": {"questions": [
                {"question": "Q?", "answer": "a", "points": "10"}
            ]}}},
        ]

    @staticmethod
    def write_catalog_file(directory: str, data, name: str = "catalog.json") -> Path:
        """Write catalog data to a JSON file and return its path."""
        file_path = Path(directory) / name
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        return file_path


class MockDiscordObjects:
    """Mock Discord objects for testing bot functionality."""

    @staticmethod
    def create_mock_interaction(channel_id: int = 12345, user_id: int = 67890) -> Mock:
        """Create mock Discord interaction."""
        interaction = Mock(spec=discord.Interaction)
        interaction.channel_id = channel_id
        interaction.user = Mock()
        interaction.user.id = user_id
        interaction.response = Mock()
        interaction.response.is_done.return_value = False
        interaction.response.send_message = AsyncMock()

        def mark_done(*args, **kwargs):
            interaction.response.is_done.return_value = True

        interaction.response.defer = AsyncMock(side_effect=mark_done)
        interaction.followup = Mock()
        interaction.followup.send = AsyncMock()
        return interaction


def async_test(coro):
    """Decorator to run async test methods."""
    def wrapper(self):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(coro(self))
        finally:
            loop.close()
    wrapper.__name__ = coro.__name__
    wrapper.__doc__ = coro.__doc__
    return wrapper
