"""
Catalog loader for JSON question documents and catalog validation.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

from .errors import DataLoadError
from .models import (
    AutoGradedPayload, Category, ManualAwardPayload, Question, QuestionCatalog
)


class CatalogLoader:
    """Loads and validates the question catalog from a file or URL."""

    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB limit

    def __init__(self, source: str = "./data/catalog.json", default_points: int = 10, timeout: float = 10.0):
        """
        Initialize CatalogLoader.

        Args:
            source: Path to a JSON catalog file or an http(s) URL
            default_points: Points used for questions that do not set any
            timeout: Total timeout in seconds for URL fetches
        """
        self.source = source
        self.default_points = default_points
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.catalog: Optional[QuestionCatalog] = None
        self.load_error: Optional[str] = None

    def is_remote(self, source: Optional[str] = None) -> bool:
        source = source or self.source
        return source.startswith(("http://", "https://"))

    async def fetch_catalog(self) -> QuestionCatalog:
        """
        Fetch and parse the catalog from the configured source.

        Raises:
            DataLoadError: If the source cannot be read or is malformed
        """
        self.load_error = None
        try:
            if self.is_remote():
                data = await self._fetch_remote()
            else:
                data = await asyncio.to_thread(self._read_file, Path(self.source))
            catalog = self.parse_catalog(data)
        except DataLoadError as e:
            self.load_error = e.reason
            self.logger.error(f"Failed to load question catalog from {self.source}: {e.reason}")
            raise

        self.catalog = catalog
        self.logger.info(f"Loaded {len(catalog)} categories from {self.source}")
        return catalog

    def _read_file(self, file_path: Path) -> Any:
        try:
            if not file_path.exists():
                raise DataLoadError("catalog file not found", str(file_path))

            file_size = file_path.stat().st_size
            if file_size > self.MAX_FILE_SIZE:
                raise DataLoadError(
                    f"catalog file too large ({file_size / 1024 / 1024:.1f}MB)", str(file_path)
                )

            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise DataLoadError(f"invalid JSON: {e}", str(file_path)) from e
        except UnicodeDecodeError as e:
            raise DataLoadError(f"invalid encoding: {e.reason}", str(file_path)) from e
        except PermissionError as e:
            raise DataLoadError("permission denied", str(file_path)) from e
        except OSError as e:
            raise DataLoadError(f"system error: {e}", str(file_path)) from e

    async def _fetch_remote(self) -> Any:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.source) as response:
                    if response.status != 200:
                        raise DataLoadError(f"HTTP {response.status}", self.source)
                    return await response.json(content_type=None)
        except json.JSONDecodeError as e:
            raise DataLoadError(f"invalid JSON: {e}", self.source) from e
        except UnicodeDecodeError as e:
            raise DataLoadError(f"invalid encoding: {e.reason}", self.source) from e
        except asyncio.TimeoutError as e:
            raise DataLoadError("request timed out", self.source) from e
        except aiohttp.ClientError as e:
            raise DataLoadError(f"request failed: {e}", self.source) from e

    def parse_catalog(self, data: Any) -> QuestionCatalog:
        """
        Parse a catalog document into a QuestionCatalog.

        Raises:
            DataLoadError: Naming the first malformed element
        """
        if not isinstance(data, dict):
            raise DataLoadError("catalog must be a JSON object")

        categories_data = data.get("categories", data)
        if not isinstance(categories_data, dict):
            raise DataLoadError("'categories' must be an object")
        if not categories_data:
            raise DataLoadError("catalog has no categories")

        categories = [
            self._parse_category(name, category_data)
            for name, category_data in categories_data.items()
        ]
        return QuestionCatalog(categories)

    def _parse_category(self, name: str, category_data: Any) -> Category:
        if not name.strip():
            raise DataLoadError("category name cannot be empty")
        if not isinstance(category_data, dict):
            raise DataLoadError(f"category '{name}' must be an object")

        questions_data = category_data.get("questions")
        if not isinstance(questions_data, list):
            raise DataLoadError(f"category '{name}' must contain a 'questions' array")
        if not questions_data:
            raise DataLoadError(f"category '{name}' has no questions")

        questions = tuple(
            self._parse_question(f"{name}[{i}]", question_data)
            for i, question_data in enumerate(questions_data)
        )
        return Category(name=name, questions=questions)

    def _parse_question(self, path: str, question_data: Any) -> Question:
        if not isinstance(question_data, dict):
            raise DataLoadError(f"question {path} must be an object")

        text = question_data.get("question")
        if not isinstance(text, str) or not text.strip():
            raise DataLoadError(f"question {path} missing 'question' text")

        points = question_data.get("points", self.default_points)
        if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
            raise DataLoadError(f"question {path} 'points' must be a positive integer")

        image = question_data.get("image")
        if image is not None and not isinstance(image, str):
            raise DataLoadError(f"question {path} 'image' must be a string")

        return Question(
            text=text,
            points=points,
            payload=self._parse_payload(path, question_data),
            image_ref=image or None
        )

    def _parse_payload(self, path: str, question_data: Dict[str, Any]):
        has_choice = "options" in question_data or "correct" in question_data
        has_answer = "answer" in question_data

        if has_choice and has_answer:
            raise DataLoadError(f"question {path} mixes 'options'/'correct' with 'answer'")

        if has_answer:
            answer = question_data["answer"]
            if not isinstance(answer, str) or not answer.strip():
                raise DataLoadError(f"question {path} 'answer' must be a non-empty string")
            return ManualAwardPayload(reveal_text=answer)

        if not has_choice:
            raise DataLoadError(f"question {path} needs 'options' and 'correct' or an 'answer'")

        options = question_data.get("options")
        correct = question_data.get("correct")
        if not isinstance(options, list) or not options:
            raise DataLoadError(f"question {path} 'options' must be a non-empty array")
        if not all(isinstance(option, str) and option for option in options):
            raise DataLoadError(f"question {path} options must be non-empty strings")
        if len(set(options)) != len(options):
            raise DataLoadError(f"question {path} has duplicate options")
        if not isinstance(correct, str) or correct not in options:
            raise DataLoadError(f"question {path} 'correct' must be one of the options")

        return AutoGradedPayload(options=tuple(options), correct_option=correct)

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the last loading operation.

        Returns:
            Dictionary with loading statistics and status
        """
        categories: List[str] = self.catalog.category_names() if self.catalog else []
        return {
            'source': self.source,
            'loaded': self.catalog is not None,
            'has_errors': self.load_error is not None,
            'error': self.load_error,
            'total_categories': len(categories),
            'total_questions': self.catalog.total_questions() if self.catalog else 0,
            'available_categories': categories
        }
