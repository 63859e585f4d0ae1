"""
Resolution of question images against the image directory.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .models import Question


@dataclass(frozen=True)
class ResolvedImage:
    """Either a local file to attach or a URL to link."""
    path: Optional[Path] = None
    url: Optional[str] = None

    @property
    def is_placeholder(self) -> bool:
        return self.path is None


class ImageResolver:
    """Maps a question's image filename to a file, with a placeholder fallback."""

    def __init__(self, image_directory: str, placeholder_url: str):
        self.image_directory = Path(image_directory)
        self.placeholder_url = placeholder_url
        self.logger = logging.getLogger(__name__)

    def resolve(self, question: Question) -> Optional[ResolvedImage]:
        """
        Resolve the image of a question.

        Returns:
            None if the question has no image, the local file if it can be
            read, otherwise the placeholder image
        """
        if not question.image_ref:
            return None

        image_path = self.image_directory / question.image_ref
        try:
            # Keep lookups inside the image directory
            resolved = image_path.resolve()
            if self.image_directory.resolve() in resolved.parents and resolved.is_file():
                return ResolvedImage(path=resolved)
        except OSError as e:
            self.logger.warning(f"Could not access image {image_path}: {e}")

        self.logger.warning(f"Image '{question.image_ref}' not found, using placeholder")
        return ResolvedImage(url=self.placeholder_url)
