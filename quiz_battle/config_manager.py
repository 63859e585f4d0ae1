"""
Configuration manager for Quiz Battle hosting settings.
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import GameSettings


class ConfigManager:
    """Manages game hosting settings loaded from config.json and the environment."""

    # Default configuration values
    DEFAULT_CATALOG_SOURCE = "./data/catalog.json"
    DEFAULT_IMAGE_DIRECTORY = "./images/"
    DEFAULT_PLACEHOLDER_IMAGE_URL = "https://images.unsplash.com/photo-1485846234645-a62644f84728?w=800"
    DEFAULT_POINTS = 10
    DEFAULT_LOAD_TIMEOUT = 10.0

    # Validation limits
    MIN_POINTS = 1
    MAX_POINTS = 1000
    MIN_LOAD_TIMEOUT = 1.0
    MAX_LOAD_TIMEOUT = 120.0

    CATALOG_SOURCE_ENV = "QUIZ_CATALOG_SOURCE"

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = GameSettings(
            catalog_source=self.DEFAULT_CATALOG_SOURCE,
            image_directory=self.DEFAULT_IMAGE_DIRECTORY,
            placeholder_image_url=self.DEFAULT_PLACEHOLDER_IMAGE_URL,
            default_points=self.DEFAULT_POINTS,
            load_timeout=self.DEFAULT_LOAD_TIMEOUT
        )

    def get_game_settings(self) -> GameSettings:
        """
        Get current game settings.

        Returns:
            Copy of the current GameSettings
        """
        return GameSettings(
            catalog_source=self._settings.catalog_source,
            image_directory=self._settings.image_directory,
            placeholder_image_url=self._settings.placeholder_image_url,
            default_points=self._settings.default_points,
            load_timeout=self._settings.load_timeout
        )

    def apply_config(self, config: Optional[Dict[str, Any]]) -> List[str]:
        """
        Apply the 'game' section of a configuration dictionary.

        The QUIZ_CATALOG_SOURCE environment variable overrides the catalog
        source from the file. Invalid values keep their defaults.

        Returns:
            List of error messages for rejected values
        """
        game_config = (config or {}).get('game') or {}
        results = []

        source = os.getenv(self.CATALOG_SOURCE_ENV) or game_config.get('catalog_source')
        if source is not None:
            results.append(self.set_catalog_source(source))
        if 'image_directory' in game_config:
            results.append(self.set_image_directory(game_config['image_directory']))
        if 'placeholder_image_url' in game_config:
            results.append(self.set_placeholder_image_url(game_config['placeholder_image_url']))
        if 'default_points' in game_config:
            results.append(self.set_default_points(game_config['default_points']))
        if 'load_timeout' in game_config:
            results.append(self.set_load_timeout(game_config['load_timeout']))

        errors = [result['error'] for result in results if not result['success']]
        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} rejected values")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def set_catalog_source(self, source: str) -> Dict[str, Any]:
        """
        Set the question catalog source (file path or http(s) URL).

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(source, str):
            error_msg = f"Catalog source must be a string, got {type(source).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a path or URL, got {type(source).__name__}"
            }

        if not source.strip():
            error_msg = "Catalog source cannot be empty"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Catalog source cannot be empty"
            }

        self._settings.catalog_source = source.strip()
        self.logger.info(f"Catalog source set to {self._settings.catalog_source}")
        return {
            'success': True,
            'message': f"Catalog source set to {self._settings.catalog_source}",
            'user_message': f"✅ Questions will be loaded from {self._settings.catalog_source}"
        }

    def set_image_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory question images are resolved against.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(directory, str) or not directory.strip():
            error_msg = "Image directory must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Image directory path cannot be empty"
            }

        try:
            normalized_path = str(Path(directory).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid directory path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {directory}"
            }

        self._settings.image_directory = normalized_path
        self.logger.info(f"Image directory set to {normalized_path}")
        return {
            'success': True,
            'message': f"Image directory set to {normalized_path}",
            'user_message': f"✅ Image directory set to {normalized_path}"
        }

    def set_placeholder_image_url(self, url: str) -> Dict[str, Any]:
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            error_msg = f"Placeholder image must be an http(s) URL, got {url!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Placeholder image must be an http(s) URL"
            }

        self._settings.placeholder_image_url = url
        self.logger.info(f"Placeholder image set to {url}")
        return {
            'success': True,
            'message': f"Placeholder image set to {url}",
            'user_message': "✅ Placeholder image updated"
        }

    def set_default_points(self, points: int) -> Dict[str, Any]:
        """
        Set the points used for questions that do not specify any.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(points, bool) or not isinstance(points, int):
            error_msg = f"Default points must be an integer, got {type(points).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(points).__name__}"
            }

        if points < self.MIN_POINTS or points > self.MAX_POINTS:
            error_msg = f"Default points must be between {self.MIN_POINTS} and {self.MAX_POINTS}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Points must be between {self.MIN_POINTS} and {self.MAX_POINTS}"
            }

        self._settings.default_points = points
        self.logger.info(f"Default points set to {points}")
        return {
            'success': True,
            'message': f"Default points set to {points}",
            'user_message': f"✅ Questions without points are worth {points}"
        }

    def set_load_timeout(self, seconds: float) -> Dict[str, Any]:
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
            error_msg = f"Load timeout must be a number, got {type(seconds).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(seconds).__name__}"
            }

        if seconds < self.MIN_LOAD_TIMEOUT or seconds > self.MAX_LOAD_TIMEOUT:
            error_msg = (
                f"Load timeout must be between {self.MIN_LOAD_TIMEOUT} and {self.MAX_LOAD_TIMEOUT} seconds"
            )
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timeout must be between {self.MIN_LOAD_TIMEOUT:g} and {self.MAX_LOAD_TIMEOUT:g} seconds"
            }

        self._settings.load_timeout = float(seconds)
        self.logger.info(f"Load timeout set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Load timeout set to {seconds} seconds",
            'user_message': f"✅ Catalog load timeout set to {seconds:g} seconds"
        }

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Game Settings:\n"
            f"• Catalog: {self._settings.catalog_source}\n"
            f"• Images: {self._settings.image_directory}\n"
            f"• Default points: {self._settings.default_points}\n"
            f"• Load timeout: {self._settings.load_timeout:g} seconds"
        )
