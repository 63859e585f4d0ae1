#!/usr/bin/env python3
"""
Quiz Battle - Main Entry Point

This script runs the Quiz Battle Discord bot. Configure your bot token in
config.json or set the DISCORD_BOT_TOKEN environment variable.

Usage:
    python main.py

Configuration:
    1. Copy config.json and set your Discord bot token
    2. Or set DISCORD_BOT_TOKEN environment variable
    3. Point game.catalog_source at your question catalog (file or URL)

Environment Variables:
    DISCORD_BOT_TOKEN: Your Discord bot token (overrides config.json)
    QUIZ_CATALOG_SOURCE: Question catalog path or URL (overrides config.json)
"""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from quiz_battle.bot import run_bot
from quiz_battle.config_manager import ConfigManager


def load_config():
    """Load configuration from config.json file."""
    config_path = Path("config.json")

    if not config_path.exists():
        print("❌ Error: config.json not found!")
        print("Please copy config.json and configure your Discord bot token.")
        sys.exit(1)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        print(f"❌ Error: Invalid JSON in config.json: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"❌ Error loading config.json: {e}")
        sys.exit(1)


def get_bot_token(config):
    """Get bot token from environment variable or config file."""
    # Environment variable takes precedence
    token = os.getenv('DISCORD_BOT_TOKEN')
    if token:
        return token

    token = (config.get('bot') or {}).get('token')
    if not token or token == "YOUR_DISCORD_BOT_TOKEN_HERE":
        print("❌ Error: Discord bot token not configured!")
        print("Either:")
        print("  1. Set DISCORD_BOT_TOKEN environment variable")
        print("  2. Update the 'token' field in config.json")
        sys.exit(1)

    return token


def setup_logging_from_config(config):
    """Set up logging based on configuration."""
    log_config = config.get('logging') or {}
    log_level = getattr(logging, log_config.get('level', 'INFO').upper(), logging.INFO)
    log_directory = Path(log_config.get('log_directory', './logs/'))

    log_directory.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_directory / "bot.log", encoding='utf-8')
        ]
    )

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)


def load_game_settings(config):
    """Validate the game section of config.json, reporting rejected values."""
    config_manager = ConfigManager()
    errors = config_manager.apply_config(config)
    for error in errors:
        print(f"⚠️ Ignoring configuration value: {error}")

    logging.getLogger(__name__).info(config_manager.get_settings_summary())
    return config_manager


async def run_bot_with_config():
    """Run the bot with configuration."""
    config = load_config()
    setup_logging_from_config(config)
    token = get_bot_token(config)
    config_manager = load_game_settings(config)

    await run_bot(token, config, config_manager)


if __name__ == "__main__":
    try:
        print("🤖 Starting Quiz Battle bot...")
        asyncio.run(run_bot_with_config())
    except KeyboardInterrupt:
        print("\n👋 Bot stopped by user")
