"""
Unit tests for the Discord presentation layer with mocked interactions.
"""
import asyncio
import os
import unittest
from unittest.mock import AsyncMock, Mock, patch

import discord

from quiz_battle.bot import QuizBattleBot
from quiz_battle.config_manager import ConfigManager
from quiz_battle.data_manager import CatalogLoader
from quiz_battle.images import ImageResolver
from quiz_battle.models import Screen
from tests.test_fixtures import MockDiscordObjects, TestFixtures, async_test

PLACEHOLDER = "https://example.com/placeholder.jpg"


def sent_embeds(interaction):
    """Embeds passed to the last response."""
    return interaction.response.send_message.call_args.kwargs['embeds']


def sent_ephemeral(interaction):
    return interaction.response.send_message.call_args.kwargs.get('ephemeral', False)


class TestDiscordBotIntegration(unittest.TestCase):
    """Test Discord command handlers driving the game."""

    def create_bot(self, catalog=None):
        bot = QuizBattleBot({'bot': {'command_prefix': '?'}})
        bot.catalog_loader = CatalogLoader("./missing-catalog.json")
        bot.image_resolver = ImageResolver("./missing-images/", PLACEHOLDER)
        bot.catalog = catalog
        return bot

    async def command(self, handler, *args, channel_id=12345):
        interaction = MockDiscordObjects.create_mock_interaction(channel_id=channel_id)
        await handler(interaction, *args)
        return interaction

    @async_test
    async def test_status_shows_setup_screen(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        interaction = await self.command(bot.handle_status)

        embeds = sent_embeds(interaction)
        self.assertEqual(len(embeds), 1)
        self.assertIn("/teams", embeds[0].description)
        self.assertFalse(sent_ephemeral(interaction))

    @async_test
    async def test_teams_command_starts_game(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        interaction = await self.command(bot.handle_teams, "Red", "Blue")

        embed = sent_embeds(interaction)[-1]
        self.assertEqual(embed.title, "Red, Choose Your Category")
        field_names = [field.name for field in embed.fields]
        self.assertIn("Science", field_names)
        self.assertIn("Open Round", field_names)
        self.assertEqual(bot.games[12345].machine.snapshot().screen, Screen.CATEGORY_SELECT)

    @async_test
    async def test_teams_command_missing_name(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        interaction = await self.command(bot.handle_teams, "Red", "  ")

        self.assertTrue(sent_ephemeral(interaction))
        self.assertEqual(sent_embeds(interaction)[0].description, "Please enter names for both teams")
        self.assertEqual(bot.games[12345].machine.snapshot().screen, Screen.SETUP)

    @async_test
    async def test_auto_graded_round(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        await self.command(bot.handle_teams, "Red", "Blue")
        interaction = await self.command(bot.handle_category, "Science")
        self.assertTrue(sent_embeds(interaction)[-1].title.startswith("Science • Question 1 of 3"))

        # Options may be chosen by number
        await self.command(bot.handle_choose, "2")
        interaction = await self.command(bot.handle_submit)

        embeds = sent_embeds(interaction)
        self.assertEqual(embeds[0].description, "Correct! Red earned 10 points!")
        state = bot.games[12345].machine.snapshot()
        self.assertEqual(state.team(1).score, 10)
        self.assertTrue(state.revealed)

        interaction = await self.command(bot.handle_next)
        embed = sent_embeds(interaction)[-1]
        self.assertEqual(embed.image.url, PLACEHOLDER)
        self.assertEqual(bot.games[12345].machine.snapshot().current_team, 2)

    @async_test
    async def test_incorrect_answer_message(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        await self.command(bot.handle_teams, "Red", "Blue")
        await self.command(bot.handle_category, "Science")
        interaction = await self.command(bot.handle_choose, "5")
        self.assertFalse(sent_ephemeral(interaction))

        interaction = await self.command(bot.handle_submit)
        self.assertEqual(sent_embeds(interaction)[0].description, "Incorrect! The correct answer was: 4")

    @async_test
    async def test_submit_without_choice(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        await self.command(bot.handle_teams, "Red", "Blue")
        await self.command(bot.handle_category, "Science")
        interaction = await self.command(bot.handle_submit)

        self.assertTrue(sent_ephemeral(interaction))
        self.assertEqual(sent_embeds(interaction)[0].description, "Please select an answer")

    @async_test
    async def test_manual_round_and_results(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        await self.command(bot.handle_teams, "Red", "Blue")
        await self.command(bot.handle_category, "Open Round")

        interaction = await self.command(bot.handle_reveal)
        answer_fields = [field.value for field in sent_embeds(interaction)[-1].fields if field.name == "Answer"]
        self.assertEqual(answer_fields, ["Au"])

        interaction = await self.command(bot.handle_award, 2, 10)
        self.assertEqual(sent_embeds(interaction)[0].description, "Blue earned 10 points!")

        await self.command(bot.handle_next)
        await self.command(bot.handle_reveal)
        interaction = await self.command(bot.handle_next)

        embed = sent_embeds(interaction)[-1]
        self.assertEqual(embed.title, "🏆 Game Over!")
        self.assertEqual(embed.description, "Blue Wins!")

    @async_test
    async def test_channels_have_separate_games(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        await self.command(bot.handle_teams, "Red", "Blue", channel_id=1)
        await self.command(bot.handle_status, channel_id=2)

        self.assertEqual(bot.games[1].machine.snapshot().screen, Screen.CATEGORY_SELECT)
        self.assertEqual(bot.games[2].machine.snapshot().screen, Screen.SETUP)

    @async_test
    async def test_reset_command(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        await self.command(bot.handle_teams, "Red", "Blue")
        await self.command(bot.handle_reset)
        self.assertEqual(bot.games[12345].machine.snapshot().screen, Screen.SETUP)

    @async_test
    async def test_help_command(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        interaction = await self.command(bot.handle_help)

        self.assertTrue(sent_ephemeral(interaction))
        embed = sent_embeds(interaction)[0]
        self.assertEqual(embed.title, "🎯 Quiz Battle Commands")
        questions = [field.value for field in embed.fields if field.name == "📚 Questions"]
        self.assertEqual(len(questions), 1)

    @async_test
    async def test_help_shows_catalog_summary(self):
        bot = self.create_bot()
        bot.catalog_loader.catalog = TestFixtures.create_sample_catalog()
        self.assertEqual(
            bot.describe_catalog(), "2 categories • 5 questions from ./missing-catalog.json"
        )

        bot.catalog_loader.catalog = None
        bot.catalog_loader.load_error = "catalog file not found"
        self.assertEqual(
            bot.describe_catalog(), "Failed to load from ./missing-catalog.json: catalog file not found"
        )

    @async_test
    async def test_configure_uses_injected_settings(self):
        config_manager = ConfigManager()
        config_manager.set_catalog_source("https://example.com/quiz.json")
        config_manager.set_default_points(25)
        bot = QuizBattleBot(config_manager=config_manager)

        bot.configure()

        self.assertIs(bot.config_manager, config_manager)
        self.assertEqual(bot.catalog_loader.source, "https://example.com/quiz.json")
        self.assertEqual(bot.catalog_loader.default_points, 25)

    @async_test
    async def test_null_game_config_section(self):
        with patch.dict(os.environ, {}, clear=True):
            bot = QuizBattleBot({'bot': {'command_prefix': '?'}, 'game': None})
        bot.configure()
        self.assertEqual(bot.catalog_loader.source, ConfigManager.DEFAULT_CATALOG_SOURCE)

    @async_test
    async def test_error_response_fallback(self):
        bot = self.create_bot(TestFixtures.create_sample_catalog())
        interaction = MockDiscordObjects.create_mock_interaction()
        interaction.response.send_message.side_effect = [discord.HTTPException(Mock(), "API Error"), None]

        await bot.handle_status(interaction)

        self.assertEqual(interaction.response.send_message.call_count, 2)
        fallback_text = interaction.response.send_message.call_args.args[0]
        self.assertIn("Quiz Battle", fallback_text)

    @async_test
    async def test_command_setup_and_registration(self):
        bot = self.create_bot()
        await bot.setup_commands()

        names = {command.name for command in bot.tree.get_commands()}
        self.assertTrue({
            "help", "teams", "categories", "category", "choose", "submit", "reveal",
            "award", "adjust", "next", "back", "status", "reset", "reload"
        } <= names)


class TestDiscordBotLoading(unittest.TestCase):
    """Test games waiting on the question catalog."""

    def create_bot(self):
        bot = QuizBattleBot()
        bot.catalog_loader = CatalogLoader("https://example.com/data.json")
        bot.catalog_loader.load_error = "HTTP 500"
        bot.image_resolver = ImageResolver("./missing-images/", PLACEHOLDER)
        return bot

    @async_test
    async def test_load_failure_reported_once(self):
        bot = self.create_bot()

        first = MockDiscordObjects.create_mock_interaction()
        await bot.handle_teams(first, "Red", "Blue")
        self.assertTrue(sent_ephemeral(first))
        self.assertEqual(sent_embeds(first)[0].description, "Failed to load quiz questions: HTTP 500")

        second = MockDiscordObjects.create_mock_interaction()
        await bot.handle_status(second)
        self.assertFalse(sent_ephemeral(second))
        self.assertIn("/reload", sent_embeds(second)[0].description)
        self.assertEqual(bot.games[12345].machine.snapshot().screen, Screen.LOADING)

    @async_test
    async def test_reload_recovers(self):
        bot = self.create_bot()
        await bot.handle_status(MockDiscordObjects.create_mock_interaction())

        bot.catalog_loader.fetch_catalog = AsyncMock(return_value=TestFixtures.create_sample_catalog())
        interaction = MockDiscordObjects.create_mock_interaction()
        await bot.handle_reload(interaction)

        bot.catalog_loader.fetch_catalog.assert_awaited_once()
        self.assertEqual(bot.games[12345].machine.snapshot().screen, Screen.SETUP)
        interaction.response.send_message.assert_not_called()
        embeds = interaction.followup.send.call_args.kwargs['embeds']
        self.assertIn("/teams", embeds[0].description)

    @async_test
    async def test_reload_defers_before_fetching(self):
        bot = self.create_bot()
        interaction = MockDiscordObjects.create_mock_interaction()

        async def fetch_catalog():
            interaction.response.defer.assert_awaited_once()
            return TestFixtures.create_sample_catalog()

        bot.catalog_loader.fetch_catalog = AsyncMock(side_effect=fetch_catalog)
        await bot.handle_reload(interaction)

        bot.catalog_loader.fetch_catalog.assert_awaited_once()
        interaction.followup.send.assert_awaited_once()

    @async_test
    async def test_concurrent_reloads_fetch_once(self):
        bot = self.create_bot()
        release = asyncio.Event()

        async def slow_fetch():
            await release.wait()
            return TestFixtures.create_sample_catalog()

        bot.catalog_loader.fetch_catalog = AsyncMock(side_effect=slow_fetch)
        first = asyncio.ensure_future(bot.load_catalog_data())
        second = asyncio.ensure_future(bot.load_catalog_data())
        await asyncio.sleep(0)
        release.set()

        self.assertEqual(await asyncio.gather(first, second), [True, True])
        bot.catalog_loader.fetch_catalog.assert_awaited_once()
        self.assertIsNotNone(bot.catalog)


if __name__ == '__main__':
    unittest.main()
