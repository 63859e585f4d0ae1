import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import discord
from discord.ext import commands

from .config_manager import ConfigManager
from .data_manager import CatalogLoader
from .errors import DataLoadError, ValidationError
from .game_controller import GameStateMachine
from .images import ImageResolver
from .models import AutoGradedPayload, GameState, QuestionCatalog, Screen, TEAMS
from .notifications import (
    AnswerCorrect, AnswerIncorrect, DataLoadFailed, GameEvent, NotificationChannel,
    PointsAwarded, ValidationFailed
)


logger = logging.getLogger(__name__)

COLOR_INFO = 0x6699ff
COLOR_SUCCESS = 0x00ff00
COLOR_WARNING = 0xffaa00
COLOR_ERROR = 0xff0000
COLOR_GOLD = 0xf5b300

# User-facing wording for validation failures raised by the game core
VALIDATION_MESSAGES = {
    "missing team name": "Please enter names for both teams",
    "no answer selected": "Please select an answer",
    "answer is not one of the options": "That answer is not one of the options",
    "invalid category": "That category does not exist. Use /categories to list them",
    "invalid team index": "Team must be 1 or 2",
    "answer not revealed yet": "Reveal the answer first",
    "answer already revealed": "The answer has already been revealed",
    "question is not auto-graded": "This question has no options. Use /reveal instead",
    "question is not manually graded": "This question is graded automatically. Use /submit instead",
    "question catalog not loaded": "Quiz questions are not loaded yet",
    "action not available": "That action is not available right now",
}


@dataclass
class ChannelGame:
    """A game hosted in one Discord channel."""
    machine: GameStateMachine
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    events: List[GameEvent] = field(default_factory=list)


class QuizBattleBot(commands.Bot):
    """Discord bot hosting two-team trivia games, one per channel"""

    def __init__(self, config=None, config_manager: Optional[ConfigManager] = None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = ((config or {}).get('bot') or {}).get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}
        self.config_manager = config_manager or self.create_config_manager(self.app_config)
        self.catalog_loader: Optional[CatalogLoader] = None
        self.image_resolver: Optional[ImageResolver] = None
        self.catalog: Optional[QuestionCatalog] = None
        self.games: Dict[int, ChannelGame] = {}
        self.catalog_lock = asyncio.Lock()

    @staticmethod
    def create_config_manager(config) -> ConfigManager:
        """Build a ConfigManager from config.json settings, logging rejected values."""
        config_manager = ConfigManager()
        for error in config_manager.apply_config(config):
            logger.warning(f"Ignoring configuration value: {error}")
        return config_manager

    async def setup_hook(self):
        """Called when the bot is starting up"""
        logger.info("Setting up bot components...")
        self.configure()
        await self.load_catalog_data()
        await self.setup_commands()
        logger.info("Bot setup completed successfully")

    def configure(self):
        """Build the catalog loader and image resolver from the game settings."""
        settings = self.config_manager.get_game_settings()
        self.catalog_loader = CatalogLoader(
            source=settings.catalog_source,
            default_points=settings.default_points,
            timeout=settings.load_timeout
        )
        self.image_resolver = ImageResolver(settings.image_directory, settings.placeholder_image_url)

    async def load_catalog_data(self) -> bool:
        """Fetch the shared question catalog; games wait in the loading screen on failure."""
        async with self.catalog_lock:
            if self.catalog is not None:
                return True
            try:
                self.catalog = await self.catalog_loader.fetch_catalog()
            except DataLoadError as e:
                logger.error(f"Error loading question catalog: {e}")
                return False
        return True

    async def provide_catalog(self) -> QuestionCatalog:
        if self.catalog is None:
            raise DataLoadError(self.catalog_loader.load_error or "question catalog unavailable")
        return self.catalog

    async def setup_commands(self):
        """Register all slash commands"""
        @self.tree.command(name="help", description="Display available commands")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="teams", description="Register both team names and start the game")
        async def teams_command(interaction: discord.Interaction, team1: str, team2: str):
            await self.handle_teams(interaction, team1, team2)

        @self.tree.command(name="categories", description="List the question categories")
        async def categories_command(interaction: discord.Interaction):
            await self.handle_categories(interaction)

        @self.tree.command(name="category", description="Pick a question category")
        async def category_command(interaction: discord.Interaction, name: str):
            await self.handle_category(interaction, name)

        @self.tree.command(name="choose", description="Choose an answer option (text or number)")
        async def choose_command(interaction: discord.Interaction, option: str):
            await self.handle_choose(interaction, option)

        @self.tree.command(name="submit", description="Submit the chosen answer")
        async def submit_command(interaction: discord.Interaction):
            await self.handle_submit(interaction)

        @self.tree.command(name="reveal", description="Reveal the answer of an open question")
        async def reveal_command(interaction: discord.Interaction):
            await self.handle_reveal(interaction)

        @self.tree.command(name="award", description="Award points to a team (1 or 2)")
        async def award_command(interaction: discord.Interaction, team: int, points: int):
            await self.handle_award(interaction, team, points)

        @self.tree.command(name="adjust", description="Correct a team's score by a positive or negative amount")
        async def adjust_command(interaction: discord.Interaction, team: int, delta: int):
            await self.handle_adjust(interaction, team, delta)

        @self.tree.command(name="next", description="Go to the next question")
        async def next_command(interaction: discord.Interaction):
            await self.handle_next(interaction)

        @self.tree.command(name="back", description="Return to category selection")
        async def back_command(interaction: discord.Interaction):
            await self.handle_back(interaction)

        @self.tree.command(name="status", description="Show the current screen and scores")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        @self.tree.command(name="reset", description="Start a new game")
        async def reset_command(interaction: discord.Interaction):
            await self.handle_reset(interaction)

        @self.tree.command(name="reload", description="Retry loading the question catalog")
        async def reload_command(interaction: discord.Interaction):
            await self.handle_reload(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        print(f"🤖 {self.user} is Ready and Online!")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    def get_game(self, channel_id: int) -> ChannelGame:
        """Get the channel's game, creating it on first use."""
        game = self.games.get(channel_id)
        if game is None:
            notifications = NotificationChannel()
            game = ChannelGame(machine=GameStateMachine(notifications=notifications))
            notifications.subscribe(game.events.append)
            self.games[channel_id] = game
            logger.info(f"Created game for channel {channel_id}")
        return game

    async def wait_for_catalog(self, game: ChannelGame):
        """Move a loading game to setup once the shared catalog is available."""
        # A failed load is reported once; later attempts wait for /reload
        if game.machine.load_error is not None and self.catalog is None:
            return
        try:
            await game.machine.load_catalog(self.provide_catalog)
        except DataLoadError:
            pass  # DataLoadFailed was emitted and is rendered with the response

    async def run_action(self, interaction: discord.Interaction, action: Callable[[GameStateMachine], Any]):
        """
        Apply one action to the channel's game and respond with the result.

        Actions on a channel are serialized; a rejected action only produces
        an ephemeral error message.
        """
        game = self.get_game(interaction.channel_id)
        async with game.lock:
            if game.machine.is_loading:
                await self.wait_for_catalog(game)
            try:
                if not game.machine.is_loading:
                    action(game.machine)
            except ValidationError as e:
                logger.debug(f"Action rejected in channel {interaction.channel_id}: {e.reason}")

            events = list(game.events)
            game.events.clear()
            state = game.machine.snapshot()

        errors = [event for event in events if isinstance(event, (ValidationFailed, DataLoadFailed))]
        if errors:
            await self.send_error_response(interaction, self.describe_event(errors[0]), "❌ Not Allowed")
            return

        embeds = [self.build_event_embed(event) for event in events]
        await self.send_state(interaction, game.machine, state, embeds)

    async def send_state(
        self,
        interaction: discord.Interaction,
        machine: GameStateMachine,
        state: GameState,
        extra_embeds: Optional[List[discord.Embed]] = None
    ):
        embed = self.build_screen_embed(machine, state)
        files = []
        if state.has_question:
            image = self.image_resolver.resolve(state.current_question) if self.image_resolver else None
            if image and image.path:
                files.append(discord.File(image.path, filename=image.path.name))
                embed.set_image(url=f"attachment://{image.path.name}")
            elif image:
                embed.set_image(url=image.url)

        await self._send(interaction, embeds=(extra_embeds or []) + [embed], files=files)

    async def _send(self, interaction: discord.Interaction, embeds: List[discord.Embed], files=None, ephemeral=False):
        kwargs = {'embeds': embeds, 'ephemeral': ephemeral}
        if files:
            kwargs['files'] = files
        try:
            if interaction.response.is_done():
                await interaction.followup.send(**kwargs)
            else:
                await interaction.response.send_message(**kwargs)
        except discord.HTTPException as e:
            logger.error(f"Failed to send game embed: {e}")
            # Fallback to simple message
            try:
                text = "\n\n".join(f"{embed.title or ''}\n{embed.description or ''}".strip() for embed in embeds)
                if interaction.response.is_done():
                    await interaction.followup.send(text, ephemeral=ephemeral)
                else:
                    await interaction.response.send_message(text, ephemeral=ephemeral)
            except discord.HTTPException:
                logger.error("Failed to send fallback game message")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def describe_event(self, event: GameEvent) -> str:
        if isinstance(event, ValidationFailed):
            return VALIDATION_MESSAGES.get(event.reason, event.reason)
        if isinstance(event, AnswerCorrect):
            return f"Correct! {event.team_name} earned {event.points} points!"
        if isinstance(event, AnswerIncorrect):
            return f"Incorrect! The correct answer was: {event.correct_answer}"
        if isinstance(event, PointsAwarded):
            return f"{event.team_name} earned {event.points} points!"
        if isinstance(event, DataLoadFailed):
            return f"Failed to load quiz questions: {event.reason}"
        return str(event)

    def build_event_embed(self, event: GameEvent) -> discord.Embed:
        color = COLOR_SUCCESS if isinstance(event, (AnswerCorrect, PointsAwarded)) else COLOR_ERROR
        return discord.Embed(description=self.describe_event(event), color=color)

    def build_screen_embed(self, machine: GameStateMachine, state: GameState) -> discord.Embed:
        if state.screen == Screen.LOADING:
            description = "Loading quiz..."
            if state.load_error:
                description = f"Failed to load quiz questions: {state.load_error}\nUse `/reload` to try again."
            return discord.Embed(title="🏆 Quiz Battle", description=description, color=COLOR_WARNING)

        if state.screen == Screen.SETUP:
            return discord.Embed(
                title="🏆 Quiz Battle",
                description="Enter team names to begin the challenge with `/teams <team1> <team2>`",
                color=COLOR_GOLD
            )

        if state.screen == Screen.CATEGORY_SELECT:
            embed = discord.Embed(
                title=f"{state.current_team_name}, Choose Your Category",
                description="Pick one with `/category <name>`",
                color=COLOR_GOLD
            )
            for category in machine.catalog:
                points = sorted({question.points for question in category.questions})
                points_text = f"{points[0]} points each" if len(points) == 1 else f"{points[0]}-{points[-1]} points"
                embed.add_field(
                    name=category.name,
                    value=f"{len(category)} Questions • {points_text}",
                    inline=True
                )
        elif state.screen == Screen.QUIZ:
            embed = self.build_question_embed(state)
        else:
            embed = discord.Embed(title="🏆 Game Over!", description=machine.outcome_text(), color=COLOR_GOLD)
            embed.set_footer(text="Use /reset to play again")

        for team in TEAMS:
            marker = "▶ " if team == state.current_team and state.screen != Screen.RESULTS else ""
            embed.add_field(
                name=f"{marker}{state.team(team).name}",
                value=str(state.team(team).score),
                inline=True
            )
        return embed

    def build_question_embed(self, state: GameState) -> discord.Embed:
        question = state.current_question
        embed = discord.Embed(
            title=f"{state.selected_category} • Question {state.current_question_index + 1} of {state.question_count}",
            description=f"**{question.text}**",
            color=COLOR_INFO
        )

        next_hint = "/next for the next question" if not state.is_last_question else "/next to view results"
        if isinstance(question.payload, AutoGradedPayload):
            lines = []
            for number, option in enumerate(question.payload.options, start=1):
                mark = ""
                if state.revealed and option == question.payload.correct_option:
                    mark = " ✅"
                elif state.revealed and option == state.pending_selection:
                    mark = " ❌"
                elif option == state.pending_selection:
                    mark = " ◀"
                lines.append(f"`{number}.` {option}{mark}")
            embed.add_field(name="Options", value="\n".join(lines), inline=False)
            hint = f"Use {next_hint}" if state.revealed else "Use /choose and /submit"
        elif state.revealed:
            embed.add_field(name="Answer", value=question.payload.reveal_text, inline=False)
            hint = f"Use /award <team> <points>, then {next_hint}"
        else:
            hint = "Use /reveal"

        embed.set_footer(text=f"{question.points} points • {state.current_team_name} is up • {hint}")
        return embed

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        help_embed = discord.Embed(
            title="🎯 Quiz Battle Commands",
            description="Two teams take turns picking categories and answering questions",
            color=COLOR_SUCCESS
        )
        help_embed.add_field(
            name="🎮 Game",
            value=(
                "`/teams <team1> <team2>` - Register teams and start\n"
                "`/categories` - List categories\n"
                "`/category <name>` - Pick a category\n"
                "`/next` - Next question\n"
                "`/back` - Choose another category\n"
                "`/status` - Show the current screen\n"
                "`/reset` - Start a new game"
            ),
            inline=False
        )
        help_embed.add_field(
            name="✏️ Answering",
            value=(
                "`/choose <option>` and `/submit` - Multiple choice questions\n"
                "`/reveal` - Show the answer of an open question\n"
                "`/award <team> <points>` - Give points after a reveal\n"
                "`/adjust <team> <delta>` - Correct a score"
            ),
            inline=False
        )
        help_embed.add_field(name="📚 Questions", value=self.describe_catalog(), inline=False)
        help_embed.add_field(
            name="⚙️ Current Settings",
            value=f"```\n{self.config_manager.get_settings_summary()}\n```",
            inline=False
        )
        await self._send(interaction, embeds=[help_embed], ephemeral=True)

    async def handle_teams(self, interaction: discord.Interaction, team1: str, team2: str):
        await self.run_action(interaction, lambda machine: machine.start_game(team1, team2))

    async def handle_categories(self, interaction: discord.Interaction):
        """Categories are listed on the category selection screen"""
        await self.handle_status(interaction)

    async def handle_category(self, interaction: discord.Interaction, name: str):
        await self.run_action(interaction, lambda machine: machine.select_category(name))

    async def handle_choose(self, interaction: discord.Interaction, option: str):
        def choose(machine: GameStateMachine):
            question = machine.snapshot().current_question
            selection = option.strip()
            if question and isinstance(question.payload, AutoGradedPayload) and selection.isdigit():
                number = int(selection)
                if 1 <= number <= len(question.payload.options):
                    selection = question.payload.options[number - 1]
            machine.select_option(selection)

        await self.run_action(interaction, choose)

    async def handle_submit(self, interaction: discord.Interaction):
        await self.run_action(interaction, lambda machine: machine.resolve_answer())

    async def handle_reveal(self, interaction: discord.Interaction):
        await self.run_action(interaction, lambda machine: machine.reveal_answer())

    async def handle_award(self, interaction: discord.Interaction, team: int, points: int):
        await self.run_action(interaction, lambda machine: machine.award(team, points))

    async def handle_adjust(self, interaction: discord.Interaction, team: int, delta: int):
        await self.run_action(interaction, lambda machine: machine.adjust_score(team, delta))

    async def handle_next(self, interaction: discord.Interaction):
        await self.run_action(interaction, lambda machine: machine.next_question())

    async def handle_back(self, interaction: discord.Interaction):
        await self.run_action(interaction, lambda machine: machine.back_to_categories())

    async def handle_status(self, interaction: discord.Interaction):
        await self.run_action(interaction, lambda machine: None)

    async def handle_reset(self, interaction: discord.Interaction):
        await self.run_action(interaction, lambda machine: machine.reset_game())

    async def handle_reload(self, interaction: discord.Interaction):
        """Retry loading the catalog if it failed at startup"""
        # Fetching may outlast the interaction response window
        await interaction.response.defer()
        await self.load_catalog_data()
        await self.handle_status(interaction)

    def describe_catalog(self) -> str:
        """One-line status of the shared question catalog."""
        if self.catalog_loader is None:
            return "Not configured"
        summary = self.catalog_loader.get_loading_summary()
        if summary['loaded']:
            return (
                f"{summary['total_categories']} categories • "
                f"{summary['total_questions']} questions from {summary['source']}"
            )
        if summary['has_errors']:
            return f"Failed to load from {summary['source']}: {summary['error']}"
        return f"Loading from {summary['source']}..."

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        embed = discord.Embed(title=title, description=message, color=COLOR_ERROR)
        await self._send(interaction, embeds=[embed], ephemeral=True)


async def run_bot(token=None, config=None, config_manager: Optional[ConfigManager] = None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBattleBot(config, config_manager)

    try:
        logger.info("Starting Quiz Battle bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
