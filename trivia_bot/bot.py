import discord
from discord.ext import commands
import logging
import os
from typing import Optional

from .config_manager import ConfigManager
from .dispatcher import Dispatcher
from .presentation import DiscordPresenter
from .question_source import QuestionSource
from .session_machine import TriviaStateMachine
from .session_store import SessionStore

logger = logging.getLogger(__name__)


COMMAND_ACKS = {
    "start": "👋 Welcome!",
    "quiz": "🎯 Setting up your quiz...",
    "stop": "🛑 Stopping your quiz...",
}


class TriviaBot(commands.Bot):
    """Discord bot that runs per-participant trivia quizzes"""

    def __init__(self, config=None):
        # Slash commands and buttons only need the guilds intent
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.config_manager: Optional[ConfigManager] = None
        self.question_source: Optional[QuestionSource] = None
        self.session_store: Optional[SessionStore] = None
        self.presenter: Optional[DiscordPresenter] = None
        self.machine: Optional[TriviaStateMachine] = None
        self.dispatcher: Optional[Dispatcher] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")
            self.build_components()
            await self.setup_commands()
            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def build_components(self):
        """Wire configuration, question source, session store, presenter and dispatcher."""
        self.config_manager = ConfigManager()
        rejected = self.config_manager.apply_config(self.app_config)
        for message in rejected:
            logger.warning(f"Config value ignored: {message}")
        for issue in self.config_manager.validate_settings()['issues']:
            logger.warning(f"Config validation: {issue}")

        self.question_source = QuestionSource(
            self.config_manager.get_api_url(),
            question_count=self.config_manager.get_question_count(),
            timeout=self.config_manager.get_request_timeout()
        )
        self.session_store = SessionStore()
        self.presenter = DiscordPresenter()
        self.machine = TriviaStateMachine(
            self.session_store,
            self.question_source,
            self.presenter,
            self.config_manager.get_trivia_settings()
        )
        self.dispatcher = Dispatcher(self.machine, self.presenter)
        self.presenter.attach_dispatcher(self.dispatcher)

    async def setup_commands(self):
        """Register all slash commands"""
        try:
            @self.tree.command(name="help", description="Display available commands and their descriptions")
            async def help_command(interaction: discord.Interaction):
                await self.handle_help(interaction)

            @self.tree.command(name="start", description="Say hello to the trivia bot")
            async def start_command(interaction: discord.Interaction):
                await self.handle_command(interaction, "start")

            @self.tree.command(name="quiz", description="Start a trivia quiz")
            async def quiz_command(interaction: discord.Interaction):
                await self.handle_command(interaction, "quiz")

            @self.tree.command(name="stop", description="Stop your current trivia quiz")
            async def stop_command(interaction: discord.Interaction):
                await self.handle_command(interaction, "stop")

            @self.tree.command(name="status", description="Show your quiz progress")
            async def status_command(interaction: discord.Interaction):
                await self.handle_status(interaction)

            logger.info("Slash commands registered successfully")

        except Exception as e:
            logger.error(f"Error setting up commands: {e}")
            raise

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        try:
            logger.info(f"Bot is ready! Logged in as {self.user}")
            logger.info(f"Bot is in {len(self.guilds)} guilds")
            print(f"🤖 {self.user} is Ready and Online!")

            try:
                synced = await self.tree.sync()
                logger.info(f"Synced {len(synced)} slash commands")
                print(f"⚡ Synced {len(synced)} slash commands")
            except discord.HTTPException as e:
                logger.error(f"Failed to sync slash commands: {e}")
                print(f"❌ Failed to sync slash commands: {e}")

        except Exception as e:
            logger.error(f"Error in on_ready event: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        """Release the HTTP client before disconnecting"""
        if self.question_source is not None:
            await self.question_source.aclose()
        await super().close()

    async def handle_command(self, interaction: discord.Interaction, name: str):
        """Acknowledge a slash command, then hand it to the dispatcher"""
        try:
            await interaction.response.send_message(COMMAND_ACKS[name], ephemeral=True)
        except discord.HTTPException as e:
            logger.warning(f"Failed to acknowledge /{name}: {e}")

        try:
            await self.dispatcher.on_command(interaction.user.id, name, interaction.channel)
        except Exception as e:
            logger.error(f"Error handling /{name} for user {interaction.user.id}: {e}", exc_info=True)
            await self.send_error_response(interaction, "Something went wrong. Please try again.")

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="🎯 Trivia Bot Commands",
                description="Answer timed multiple-choice questions from ten categories",
                color=0x00ff00
            )
            help_embed.add_field(
                name="🎮 Commands",
                value=(
                    "`/start` - Show the welcome message\n"
                    "`/quiz` - Pick a category and start a quiz\n"
                    "`/stop` - Stop your current quiz\n"
                    "`/status` - Show your quiz progress\n"
                    "`/help` - Show this help message"
                ),
                inline=False
            )
            help_embed.add_field(
                name="⚙️ Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )
            help_embed.set_footer(text="Each participant plays their own quiz")

            await interaction.response.send_message(embed=help_embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help information", "❌ Help Error")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            progress = self.machine.get_session_progress(interaction.user.id)

            if progress is None:
                embed = discord.Embed(
                    title="ℹ️ No Active Quiz",
                    description="You don't have a quiz in progress. Use `/quiz` to start one.",
                    color=0x6699ff
                )
                await interaction.response.send_message(embed=embed, ephemeral=True)
                return

            if progress['status'] == 'category_selecting':
                embed = discord.Embed(
                    title="📚 Choosing a Category",
                    description="Pick a category from the menu to begin.",
                    color=0x6699ff
                )
            else:
                minutes, seconds = divmod(progress['elapsed_seconds'], 60)
                embed = discord.Embed(
                    title="▶️ Quiz in Progress",
                    description=f"**{progress['category_label']}**",
                    color=0x00ff00
                )
                embed.add_field(
                    name="📊 Progress",
                    value=(
                        f"Question: {progress['current_question']}/{progress['total_questions']}\n"
                        f"Score: {progress['score']}"
                    ),
                    inline=True
                )
                embed.add_field(
                    name="⏱️ Timing",
                    value=f"Duration: {minutes}m {seconds}s",
                    inline=True
                )

            embed.set_footer(text="Use /stop to end your quiz")
            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in status command: {e}")
            await self.send_error_response(interaction, "Failed to get quiz status", "❌ Status Error")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = TriviaBot(config)

    try:
        logger.info("Starting Discord Trivia Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
