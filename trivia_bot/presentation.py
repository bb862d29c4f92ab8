"""
Presentation adapters for the Discord Trivia Bot.

The state machine only talks to the abstract Presenter. DiscordPresenter
renders menus, questions and countdowns as embeds with button views and
routes button presses back through the dispatcher.
"""
import functools
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import discord

from .errors import PresentationError
from .models import CATEGORIES, REPLAY_AGAIN, REPLAY_DECLINE


logger = logging.getLogger(__name__)

# Discord limits a button label to 80 characters
MAX_BUTTON_LABEL = 80
VIEW_TIMEOUT = 600


class Presenter(ABC):
    """Outbound chat operations used by the trivia state machine."""

    @abstractmethod
    async def present_category_menu(self, participant_id: int) -> None:
        """Show the category selection menu."""

    @abstractmethod
    async def present_question(
        self,
        participant_id: int,
        prompt_text: str,
        options: List[str],
        seconds_left: int,
        question_index: Optional[int] = None
    ) -> None:
        """Show a question with its answer options and the initial countdown."""

    @abstractmethod
    async def update_countdown(self, participant_id: int, seconds_left: int) -> None:
        """Refresh the countdown shown with the current question."""

    @abstractmethod
    async def notify(self, participant_id: int, text: str) -> None:
        """Send a plain notice to the participant."""

    @abstractmethod
    async def present_replay_prompt(self, participant_id: int) -> None:
        """Ask whether the participant wants another round."""

    def retire(self, participant_id: int) -> None:
        """Forget per-participant display state once their session is gone."""


class ParticipantView(discord.ui.View):
    """Button view that only accepts presses from the participant it was sent to."""

    def __init__(self, participant_id: int, timeout: Optional[float] = VIEW_TIMEOUT):
        super().__init__(timeout=timeout)
        self.participant_id = participant_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.participant_id:
            await interaction.response.send_message(
                "🚫 This quiz belongs to someone else. Use /quiz to start your own!",
                ephemeral=True
            )
            return False
        return True


class ChoiceButton(discord.ui.Button):
    """Button that acknowledges the press and hands off to an async handler."""

    def __init__(
        self,
        label: str,
        handler: Callable[[discord.Interaction], Awaitable[Any]],
        style: discord.ButtonStyle = discord.ButtonStyle.primary,
        row: Optional[int] = None
    ):
        super().__init__(label=label[:MAX_BUTTON_LABEL], style=style, row=row)
        self._handler = handler

    async def callback(self, interaction: discord.Interaction):
        await interaction.response.defer()
        await self._handler(interaction)


class DiscordPresenter(Presenter):
    """
    Presenter backed by Discord text channels.

    Each participant is bound to the channel of their most recent command.
    Failed sends surface as PresentationError; countdown edits are best effort.
    """

    def __init__(self):
        self.dispatcher = None
        self._channels: Dict[int, discord.abc.Messageable] = {}
        self._question_messages: Dict[int, Tuple[discord.Message, discord.Embed]] = {}
        self._question_views: Dict[int, discord.ui.View] = {}

    def attach_dispatcher(self, dispatcher) -> None:
        """Set the dispatcher that button presses are routed to."""
        self.dispatcher = dispatcher

    def bind_channel(self, participant_id: int, channel: discord.abc.Messageable) -> None:
        """Direct a participant's quiz messages to a channel."""
        self._channels[participant_id] = channel

    def get_channel(self, participant_id: int) -> discord.abc.Messageable:
        """
        Get the channel bound to a participant.

        Raises:
            PresentationError: If the participant has no bound channel
        """
        channel = self._channels.get(participant_id)
        if channel is None:
            raise PresentationError(f"No channel bound for participant {participant_id}")
        return channel

    async def present_category_menu(self, participant_id: int) -> None:
        embed = discord.Embed(
            title="📚 Choose a category",
            description=f"<@{participant_id}>, pick a topic for your quiz:",
            color=0x6699ff
        )

        view = ParticipantView(participant_id)
        for i, (token, label) in enumerate(CATEGORIES.items()):
            view.add_item(ChoiceButton(
                label,
                functools.partial(self._dispatch_menu, participant_id, token),
                row=i // 5
            ))

        await self._send(participant_id, "present_category_menu", embed=embed, view=view)

    async def present_question(
        self,
        participant_id: int,
        prompt_text: str,
        options: List[str],
        seconds_left: int,
        question_index: Optional[int] = None
    ) -> None:
        self._retire_question(participant_id)

        title = "🎯 Question" if question_index is None else f"🎯 Question {question_index + 1}"
        embed = discord.Embed(title=title, description=prompt_text, color=0x00ff00)
        embed.add_field(name="⏱️ Time Remaining", value=self._format_seconds(seconds_left), inline=True)

        view = ParticipantView(participant_id)
        for i, option in enumerate(options):
            view.add_item(ChoiceButton(
                option,
                functools.partial(self._dispatch_answer, participant_id, option, question_index),
                style=discord.ButtonStyle.secondary,
                row=i // 5
            ))

        message = await self._send(participant_id, "present_question", embed=embed, view=view)
        self._question_messages[participant_id] = (message, embed)
        self._question_views[participant_id] = view

    async def update_countdown(self, participant_id: int, seconds_left: int) -> None:
        entry = self._question_messages.get(participant_id)
        if entry is None:
            return

        message, embed = entry
        embed.color = 0x00ff00 if seconds_left > 3 else 0xff6600 if seconds_left > 1 else 0xff0000
        timer_emoji = "⏱️" if seconds_left > 3 else "⚠️" if seconds_left > 1 else "🚨"
        embed.set_field_at(
            0,
            name=f"{timer_emoji} Time Remaining",
            value=self._format_seconds(seconds_left),
            inline=True
        )
        try:
            await message.edit(embed=embed)
        except discord.HTTPException as e:
            logger.warning(f"Failed to update countdown for participant {participant_id}: {e}")

    async def notify(self, participant_id: int, text: str) -> None:
        await self._send(participant_id, "notify", content=f"<@{participant_id}> {text}")

    async def present_replay_prompt(self, participant_id: int) -> None:
        self._retire_question(participant_id)

        embed = discord.Embed(
            title="🔁 Play again?",
            description="Would you like to take another quiz?",
            color=0x6699ff
        )
        view = ParticipantView(participant_id)
        view.add_item(ChoiceButton(
            "Start a new quiz",
            functools.partial(self._dispatch_menu, participant_id, REPLAY_AGAIN),
            style=discord.ButtonStyle.success
        ))
        view.add_item(ChoiceButton(
            "No, thanks",
            functools.partial(self._dispatch_menu, participant_id, REPLAY_DECLINE),
            style=discord.ButtonStyle.danger
        ))

        await self._send(participant_id, "present_replay_prompt", embed=embed, view=view)

    async def _send(self, participant_id: int, operation: str, **kwargs) -> discord.Message:
        channel = self.get_channel(participant_id)
        try:
            return await channel.send(**kwargs)
        except discord.HTTPException as e:
            logger.error(f"Discord error during {operation} for participant {participant_id}: {e}")
            raise PresentationError(f"{operation} failed: {e}") from e

    def retire(self, participant_id: int) -> None:
        """Stop the live question buttons and drop the participant's channel binding."""
        self._retire_question(participant_id)
        self._channels.pop(participant_id, None)

    def _retire_question(self, participant_id: int) -> None:
        self._question_messages.pop(participant_id, None)
        view = self._question_views.pop(participant_id, None)
        if view is not None:
            view.stop()

    async def _dispatch_menu(self, participant_id: int, token: str, interaction: discord.Interaction) -> None:
        self._rebind(participant_id, interaction)
        if self.dispatcher is None:
            logger.error("Menu selection received before a dispatcher was attached")
            return
        await self.dispatcher.on_menu_selection(participant_id, token)

    async def _dispatch_answer(
        self,
        participant_id: int,
        option: str,
        question_index: Optional[int],
        interaction: discord.Interaction
    ) -> None:
        self._rebind(participant_id, interaction)
        if self.dispatcher is None:
            logger.error("Answer received before a dispatcher was attached")
            return
        await self.dispatcher.on_answer(participant_id, option, question_index)

    def _rebind(self, participant_id: int, interaction: discord.Interaction) -> None:
        # Button presses can outlive a retired binding
        if interaction.channel is not None:
            self.bind_channel(participant_id, interaction.channel)

    @staticmethod
    def _format_seconds(seconds_left: int) -> str:
        return f"{seconds_left} second{'s' if seconds_left != 1 else ''}"
