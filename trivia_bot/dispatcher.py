"""
Inbound event routing for the Discord Trivia Bot.
Translates commands, menu selections and answer presses into state machine operations.
"""
import logging
from typing import Any, Optional

from .models import CATEGORIES, REPLAY_AGAIN, REPLAY_DECLINE
from .session_machine import TriviaStateMachine


class Dispatcher:
    """Routes participant events to the trivia state machine."""

    def __init__(self, machine: TriviaStateMachine, presenter: Any = None):
        """
        Initialize the dispatcher.

        Args:
            machine: Trivia state machine
            presenter: Presenter that supports bind_channel(), if channels are tracked
        """
        self.logger = logging.getLogger(__name__)
        self.machine = machine
        self.presenter = presenter

    async def on_command(self, participant_id: int, name: str, channel: Any = None) -> bool:
        """
        Handle a text command from a participant.

        Args:
            participant_id: Chat participant identifier
            name: Command name without the leading slash
            channel: Channel the command came from, bound for later output

        Returns:
            True if the command was recognized
        """
        if channel is not None and self.presenter is not None:
            self.presenter.bind_channel(participant_id, channel)

        self.logger.debug(f"Command '{name}' from participant {participant_id}")
        if name == "start":
            await self.machine.greet(participant_id)
        elif name == "quiz":
            await self.machine.request_menu(participant_id)
        elif name == "stop":
            await self.machine.stop(participant_id)
        else:
            self.logger.warning(f"Ignored unknown command '{name}' from participant {participant_id}")
            return False
        return True

    async def on_menu_selection(self, participant_id: int, token: str) -> bool:
        """
        Handle a category or replay button press.

        Returns:
            True if the token was recognized
        """
        if token in CATEGORIES:
            await self.machine.choose_category(participant_id, token)
        elif token in (REPLAY_AGAIN, REPLAY_DECLINE):
            await self.machine.handle_replay(participant_id, token)
        else:
            self.logger.warning(f"Ignored unknown menu token '{token}' from participant {participant_id}")
            return False
        return True

    async def on_answer(self, participant_id: int, option: str, question_index: Optional[int] = None) -> bool:
        """Handle an answer option press. Returns True if it resolved the question."""
        return await self.machine.submit_answer(participant_id, option, question_index)
