"""
Test fixtures and sample data for Discord Trivia Bot tests.
"""
from typing import Any, Dict, List, Optional
from unittest.mock import Mock, AsyncMock
import discord

from trivia_bot.models import Question, TriviaSettings
from trivia_bot.presentation import Presenter


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def create_sample_questions() -> List[Question]:
        """Create sample questions for testing."""
        return [
            Question("What is the capital of France?", "Paris", ("London", "Berlin", "Madrid")),
            Question("What is 5*5?", "25", ("10", "20", "30")),
            Question("What is the largest planet?", "Jupiter", ("Earth", "Mars", "Saturn")),
            Question("Who painted the Mona Lisa?", "Leonardo da Vinci", ("Picasso", "Van Gogh", "Monet")),
            Question("How many days are in a week?", "7", ("5", "6", "8")),
        ]

    @staticmethod
    def create_fast_settings(question_count: int = 5, timer_duration: float = 0.3) -> TriviaSettings:
        """Create settings with a short countdown so timeouts happen quickly."""
        return TriviaSettings(
            timer_duration=timer_duration,
            tick_interval=0.05,
            question_count=question_count
        )

    @staticmethod
    def create_slow_settings(question_count: int = 5) -> TriviaSettings:
        """Create settings whose countdown never expires during a test."""
        return TriviaSettings(
            timer_duration=60,
            tick_interval=1.0,
            question_count=question_count
        )

    @staticmethod
    def create_api_payload() -> List[Dict[str, Any]]:
        """Create a trivia API response body."""
        return [
            {
                "category": "Science",
                "id": "a1",
                "question": "What is the chemical symbol for gold?",
                "correctAnswer": "Au",
                "incorrectAnswers": ["Ag", "Gd", "Go"],
                "tags": ["science"]
            },
            {
                "category": "Science",
                "id": "a2",
                "question": {"text": "What planet is known as the Red Planet?"},
                "correctAnswer": "Mars",
                "incorrectAnswers": ["Venus", "Jupiter", "Mercury"],
                "tags": ["science"]
            }
        ]

    @staticmethod
    def create_mock_question_source(questions: Optional[List[Question]] = None) -> Mock:
        """Create a question source mock whose fetch returns the given batch."""
        source = Mock()
        source.fetch = AsyncMock(
            return_value=list(questions) if questions is not None else TestFixtures.create_sample_questions()
        )
        source.aclose = AsyncMock()
        return source


class RecordingPresenter(Presenter):
    """Presenter that records every outbound call in order."""

    def __init__(self):
        self.events: List[tuple] = []
        self.countdowns: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}
        self.retired: List[int] = []

    def _record(self, name: str, *args):
        error = self.fail_on.get(name)
        if error is not None:
            raise error
        self.events.append((name, *args))

    async def present_category_menu(self, participant_id: int) -> None:
        self._record("menu", participant_id)

    async def present_question(self, participant_id, prompt_text, options, seconds_left, question_index=None):
        self._record("question", participant_id, prompt_text, list(options))

    async def update_countdown(self, participant_id: int, seconds_left: int) -> None:
        self.countdowns.append((participant_id, seconds_left))

    async def notify(self, participant_id: int, text: str) -> None:
        self._record("notify", participant_id, text)

    async def present_replay_prompt(self, participant_id: int) -> None:
        self._record("replay", participant_id)

    def retire(self, participant_id: int) -> None:
        self.retired.append(participant_id)

    def names(self) -> List[str]:
        """Return just the event names, in order."""
        return [event[0] for event in self.events]

    def notices(self, participant_id: Optional[int] = None) -> List[str]:
        """Return notice texts, optionally for one participant."""
        return [
            event[2] for event in self.events
            if event[0] == "notify" and (participant_id is None or event[1] == participant_id)
        ]

    def questions(self, participant_id: Optional[int] = None) -> List[str]:
        """Return presented question prompts, optionally for one participant."""
        return [
            event[2] for event in self.events
            if event[0] == "question" and (participant_id is None or event[1] == participant_id)
        ]


class MockDiscordObjects:
    """Mock Discord objects for testing bot functionality."""

    @staticmethod
    def create_mock_interaction(channel_id: int = 12345, user_id: int = 67890) -> Mock:
        """Create mock Discord interaction."""
        interaction = Mock(spec=discord.Interaction)
        interaction.channel_id = channel_id
        interaction.channel = MockDiscordObjects.create_mock_channel(channel_id)
        interaction.user = Mock()
        interaction.user.id = user_id
        interaction.response = Mock()
        interaction.response.is_done.return_value = False
        interaction.response.send_message = AsyncMock()
        interaction.response.defer = AsyncMock()
        interaction.followup = Mock()
        interaction.followup.send = AsyncMock()
        return interaction

    @staticmethod
    def create_mock_channel(channel_id: int = 12345) -> Mock:
        """Create mock Discord channel whose send returns a mock message."""
        channel = Mock(spec=discord.TextChannel)
        channel.id = channel_id
        channel.send = AsyncMock(return_value=MockDiscordObjects.create_mock_message())
        return channel

    @staticmethod
    def create_mock_message(message_id: int = 11111, content: str = "Test message") -> Mock:
        """Create mock Discord message."""
        message = Mock(spec=discord.Message)
        message.id = message_id
        message.content = content
        message.edit = AsyncMock()
        message.delete = AsyncMock()
        return message

    @staticmethod
    def create_http_exception(status: int = 500, message: str = "HTTP error") -> discord.HTTPException:
        """Create a discord.HTTPException with a mocked response."""
        response = Mock()
        response.status = status
        response.reason = message
        return discord.HTTPException(response, message)
