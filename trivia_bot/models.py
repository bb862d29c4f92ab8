"""
Core data models for the Discord Trivia Bot.
"""
import asyncio
import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple


# Category token -> menu label. Tokens are sent to the question API as tags.
CATEGORIES = {
    "history": "History",
    "science": "Science",
    "music": "Music",
    "geography": "Geography",
    "people": "People",
    "sport": "Sport",
    "film_and_tv": "Film & TV",
    "food_and_drink": "Food & Drink",
    "arts_and_literature": "Arts & Literature",
    "society_and_culture": "Society & Culture",
}

REPLAY_AGAIN = "again"
REPLAY_DECLINE = "decline"


@dataclass(frozen=True)
class Question:
    """Represents a single trivia question."""
    prompt_text: str
    correct_answer: str
    incorrect_answers: Tuple[str, ...]

    def options(self) -> List[str]:
        """Return a freshly shuffled list of every answer choice."""
        choices = [*self.incorrect_answers, self.correct_answer]
        random.shuffle(choices)
        return choices


@dataclass
class TriviaSettings:
    """Settings applied to every trivia session."""
    timer_duration: float = 15
    tick_interval: float = 1.0
    question_count: int = 5


class SessionStatus(Enum):
    """Stored states of a trivia session. No session at all means idle."""
    CATEGORY_SELECTING = "category_selecting"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


@dataclass
class TriviaSession:
    """Live state of one participant's trivia attempt."""
    participant_id: int
    status: SessionStatus = SessionStatus.CATEGORY_SELECTING
    category: Optional[str] = None
    questions: List[Question] = field(default_factory=list)
    current_index: int = 0
    score: int = 0
    resolved: bool = False
    active_timer: Optional[Any] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    start_time: datetime = field(default_factory=datetime.now)

    @property
    def is_complete(self) -> bool:
        return self.current_index == len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None
