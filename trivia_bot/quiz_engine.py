"""
Quiz engine core logic for the Discord Trivia Bot.
Handles question batch preparation, answer options and question countdowns.
"""
import asyncio
import logging
import math
import time
from typing import Any, Awaitable, Callable, List, Optional

from .models import Question, TriviaSession, TriviaSettings

# Set up logger for timer operations
logger = logging.getLogger(__name__)


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_created(participant_id: int, question_index: int, duration: float) -> None:
        """Log countdown creation for a question."""
        logger.info(
            f"Timer lifecycle: CREATED - Participant {participant_id}, Question {question_index + 1}, Duration {duration}s",
            extra={
                'event_type': 'timer_created',
                'participant_id': participant_id,
                'question_index': question_index,
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_update(participant_id: int, remaining_time: int, total_duration: float) -> None:
        """Log timer update events (throttled to avoid spam)."""
        if remaining_time % 10 == 0 or remaining_time <= 5:
            progress_percent = ((total_duration - remaining_time) / total_duration) * 100 if total_duration else 100.0
            logger.debug(
                f"Timer lifecycle: UPDATE - Participant {participant_id}, Remaining {remaining_time}s ({progress_percent:.1f}% complete)",
                extra={
                    'event_type': 'timer_update',
                    'participant_id': participant_id,
                    'remaining_time': remaining_time,
                    'total_duration': total_duration,
                    'progress_percent': progress_percent,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_timer_completion(participant_id: int, completion_type: str, total_duration: float) -> None:
        """Log timer completion (natural expiry or cancellation)."""
        logger.info(
            f"Timer lifecycle: COMPLETED - Participant {participant_id}, Type {completion_type}, Duration {total_duration}s",
            extra={
                'event_type': 'timer_completed',
                'participant_id': participant_id,
                'completion_type': completion_type,
                'total_duration': total_duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_state_transition(participant_id: int, from_state: str, to_state: str, reason: str = None) -> None:
        """Log timer state transitions."""
        logger.debug(
            f"Timer lifecycle: STATE_TRANSITION - Participant {participant_id}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'participant_id': participant_id,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(participant_id: int, error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Participant {participant_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'participant_id': participant_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class QuizTimer:
    """
    Countdown for a single question.

    The timer ends in exactly one of two ways: it fires (the expiry callback
    runs) or it is cancelled. Once either has happened, cancel() is a no-op.
    """

    def __init__(self, participant_id: int, question_index: int):
        """Initialize the timer for one question of a participant's session."""
        self.participant_id = participant_id
        self.question_index = question_index
        self._task: Optional[asyncio.Task] = None
        self._remaining_time = 0
        self._total_duration = 0.0
        self._is_cancelled = False
        self._has_fired = False

    def start(
        self,
        duration: float,
        update_callback: Callable[[int], Awaitable[Any]],
        expiry_callback: Callable[[], Awaitable[Any]],
        tick_interval: float = 1.0
    ) -> asyncio.Task:
        """
        Start the countdown as a background task.

        Args:
            duration: Timer duration in seconds
            update_callback: Awaited after each tick with whole seconds remaining
            expiry_callback: Awaited once when the deadline passes

        Returns:
            The countdown task
        """
        if self._task is not None:
            raise RuntimeError(f"Timer for participant {self.participant_id} already started")

        self._total_duration = duration
        self._remaining_time = math.ceil(duration)
        self._task = asyncio.create_task(
            self._run(duration, update_callback, expiry_callback, tick_interval)
        )
        return self._task

    async def _run(
        self,
        duration: float,
        update_callback: Callable[[int], Awaitable[Any]],
        expiry_callback: Callable[[], Awaitable[Any]],
        tick_interval: float
    ) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration

        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                await asyncio.sleep(min(tick_interval, remaining))

                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                self._remaining_time = math.ceil(remaining)
                TimerLifecycleLogger.log_timer_update(
                    self.participant_id, self._remaining_time, self._total_duration
                )
                # The display may lag; it never delays the deadline
                try:
                    await asyncio.wait_for(update_callback(self._remaining_time), timeout=remaining)
                except Exception as e:
                    TimerLifecycleLogger.log_timer_error(
                        self.participant_id, "countdown_update_failed", str(e), "update_callback"
                    )
        except asyncio.CancelledError:
            TimerLifecycleLogger.log_timer_completion(
                self.participant_id, "cancelled", self._total_duration
            )
            raise

        if self._is_cancelled:
            return

        self._has_fired = True
        self._remaining_time = 0
        TimerLifecycleLogger.log_timer_completion(
            self.participant_id, "natural_expiry", self._total_duration
        )
        try:
            await expiry_callback()
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                self.participant_id, "expiry_callback_failed", str(e), "expiry_callback"
            )

    def cancel(self) -> bool:
        """
        Cancel the countdown.

        Returns:
            True if this call stopped a pending countdown, False if the timer
            had already fired or been cancelled
        """
        if self._has_fired or self._is_cancelled:
            TimerLifecycleLogger.log_timer_state_transition(
                self.participant_id,
                "fired" if self._has_fired else "cancelled",
                "cancel_ignored",
                "timer already finished"
            )
            return False

        self._is_cancelled = True
        if self._task and not self._task.done():
            self._task.cancel()
        TimerLifecycleLogger.log_timer_state_transition(
            self.participant_id, "running", "cancelled", "cancel requested"
        )
        return True

    @property
    def is_cancelled(self) -> bool:
        """Check if timer is cancelled."""
        return self._is_cancelled

    @property
    def has_fired(self) -> bool:
        """Check if the deadline passed and the expiry callback was invoked."""
        return self._has_fired

    @property
    def is_active(self) -> bool:
        return not (self._is_cancelled or self._has_fired)

    @property
    def remaining_time(self) -> int:
        """Get remaining time in whole seconds."""
        return self._remaining_time

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task


class QuizEngine:
    """Core quiz engine that prepares question batches and runs question timers."""

    def prepare_questions(self, questions: List[Question], settings: TriviaSettings) -> List[Question]:
        """
        Trim a fetched batch to the configured question count.

        Args:
            questions: Questions returned by the question source
            settings: Trivia configuration settings

        Returns:
            New list holding at most settings.question_count questions
        """
        return self.limit_question_count(list(questions), settings.question_count)

    def limit_question_count(self, questions: List[Question], count: int) -> List[Question]:
        """
        Limit the number of questions to the specified count.

        Note:
            If count is greater than available questions, returns all questions.
            If count is less than 1, returns empty list.
        """
        if count < 1:
            return []
        return questions[:count]

    def build_options(self, question: Question) -> List[str]:
        """Shuffle the answer choices for one presentation of a question."""
        return question.options()

    def start_question_timer(
        self,
        session: TriviaSession,
        settings: TriviaSettings,
        update_callback: Callable[[int], Awaitable[Any]],
        expiry_callback: Callable[[], Awaitable[Any]]
    ) -> QuizTimer:
        """
        Start the countdown for the session's current question.

        Any countdown still attached to the session is cancelled first.

        Returns:
            The new timer, also stored as session.active_timer
        """
        self.cancel_timer(session)

        timer = QuizTimer(session.participant_id, session.current_index)
        session.active_timer = timer
        timer.start(
            settings.timer_duration,
            update_callback,
            expiry_callback,
            tick_interval=settings.tick_interval
        )
        TimerLifecycleLogger.log_timer_created(
            session.participant_id, session.current_index, settings.timer_duration
        )
        return timer

    def cancel_timer(self, session: TriviaSession) -> bool:
        """
        Cancel and detach the session's countdown.

        Returns:
            True if a pending countdown was stopped, False otherwise
        """
        timer = session.active_timer
        if timer is None:
            return False
        session.active_timer = None
        return timer.cancel()
