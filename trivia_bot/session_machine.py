"""
Trivia session state machine for the Discord Trivia Bot.

Drives one participant at a time through category selection, questions,
scoring and completion. Every transition for a session runs under that
session's lock; the countdown expiry and the answer tap both pass through
it, and whichever resolves the question first owns the outcome.
"""
import logging
import math
import time
from datetime import datetime
from typing import Any, Dict, Optional

from .errors import DuplicateStartError
from .models import (
    CATEGORIES,
    REPLAY_AGAIN,
    REPLAY_DECLINE,
    SessionStatus,
    TriviaSession,
    TriviaSettings,
)
from .presentation import Presenter
from .question_source import QuestionSource
from .quiz_engine import QuizEngine
from .session_store import SessionStore


WELCOME_TEXT = "👋 Hi! I'm a trivia bot. Use /quiz to start!"
ALREADY_IN_PROGRESS_TEXT = "⚠️ You already have a quiz in progress. Finish it before starting a new one."
LOAD_FAILED_TEXT = "❌ Failed to load questions. Please try again later."
CORRECT_TEXT = "✅ Correct!"
INCORRECT_TEXT = "❌ Wrong! The correct answer was: {answer}"
TIMEOUT_TEXT = "⏰ Time's up! The correct answer was: {answer}"
FINAL_SCORE_TEXT = "🎉 Quiz finished! Your result: {score}/{total}"
FAREWELL_TEXT = "👋 Thanks for playing! Come back any time."
FATAL_ERROR_TEXT = "❌ An error occurred while running your quiz. Please start again with /quiz."
STOPPED_TEXT = "🛑 Your quiz has been stopped."
NO_SESSION_TEXT = "ℹ️ You don't have an active quiz."


class TriviaStateMachine:
    """
    Owns the lifecycle of every participant's trivia session.

    Sessions live in the injected SessionStore. Outbound messages go through
    the Presenter and are awaited in order, so an outcome notice always lands
    before the next question and the final score before the replay prompt.
    """

    def __init__(
        self,
        store: SessionStore,
        question_source: QuestionSource,
        presenter: Presenter,
        settings: Optional[TriviaSettings] = None,
        quiz_engine: Optional[QuizEngine] = None
    ):
        """
        Initialize the state machine.

        Args:
            store: Registry of live sessions
            question_source: Fetches question batches per category
            presenter: Outbound chat adapter
            settings: Timer and batch settings, defaults if None
            quiz_engine: Option shuffling and countdown helper
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.question_source = question_source
        self.presenter = presenter
        self.settings = settings or TriviaSettings()
        self.quiz_engine = quiz_engine or QuizEngine()

    async def greet(self, participant_id: int) -> None:
        """Send the welcome text for the start command."""
        await self._notify_best_effort(participant_id, WELCOME_TEXT)

    async def request_menu(self, participant_id: int) -> bool:
        """
        Open category selection for a participant with no live session.

        Returns:
            True if a new session was created and the menu shown
        """
        try:
            session = self.store.claim(participant_id)
        except DuplicateStartError:
            await self._notify_best_effort(participant_id, ALREADY_IN_PROGRESS_TEXT)
            return False

        async with session.lock:
            try:
                await self.presenter.present_category_menu(participant_id)
            except Exception as e:
                await self._abort(session, e, "present_category_menu")
                return False

        self._log_transition(session, "none", SessionStatus.CATEGORY_SELECTING.value)
        return True

    async def choose_category(self, participant_id: int, category: str) -> bool:
        """
        Start a quiz in the chosen category.

        A participant with no session (for example, a menu left over from an
        earlier run) gets one on the spot.

        Returns:
            True if questions were loaded and the first one presented
        """
        session = self.store.get(participant_id)
        if session is None:
            session = self.store.claim(participant_id)

        async with session.lock:
            if not self.store.owns(session):
                return False
            if session.status is not SessionStatus.CATEGORY_SELECTING:
                await self._notify_best_effort(participant_id, ALREADY_IN_PROGRESS_TEXT)
                return False

            session.status = SessionStatus.IN_PROGRESS
            session.category = category
            session.current_index = 0
            session.score = 0
            session.resolved = False
            self._log_transition(session, SessionStatus.CATEGORY_SELECTING.value, SessionStatus.IN_PROGRESS.value)

            try:
                fetched = await self.question_source.fetch(category)
            except Exception as e:
                self.logger.error(f"Question source raised for category '{category}': {e}", exc_info=True)
                fetched = []

            if not self.store.owns(session):
                # Stopped while the batch was loading
                return False

            questions = self.quiz_engine.prepare_questions(fetched, self.settings)
            if not questions:
                self.store.remove(participant_id, session)
                self.logger.warning(
                    f"No questions for category '{category}', discarded session for participant {participant_id}",
                    extra={
                        'event_type': 'session_load_failed',
                        'participant_id': participant_id,
                        'category': category,
                        'timestamp': time.time()
                    }
                )
                await self._notify_best_effort(participant_id, LOAD_FAILED_TEXT)
                return False

            session.questions = questions
            try:
                await self._present_current(session)
            except Exception as e:
                await self._abort(session, e, "present_question")
                return False
        return True

    async def submit_answer(
        self,
        participant_id: int,
        choice: str,
        question_index: Optional[int] = None
    ) -> bool:
        """
        Resolve the current question with the participant's answer.

        Answers arriving after the question resolved, or aimed at an earlier
        question, are dropped without a reply.

        Args:
            participant_id: Chat participant identifier
            choice: Option text the participant picked
            question_index: Index of the question the answer was shown with, if known

        Returns:
            True if this answer resolved the question
        """
        session = self.store.get(participant_id)
        if session is None:
            self.logger.debug(f"Dropped answer from participant {participant_id}: no session")
            return False

        # An answer belongs to the question open when it arrived
        if question_index is None:
            question_index = session.current_index

        async with session.lock:
            question = session.current_question
            if (not self.store.owns(session)
                    or session.status is not SessionStatus.IN_PROGRESS
                    or session.resolved
                    or question is None
                    or question_index != session.current_index):
                self._log_stale(session, "answer")
                return False

            self.quiz_engine.cancel_timer(session)
            session.resolved = True
            is_correct = choice == question.correct_answer
            if is_correct:
                session.score += 1

            self.logger.info(
                f"Participant {participant_id} answered question {session.current_index + 1}: "
                f"{'correct' if is_correct else 'incorrect'}",
                extra={
                    'event_type': 'question_answered',
                    'participant_id': participant_id,
                    'question_index': session.current_index,
                    'correct': is_correct,
                    'score': session.score,
                    'timestamp': time.time()
                }
            )

            try:
                if is_correct:
                    await self.presenter.notify(participant_id, CORRECT_TEXT)
                else:
                    await self.presenter.notify(
                        participant_id, INCORRECT_TEXT.format(answer=question.correct_answer)
                    )
                await self._advance(session)
            except Exception as e:
                await self._abort(session, e, "submit_answer")
        return True

    async def expire_question(self, session: TriviaSession, question_index: int) -> bool:
        """
        Resolve a question whose countdown ran out.

        Called by the question's timer. Does nothing if the session was
        discarded, moved on, or the question was already answered.

        Returns:
            True if the timeout resolved the question
        """
        async with session.lock:
            if (not self.store.owns(session)
                    or session.status is not SessionStatus.IN_PROGRESS
                    or session.current_index != question_index
                    or session.resolved):
                self._log_stale(session, "timeout")
                return False

            # The timer is the trigger; there is nothing left to cancel
            session.active_timer = None
            session.resolved = True
            question = session.current_question

            self.logger.info(
                f"Question {question_index + 1} timed out for participant {session.participant_id}",
                extra={
                    'event_type': 'question_timed_out',
                    'participant_id': session.participant_id,
                    'question_index': question_index,
                    'timestamp': time.time()
                }
            )

            try:
                await self.presenter.notify(
                    session.participant_id, TIMEOUT_TEXT.format(answer=question.correct_answer)
                )
                await self._advance(session)
            except Exception as e:
                await self._abort(session, e, "expire_question")
        return True

    async def handle_replay(self, participant_id: int, token: str) -> bool:
        """
        Handle the replay prompt choice.

        Returns:
            True if the choice was acted on
        """
        if token == REPLAY_AGAIN:
            return await self.request_menu(participant_id)

        if token == REPLAY_DECLINE:
            session = self.store.get(participant_id)
            if session is not None and session.status is SessionStatus.IN_PROGRESS:
                self.logger.debug(f"Ignored decline from participant {participant_id}: quiz in progress")
                return False
            if session is not None:
                self.store.remove(participant_id, session)
            await self._notify_best_effort(participant_id, FAREWELL_TEXT)
            return True

        self.logger.warning(f"Unknown replay token '{token}' from participant {participant_id}")
        return False

    async def stop(self, participant_id: int) -> bool:
        """
        Terminate a participant's session immediately.

        Returns:
            True if a session was stopped
        """
        session = self.store.remove(participant_id)
        if session is None:
            await self._notify_best_effort(participant_id, NO_SESSION_TEXT)
            return False

        self._log_transition(session, session.status.value, "stopped")
        await self._notify_best_effort(participant_id, STOPPED_TEXT)
        self.presenter.retire(participant_id)
        return True

    def get_session_progress(self, participant_id: int) -> Optional[Dict[str, Any]]:
        """
        Get progress information for a participant's session.

        Returns:
            Dictionary with progress info, None if no session exists
        """
        session = self.store.get(participant_id)
        if session is None:
            return None

        elapsed = datetime.now() - session.start_time
        return {
            'status': session.status.value,
            'category': session.category,
            'category_label': CATEGORIES.get(session.category, session.category),
            'current_question': min(session.current_index + 1, len(session.questions)),
            'total_questions': len(session.questions),
            'score': session.score,
            'elapsed_seconds': int(elapsed.total_seconds())
        }

    def validate_session_state(self, participant_id: int) -> Dict[str, Any]:
        """
        Check a session's counters and return diagnostic information.

        Returns:
            Dictionary with validation results and the issues found
        """
        session = self.store.get(participant_id)
        if session is None:
            return {'valid': True, 'state': 'none', 'issues': []}

        issues = []
        if session.current_index < 0:
            issues.append("Current question index is negative")
        if session.current_index > len(session.questions):
            issues.append("Current question index exceeds available questions")
        if session.score < 0:
            issues.append("Score is negative")
        if session.score > session.current_index:
            issues.append("Score exceeds resolved question count")
        if session.participant_id != participant_id:
            issues.append("Session participant ID mismatch")

        return {
            'valid': not issues,
            'state': session.status.value,
            'issues': issues
        }

    async def _advance(self, session: TriviaSession) -> None:
        session.current_index += 1
        validation = self.validate_session_state(session.participant_id)
        if not validation['valid']:
            self.logger.error(
                f"Inconsistent session for participant {session.participant_id}: {validation['issues']}"
            )
        await self._present_current(session)

    async def _present_current(self, session: TriviaSession) -> None:
        if session.is_complete:
            await self._finish(session)
            return

        participant_id = session.participant_id
        question = session.current_question
        question_index = session.current_index
        options = self.quiz_engine.build_options(question)
        session.resolved = False

        await self.presenter.present_question(
            participant_id,
            question.prompt_text,
            options,
            math.ceil(self.settings.timer_duration),
            question_index=question_index
        )
        if not self.store.owns(session):
            return

        self.quiz_engine.start_question_timer(
            session,
            self.settings,
            lambda remaining: self._update_countdown(participant_id, remaining),
            lambda: self.expire_question(session, question_index)
        )

    async def _finish(self, session: TriviaSession) -> None:
        participant_id = session.participant_id
        total = len(session.questions)
        score = session.score

        session.status = SessionStatus.FINISHED
        self.store.remove(participant_id, session)
        self.logger.info(
            f"Quiz finished for participant {participant_id}: {score}/{total}",
            extra={
                'event_type': 'session_finished',
                'participant_id': participant_id,
                'score': score,
                'total_questions': total,
                'timestamp': time.time()
            }
        )

        await self.presenter.notify(participant_id, FINAL_SCORE_TEXT.format(score=score, total=total))
        await self.presenter.present_replay_prompt(participant_id)

    async def _abort(self, session: TriviaSession, error: Exception, operation: str) -> None:
        participant_id = session.participant_id
        self.logger.error(
            f"Fatal error in {operation} for participant {participant_id}: {error}",
            exc_info=error,
            extra={
                'event_type': 'session_fatal_error',
                'participant_id': participant_id,
                'operation': operation,
                'timestamp': time.time()
            }
        )
        self.quiz_engine.cancel_timer(session)
        self.store.remove(participant_id, session)
        await self._notify_best_effort(participant_id, FATAL_ERROR_TEXT)
        self.presenter.retire(participant_id)

    async def _update_countdown(self, participant_id: int, remaining: int) -> None:
        try:
            await self.presenter.update_countdown(participant_id, remaining)
        except Exception as e:
            self.logger.debug(f"Countdown update failed for participant {participant_id}: {e}")

    async def _notify_best_effort(self, participant_id: int, text: str) -> None:
        try:
            await self.presenter.notify(participant_id, text)
        except Exception as e:
            self.logger.error(f"Failed to notify participant {participant_id}: {e}")

    def _log_stale(self, session: TriviaSession, trigger: str) -> None:
        self.logger.debug(
            f"Dropped stale {trigger} for participant {session.participant_id}",
            extra={
                'event_type': 'stale_resolution',
                'participant_id': session.participant_id,
                'trigger': trigger,
                'question_index': session.current_index,
                'timestamp': time.time()
            }
        )

    def _log_transition(self, session: TriviaSession, from_state: str, to_state: str) -> None:
        self.logger.info(
            f"Session transition for participant {session.participant_id}: {from_state} -> {to_state}",
            extra={
                'event_type': 'session_transition',
                'participant_id': session.participant_id,
                'from_state': from_state,
                'to_state': to_state,
                'timestamp': time.time()
            }
        )
