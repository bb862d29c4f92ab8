"""
In-memory session store for the Discord Trivia Bot.
Each participant owns at most one live TriviaSession.
"""
import logging
import time
from typing import Dict, Optional

from .errors import DuplicateStartError
from .models import TriviaSession


class SessionStore:
    """
    Maps participant ids to their live session.

    claim() and remove() never await, so each runs to completion on the
    event loop before another dispatch for the same participant can start.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._sessions: Dict[int, TriviaSession] = {}

    def claim(self, participant_id: int) -> TriviaSession:
        """
        Create and register a fresh session for a participant.

        Args:
            participant_id: Chat participant identifier

        Returns:
            The new session

        Raises:
            DuplicateStartError: If the participant already has a session
        """
        if participant_id in self._sessions:
            self.logger.warning(
                f"Rejected start for participant {participant_id}: session already exists",
                extra={
                    'event_type': 'session_duplicate_start',
                    'participant_id': participant_id,
                    'timestamp': time.time()
                }
            )
            raise DuplicateStartError(f"Participant {participant_id} already has an active session")

        session = TriviaSession(participant_id=participant_id)
        self._sessions[participant_id] = session
        self.logger.info(
            f"Created session for participant {participant_id}",
            extra={
                'event_type': 'session_created',
                'participant_id': participant_id,
                'timestamp': time.time()
            }
        )
        return session

    def get(self, participant_id: int) -> Optional[TriviaSession]:
        """Get the live session for a participant, if any."""
        return self._sessions.get(participant_id)

    def owns(self, session: TriviaSession) -> bool:
        """Check that a session object is still the one registered for its participant."""
        return self._sessions.get(session.participant_id) is session

    def remove(self, participant_id: int, session: Optional[TriviaSession] = None) -> Optional[TriviaSession]:
        """
        Cancel the session's countdown and drop it from the store.

        Args:
            participant_id: Chat participant identifier
            session: If given, only remove when this exact session is registered

        Returns:
            The removed session, or None if nothing was removed
        """
        current = self._sessions.get(participant_id)
        if current is None or (session is not None and current is not session):
            return None

        timer_cancelled = False
        if current.active_timer is not None:
            timer_cancelled = current.active_timer.cancel()
            current.active_timer = None

        del self._sessions[participant_id]
        self.logger.info(
            f"Removed session for participant {participant_id}, timer cancelled: {timer_cancelled}",
            extra={
                'event_type': 'session_removed',
                'participant_id': participant_id,
                'timer_cancelled': timer_cancelled,
                'timestamp': time.time()
            }
        )
        return current

    def __contains__(self, participant_id: int) -> bool:
        return participant_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
