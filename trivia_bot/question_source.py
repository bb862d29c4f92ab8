"""
Question source for the Discord Trivia Bot.
Fetches question batches from the trivia HTTP API and validates them.
"""
import logging
import time
from typing import Any, List, Optional

import httpx

from .errors import SourceUnavailableError
from .models import Question


logger = logging.getLogger(__name__)


class QuestionSource:
    """Fetches question batches for a category. Failures yield an empty list."""

    def __init__(
        self,
        api_url: str,
        question_count: int = 5,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the question source.

        Args:
            api_url: Questions endpoint of the trivia API
            question_count: Number of questions requested per batch
            timeout: HTTP timeout in seconds
            client: Optional shared client; one is created lazily otherwise
        """
        self.api_url = api_url
        self.question_count = question_count
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, category: str) -> List[Question]:
        """
        Fetch an ordered batch of questions for a category.

        Args:
            category: Category token offered by the menu

        Returns:
            List of questions, empty if the API failed or returned nothing usable
        """
        started = time.time()
        try:
            questions = await self._request(category)
        except SourceUnavailableError as e:
            logger.error(
                f"Question source unavailable for category '{category}': {e}",
                extra={
                    'event_type': 'question_fetch_failed',
                    'category': category,
                    'error_message': str(e),
                    'timestamp': time.time()
                }
            )
            return []

        logger.info(
            f"Fetched {len(questions)} questions for category '{category}' in {time.time() - started:.3f}s",
            extra={
                'event_type': 'question_fetch_completed',
                'category': category,
                'question_count': len(questions),
                'timestamp': time.time()
            }
        )
        return questions

    async def _request(self, category: str) -> List[Question]:
        params = {'limit': self.question_count, 'tags': category}
        try:
            response = await self._get_client().get(self.api_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SourceUnavailableError(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"transport error: {e}") from e
        except ValueError as e:
            raise SourceUnavailableError(f"invalid JSON: {e}") from e

        questions = self.parse_questions(payload)
        if not questions:
            raise SourceUnavailableError("no valid questions in response")
        return questions

    def parse_questions(self, payload: Any) -> List[Question]:
        """
        Convert an API payload into Question objects.

        Expected structure:
        [
            {
                "question": str | {"text": str},
                "correctAnswer": str,
                "incorrectAnswers": [str, ...]
            }
        ]

        Records that do not match are logged and skipped.

        Args:
            payload: Decoded JSON body

        Returns:
            List of valid questions in API order
        """
        if not isinstance(payload, list):
            logger.error("Question payload must be a JSON array")
            return []

        questions = []
        for i, record in enumerate(payload):
            question = self._parse_record(record)
            if question is None:
                logger.warning(f"Skipping malformed question record {i}")
                continue
            questions.append(question)
        return questions

    @staticmethod
    def _parse_record(record: Any) -> Optional[Question]:
        if not isinstance(record, dict):
            return None

        prompt = record.get('question')
        # Newer API versions nest the prompt under "text"
        if isinstance(prompt, dict):
            prompt = prompt.get('text')
        correct = record.get('correctAnswer')
        incorrect = record.get('incorrectAnswers')

        if not isinstance(prompt, str) or not prompt.strip():
            return None
        if not isinstance(correct, str) or not correct.strip():
            return None
        if not isinstance(incorrect, list) or not incorrect:
            return None
        if not all(isinstance(answer, str) and answer.strip() for answer in incorrect):
            return None

        distractors = tuple(answer for answer in incorrect if answer != correct)
        if not distractors:
            return None

        return Question(
            prompt_text=prompt.strip(),
            correct_answer=correct,
            incorrect_answers=distractors
        )
