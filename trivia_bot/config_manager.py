"""
Configuration manager for Discord Trivia Bot settings and parameters.
"""
import logging
from typing import Optional, Dict, Any, List
from urllib.parse import urlparse

from .models import TriviaSettings


class ConfigManager:
    """Manages bot configuration settings and trivia parameters."""

    # Default configuration values
    DEFAULT_TIMER_DURATION = 15
    DEFAULT_QUESTION_COUNT = 5
    DEFAULT_API_URL = "https://the-trivia-api.com/api/questions"
    DEFAULT_REQUEST_TIMEOUT = 10.0

    # Validation limits
    MIN_TIMER_DURATION = 5
    MAX_TIMER_DURATION = 300  # 5 minutes
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 50
    MIN_REQUEST_TIMEOUT = 1.0
    MAX_REQUEST_TIMEOUT = 60.0

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = TriviaSettings(
            timer_duration=self.DEFAULT_TIMER_DURATION,
            question_count=self.DEFAULT_QUESTION_COUNT
        )
        self._api_url = self.DEFAULT_API_URL
        self._request_timeout = self.DEFAULT_REQUEST_TIMEOUT

    def get_trivia_settings(self) -> TriviaSettings:
        """
        Get current trivia settings.

        Returns:
            Copy of the TriviaSettings in effect
        """
        return TriviaSettings(
            timer_duration=self._settings.timer_duration,
            tick_interval=self._settings.tick_interval,
            question_count=self._settings.question_count
        )

    def apply_config(self, config: Optional[Dict[str, Any]]) -> List[str]:
        """
        Apply the 'trivia' section of a loaded config.json.

        Invalid values are logged and skipped so the defaults stay in effect.

        Args:
            config: Parsed config.json contents

        Returns:
            List of user-friendly messages for values that were rejected
        """
        trivia_config = (config or {}).get('trivia', {})
        rejected = []

        setters = (
            ('timer_duration', self.set_timer_duration),
            ('question_count', self.set_question_count),
            ('api_url', self.set_api_url),
            ('request_timeout', self.set_request_timeout),
        )
        for key, setter in setters:
            if key not in trivia_config:
                continue
            result = setter(trivia_config[key])
            if not result['success']:
                rejected.append(result['user_message'])

        if rejected:
            self.logger.warning(f"Ignored {len(rejected)} invalid trivia settings from config")
        else:
            self.logger.info("Trivia configuration applied successfully")
        return rejected

    def set_question_count(self, count: int) -> Dict[str, Any]:
        """
        Set the number of questions fetched per session.

        Args:
            count: Number of questions to request from the question API

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(count, int) or isinstance(count, bool):
            error_msg = f"Question count must be an integer, got {type(count).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(count).__name__}"
            }

        if count < self.MIN_QUESTION_COUNT:
            error_msg = f"Question count must be at least {self.MIN_QUESTION_COUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too few questions: Minimum is {self.MIN_QUESTION_COUNT}"
            }

        if count > self.MAX_QUESTION_COUNT:
            error_msg = f"Question count cannot exceed {self.MAX_QUESTION_COUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too many questions: Maximum is {self.MAX_QUESTION_COUNT}"
            }

        self._settings.question_count = count
        self.logger.info(f"Question count set to {count}")
        return {
            'success': True,
            'message': f"Question count set to {count}",
            'user_message': f"✅ Question count set to {count}"
        }

    def get_question_count(self) -> int:
        """Get current question count setting."""
        return self._settings.question_count

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown length for each question.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(duration, int) or isinstance(duration, bool):
            error_msg = f"Timer duration must be an integer, got {type(duration).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(duration).__name__}"
            }

        if duration < self.MIN_TIMER_DURATION:
            error_msg = f"Timer duration must be at least {self.MIN_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too short: Minimum is {self.MIN_TIMER_DURATION} seconds"
            }

        if duration > self.MAX_TIMER_DURATION:
            error_msg = f"Timer duration cannot exceed {self.MAX_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too long: Maximum is {self.MAX_TIMER_DURATION} seconds ({self.MAX_TIMER_DURATION // 60} minutes)"
            }

        self._settings.timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"✅ Timer set to {duration} seconds"
        }

    def get_timer_duration(self) -> float:
        """Get current timer duration setting."""
        return self._settings.timer_duration

    def set_api_url(self, url: str) -> Dict[str, Any]:
        """
        Set the question API endpoint.

        Args:
            url: Absolute http(s) URL of the questions endpoint

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(url, str) or not url.strip():
            error_msg = "API URL must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ API URL cannot be empty"
            }

        parsed = urlparse(url.strip())
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            error_msg = f"API URL must be an absolute http(s) URL, got {url!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid API URL: {url}"
            }

        self._api_url = url.strip()
        self.logger.info(f"Question API URL set to {self._api_url}")
        return {
            'success': True,
            'message': f"Question API URL set to {self._api_url}",
            'user_message': f"✅ Question API set to {self._api_url}"
        }

    def get_api_url(self) -> str:
        """Get the question API endpoint."""
        return self._api_url

    def set_request_timeout(self, timeout: float) -> Dict[str, Any]:
        """
        Set the HTTP timeout used when fetching questions.

        Args:
            timeout: Timeout in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
            error_msg = f"Request timeout must be a number, got {type(timeout).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(timeout).__name__}"
            }

        if not self.MIN_REQUEST_TIMEOUT <= timeout <= self.MAX_REQUEST_TIMEOUT:
            error_msg = (f"Request timeout must be between {self.MIN_REQUEST_TIMEOUT} "
                         f"and {self.MAX_REQUEST_TIMEOUT} seconds")
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Request timeout out of range: {timeout}"
            }

        self._request_timeout = float(timeout)
        self.logger.info(f"Request timeout set to {self._request_timeout} seconds")
        return {
            'success': True,
            'message': f"Request timeout set to {self._request_timeout} seconds",
            'user_message': f"✅ Request timeout set to {self._request_timeout} seconds"
        }

    def get_request_timeout(self) -> float:
        """Get the HTTP timeout used when fetching questions."""
        return self._request_timeout

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        if not (self.MIN_QUESTION_COUNT <= self._settings.question_count <= self.MAX_QUESTION_COUNT):
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid question count: {self._settings.question_count}"
            )

        if not (self.MIN_TIMER_DURATION <= self._settings.timer_duration <= self.MAX_TIMER_DURATION):
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid timer duration: {self._settings.timer_duration}"
            )

        if not (self.MIN_REQUEST_TIMEOUT <= self._request_timeout <= self.MAX_REQUEST_TIMEOUT):
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid request timeout: {self._request_timeout}"
            )

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Trivia Settings:\n"
            f"• Questions per session: {self._settings.question_count}\n"
            f"• Timer: {self._settings.timer_duration} seconds\n"
            f"• Question API: {self._api_url}\n"
            f"• Request timeout: {self._request_timeout} seconds"
        )
