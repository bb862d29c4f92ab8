"""
Exception hierarchy for trivia session handling.
"""


class TriviaSessionError(Exception):
    """Base exception for trivia session errors."""
    pass


class SourceUnavailableError(TriviaSessionError):
    """Raised when the question API cannot produce a usable batch."""
    pass


class DuplicateStartError(TriviaSessionError):
    """Raised when a participant already owns a live session."""
    pass


class PresentationError(TriviaSessionError):
    """Raised when an outbound chat operation fails."""
    pass
