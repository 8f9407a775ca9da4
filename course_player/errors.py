"""Error taxonomy for the quiz player and user-facing message formatting."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

# Substrings of technical messages -> what the learner sees instead.
FRIENDLY_MESSAGES = {
    "Failed to fetch": "Unable to load data. Please check your connection and try again.",
    "Unauthorized": "You need to be logged in to perform this action.",
    "Forbidden": "You don't have permission to perform this action.",
    "Not Found": "The requested resource was not found.",
    "Network request failed": "Network error. Please check your connection.",
    "ConnectError": "Network error. Please check your connection.",
    "timed out": "The server took too long to respond. Please try again.",
}


class CoursePlayerError(Exception):
    """Base class for errors raised by the course player."""


class InvalidTransitionError(CoursePlayerError):
    """The requested action is not valid in the session's current state."""


class MissingAnswerError(CoursePlayerError):
    """The current question has no answer yet."""

    def __init__(self, position: int):
        super().__init__(f"Question {position + 1} has not been answered")
        self.position = position


class RetryDeniedError(CoursePlayerError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SubmissionError(CoursePlayerError):
    """Answer or progress persistence failed.

    ``user_message`` is safe to show inline; ``status_code`` is set when the
    failure came from an HTTP response.
    """

    def __init__(self, user_message: str, status_code: int | None = None):
        super().__init__(user_message)
        self.user_message = user_message
        self.status_code = status_code


def format_error_message(error: BaseException, fallback: str = "An unexpected error occurred") -> str:
    message = str(error) or type(error).__name__
    haystack = f"{type(error).__name__}: {message}"
    for key, friendly in FRIENDLY_MESSAGES.items():
        if key in haystack:
            return friendly
    if isinstance(error, CoursePlayerError) and len(message) < 100 and "Error:" not in message:
        return message
    return fallback


def error_from_response(response: httpx.Response) -> SubmissionError:
    """Build a SubmissionError from a non-2xx response.

    Prefers the server's ``error`` or ``message`` field, falling back to the
    status line.
    """
    message = f"HTTP {response.status_code}: {response.reason_phrase or 'Unknown error'}"
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        if data.get("error"):
            message = str(data["error"])
        elif data.get("message"):
            message = str(data["message"])
    return SubmissionError(message, status_code=response.status_code)
