"""Tests for user-facing error messages."""
from __future__ import annotations

import httpx

from course_player.errors import (
    MissingAnswerError,
    RetryDeniedError,
    SubmissionError,
    error_from_response,
    format_error_message,
)


class TestFormatErrorMessage:
    def test_friendly_mapping(self):
        assert format_error_message(Exception("401 Unauthorized")) == (
            "You need to be logged in to perform this action."
        )

    def test_timeout_by_type_name(self):
        err = httpx.ReadTimeout("read timed out")
        assert format_error_message(err) == "The server took too long to respond. Please try again."

    def test_short_player_error_passes_through(self):
        assert format_error_message(RetryDeniedError("Try later")) == "Try later"

    def test_technical_message_hidden(self):
        assert format_error_message(ValueError("boom"), "Something went wrong") == "Something went wrong"

    def test_long_player_error_hidden(self):
        err = SubmissionError("x" * 150)
        assert format_error_message(err, "fallback") == "fallback"


class TestErrorFromResponse:
    def test_error_field(self):
        err = error_from_response(httpx.Response(400, json={"error": "lessonId is required"}))
        assert err.user_message == "lessonId is required"
        assert err.status_code == 400

    def test_message_field(self):
        err = error_from_response(httpx.Response(403, json={"message": "Not enrolled"}))
        assert err.user_message == "Not enrolled"

    def test_no_body(self):
        err = error_from_response(httpx.Response(404))
        assert err.user_message == "HTTP 404: Not Found"


def test_missing_answer_message():
    err = MissingAnswerError(2)
    assert str(err) == "Question 3 has not been answered"
    assert err.position == 2
