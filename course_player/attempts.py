"""Attempt counting and retry policy."""
from __future__ import annotations

from dataclasses import dataclass

from course_player.models import AttemptRecord, QuizDefinition
from course_player.scoring import passed, percentage


@dataclass(frozen=True)
class RetryDecision:
    allowed: bool
    reason: str = ""


def retry_decision(
    definition: QuizDefinition,
    attempt: AttemptRecord | int | None,
    disabled: bool = False,
) -> RetryDecision:
    """Decide whether another attempt may start.

    *attempt* is the latest AttemptRecord, a bare attempt count, or None
    when nothing has been recorded yet.
    """
    if isinstance(attempt, AttemptRecord):
        count = attempt.attempt_count
    else:
        count = attempt or 0

    if disabled:
        return RetryDecision(False, "This quiz is locked. Complete the required lessons first.")
    if not definition.allow_multiple_attempts and count > 0:
        return RetryDecision(False, "Multiple attempts are not allowed for this quiz.")
    if count >= definition.max_attempts:
        return RetryDecision(
            False,
            f"Maximum attempts reached ({count}/{definition.max_attempts}). "
            "Please contact your instructor.",
        )
    return RetryDecision(True)


def can_retry(
    definition: QuizDefinition,
    attempt: AttemptRecord | int | None,
    disabled: bool = False,
) -> bool:
    return retry_decision(definition, attempt, disabled).allowed


def make_attempt(
    attempt_count: int,
    points_earned: int,
    total_points: int,
    minimum_quiz_score: float,
) -> AttemptRecord:
    pct = percentage(points_earned, total_points)
    return AttemptRecord(
        attempt_count=attempt_count,
        score_percentage=float(pct),
        points_earned=points_earned,
        total_points=total_points,
        passed=passed(pct, minimum_quiz_score),
    )


def attempt_from_persisted(
    initial_score: float | None,
    initial_attempt_count: int | None,
    total_points: int,
    minimum_quiz_score: float,
) -> AttemptRecord:
    """Rebuild the record of a completed attempt from a stored progress row.

    Points earned are derived from the stored percentage since only the
    percentage is persisted.
    """
    pct = max(0.0, min(100.0, float(initial_score or 0)))
    earned = int(round(total_points * pct / 100))
    return AttemptRecord(
        attempt_count=max(1, int(initial_attempt_count or 0)),
        score_percentage=pct,
        points_earned=earned,
        total_points=total_points,
        passed=passed(pct, minimum_quiz_score),
    )
