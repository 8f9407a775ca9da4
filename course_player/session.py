"""Quiz-taking state machine.

    NOT_STARTED -> IN_PROGRESS(i) -> SUBMITTING -> RESULTS
    RESULTS -> NOT_STARTED (retry, subject to the attempt policy)

Every async step records the session epoch before it suspends. Retrying
and switching lessons bump the epoch, so a result that resolves after
either is discarded instead of being applied to the wrong attempt or
lesson.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import Any

from course_player.attempts import attempt_from_persisted, make_attempt, retry_decision
from course_player.errors import (
    InvalidTransitionError,
    MissingAnswerError,
    RetryDeniedError,
    SubmissionError,
    format_error_message,
)
from course_player.models import AnswerSubmission, AttemptRecord, QuizDefinition, ShuffleMapping
from course_player.recorders.base import ProgressRecorder
from course_player.review import ReviewItem, build_review, display_definition
from course_player.scoring import DEFAULT_MINIMUM_SCORE, is_answered, score

log = logging.getLogger("course_player.session")


class QuizState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    RESULTS = "results"


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


def _answer_map(answers: Mapping | Sequence | None) -> dict[int, Any]:
    if not answers:
        return {}
    if isinstance(answers, Mapping):
        return {int(k): v for k, v in answers.items() if v is not None}
    return {i: a for i, a in enumerate(answers) if a is not None}


class QuizSession:
    def __init__(
        self,
        definition: QuizDefinition,
        *,
        course_id: str,
        lesson_id: str,
        minimum_quiz_score: float = DEFAULT_MINIMUM_SCORE,
        recorder: ProgressRecorder | None = None,
        show_results_only: bool = False,
        initial_score: float | None = None,
        initial_attempt_count: int | None = None,
        prefilled_answers: Mapping | Sequence | None = None,
        shuffle: ShuffleMapping | None = None,
        disabled: bool = False,
        on_complete: Callable | None = None,
        on_continue: Callable | None = None,
        on_retry: Callable | None = None,
    ):
        self.recorder = recorder
        self.on_complete = on_complete
        self.on_continue = on_continue
        self.on_retry = on_retry
        self.epoch = 0
        # Lessons whose completion callback is still running; survives lesson switches.
        self._saving: set[tuple[str, str]] = set()
        self._load(
            definition, course_id, lesson_id,
            minimum_quiz_score=minimum_quiz_score,
            disabled=disabled,
            shuffle=shuffle,
            show_results_only=show_results_only,
            initial_score=initial_score,
            initial_attempt_count=initial_attempt_count,
            prefilled_answers=prefilled_answers,
        )

    def _load(
        self,
        definition: QuizDefinition,
        course_id: str,
        lesson_id: str,
        *,
        minimum_quiz_score: float,
        disabled: bool,
        shuffle: ShuffleMapping | None,
        show_results_only: bool,
        initial_score: float | None,
        initial_attempt_count: int | None,
        prefilled_answers: Mapping | Sequence | None,
    ) -> None:
        self.definition = definition
        self.course_id = str(course_id)
        self.lesson_id = str(lesson_id)
        self.minimum_quiz_score = minimum_quiz_score
        self.disabled = disabled
        self._set_shuffle(shuffle)

        self.state = QuizState.NOT_STARTED
        self.position = 0
        self.answers: dict[int, Any] = {}
        self.attempt_count = initial_attempt_count or 0
        self.attempt: AttemptRecord | None = None
        self.submission_error: str | None = None
        self.is_retrying = False
        self.awaiting_refetch = False

        self.apply_resume(show_results_only, initial_score, initial_attempt_count, prefilled_answers)

    def _set_shuffle(self, shuffle: ShuffleMapping | None) -> None:
        self.shuffle = shuffle
        self.display = display_definition(self.definition, shuffle)

    # ── Read-only views ───────────────────────────────────────────────────

    @property
    def questions(self) -> tuple:
        """Questions in display order."""
        return self.display.questions

    @property
    def current_question(self):
        if self.state != QuizState.IN_PROGRESS:
            return None
        return self.questions[self.position]

    @property
    def is_last_question(self) -> bool:
        return self.position >= len(self.questions) - 1

    def answer_list(self) -> list:
        return [self.answers.get(i) for i in range(len(self.questions))]

    def answer_submissions(self) -> list[AnswerSubmission]:
        return [
            AnswerSubmission(q.key(i), self.answers.get(i))
            for i, q in enumerate(self.questions)
        ]

    @property
    def saving_progress(self) -> bool:
        return (self.course_id, self.lesson_id) in self._saving

    def retry_status(self):
        return retry_decision(self.definition, self.attempt_count, self.disabled)

    @property
    def can_continue(self) -> bool:
        return (
            self.state == QuizState.RESULTS
            and self.attempt is not None
            and self.attempt.passed
            and self.on_continue is not None
        )

    def review(self) -> list[ReviewItem]:
        if self.state != QuizState.RESULTS or not self.definition.show_correct_answers:
            return []
        return build_review(self.definition, self.answers, self.shuffle)

    # ── Host signals ──────────────────────────────────────────────────────

    def apply_resume(
        self,
        show_results_only: bool,
        initial_score: float | None = None,
        initial_attempt_count: int | None = None,
        prefilled_answers: Mapping | Sequence | None = None,
    ) -> bool:
        """Jump straight to RESULTS for an already-completed quiz.

        Suppressed while a retry is in flight or an attempt is under way,
        so a stale "completed" signal cannot flash old results. Returns
        whether the resume was applied.
        """
        if not show_results_only:
            return False
        if self.is_retrying:
            log.debug("Resume for lesson %s suppressed: retry in flight", self.lesson_id)
            return False
        if self.state in (QuizState.IN_PROGRESS, QuizState.SUBMITTING):
            log.debug("Resume for lesson %s ignored: attempt under way", self.lesson_id)
            return False

        self.answers = _answer_map(prefilled_answers)
        self.attempt_count = max(initial_attempt_count or 0, self.attempt_count, 1)
        earned, total, _ = score(self.display, self.answers)
        if initial_score is None and self.answers:
            self.attempt = make_attempt(self.attempt_count, earned, total, self.minimum_quiz_score)
        else:
            self.attempt = attempt_from_persisted(
                initial_score, self.attempt_count, total, self.minimum_quiz_score
            )
        self.position = 0
        self.state = QuizState.RESULTS
        return True

    def switch_lesson(
        self,
        definition: QuizDefinition,
        course_id: str,
        lesson_id: str,
        *,
        minimum_quiz_score: float = DEFAULT_MINIMUM_SCORE,
        disabled: bool = False,
        shuffle: ShuffleMapping | None = None,
        show_results_only: bool = False,
        initial_score: float | None = None,
        initial_attempt_count: int | None = None,
        prefilled_answers: Mapping | Sequence | None = None,
    ) -> QuizState:
        """Reset all transient state for a different lesson.

        Any submission or refetch still in flight belongs to the old epoch
        and will be dropped when it resolves.
        """
        log.info("Lesson %s -> %s: quiz session reset", self.lesson_id, lesson_id)
        self.epoch += 1
        self._load(
            definition, course_id, lesson_id,
            minimum_quiz_score=minimum_quiz_score,
            disabled=disabled,
            shuffle=shuffle,
            show_results_only=show_results_only,
            initial_score=initial_score,
            initial_attempt_count=initial_attempt_count,
            prefilled_answers=prefilled_answers,
        )
        return self.state

    # ── Learner actions ───────────────────────────────────────────────────

    def start(self) -> QuizState:
        if self.state != QuizState.NOT_STARTED:
            raise InvalidTransitionError(f"Cannot start a quiz in state {self.state.value}")
        if self.awaiting_refetch:
            raise InvalidTransitionError("Quiz data is still reloading")
        if self.disabled:
            raise InvalidTransitionError("This quiz is locked")
        if not self.questions:
            raise InvalidTransitionError("No quiz available for this lesson")
        self.position = 0
        self.state = QuizState.IN_PROGRESS
        return self.state

    def select_answer(self, answer: Any) -> None:
        if self.state != QuizState.IN_PROGRESS:
            raise InvalidTransitionError("No question is awaiting an answer")
        if self.awaiting_refetch:
            raise InvalidTransitionError("Quiz data is still reloading")
        self.answers[self.position] = answer
        # First answer after a retry: the old results can no longer resurface.
        self.is_retrying = False

    def previous(self) -> QuizState:
        if self.state != QuizState.IN_PROGRESS or self.position == 0:
            raise InvalidTransitionError("There is no previous question")
        self.position -= 1
        return self.state

    async def next(self) -> QuizState:
        """Advance one question, or submit on the last one."""
        if self.state != QuizState.IN_PROGRESS:
            raise InvalidTransitionError(f"Cannot advance in state {self.state.value}")
        if not is_answered(self.answers.get(self.position)):
            raise MissingAnswerError(self.position)
        if not self.is_last_question:
            self.position += 1
            return self.state
        return await self._submit()

    async def _submit(self) -> QuizState:
        self.state = QuizState.SUBMITTING
        epoch = self.epoch
        earned, total, pct = score(self.display, self.answers)
        self.attempt_count += 1
        self.attempt = make_attempt(self.attempt_count, earned, total, self.minimum_quiz_score)
        self.submission_error = None
        log.info(
            "Lesson %s attempt %d: %d/%d points (%d%%)",
            self.lesson_id, self.attempt_count, earned, total, pct,
        )

        if self.recorder is not None:
            try:
                await self.recorder.submit_answers(
                    self.course_id, self.lesson_id, self.answer_submissions(), self.shuffle
                )
            except Exception as e:
                log.warning("Submitting answers for lesson %s failed: %s", self.lesson_id, e)
                if epoch == self.epoch:
                    self.submission_error = self._user_message(e, "Failed to save quiz results")

        if epoch != self.epoch:
            log.info("Discarding submission for lesson %s: session moved on", self.lesson_id)
            return self.state

        self.state = QuizState.RESULTS

        if self.on_complete is not None:
            lesson = (self.course_id, self.lesson_id)
            self._saving.add(lesson)
            try:
                await _maybe_await(
                    self.on_complete(self.answer_list(), list(self.questions), self.attempt_count)
                )
            except Exception as e:
                log.warning("Recording completion for lesson %s failed: %s", lesson[1], e)
                if epoch == self.epoch and self.submission_error is None:
                    self.submission_error = self._user_message(e, "Failed to save progress")
            finally:
                self._saving.discard(lesson)
        return self.state

    @staticmethod
    def _user_message(error: Exception, fallback: str) -> str:
        if isinstance(error, SubmissionError):
            return error.user_message
        return format_error_message(error, fallback)

    async def retry(self) -> QuizState:
        """Start over after results, if the attempt policy allows it.

        Answers and position are cleared immediately. When the host supplies
        ``on_retry``, answer input stays disabled until it resolves; a
        ShuffleMapping it returns becomes the new display order. Refused
        while the previous attempt's progress save is still running, so
        saves for one lesson never overlap.
        """
        if self.state != QuizState.RESULTS:
            raise InvalidTransitionError("Retry is only available from the results view")
        if self.saving_progress:
            raise InvalidTransitionError("Progress for this attempt is still being saved")
        decision = self.retry_status()
        if not decision.allowed:
            raise RetryDeniedError(decision.reason)

        self.epoch += 1
        epoch = self.epoch
        self.answers = {}
        self.position = 0
        self.submission_error = None
        self.state = QuizState.NOT_STARTED
        self.is_retrying = True
        log.info("Lesson %s: retry approved (attempt %d used)", self.lesson_id, self.attempt_count)

        if self.on_retry is None:
            return self.state

        self.awaiting_refetch = True
        try:
            fresh = await _maybe_await(self.on_retry())
        except Exception as e:
            log.warning("Refetching quiz data for lesson %s failed, keeping order: %s", self.lesson_id, e)
            fresh = None

        if epoch != self.epoch:
            log.info("Discarding stale quiz data for lesson %s", self.lesson_id)
            return self.state

        if isinstance(fresh, ShuffleMapping):
            self._set_shuffle(fresh)
        self.awaiting_refetch = False
        return self.state

    async def continue_lesson(self) -> None:
        if not self.can_continue:
            raise InvalidTransitionError("Continue is only available after passing the quiz")
        await _maybe_await(self.on_continue())

    # ── Serialization ─────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        decision = self.retry_status()
        data: dict = {
            "course_id": self.course_id,
            "lesson_id": self.lesson_id,
            "state": self.state.value,
            "position": self.position,
            "total_questions": len(self.questions),
            "attempt_count": self.attempt_count,
            "max_attempts": self.definition.max_attempts,
            "minimum_quiz_score": self.minimum_quiz_score,
            "is_retrying": self.is_retrying,
            "awaiting_refetch": self.awaiting_refetch,
            "submission_error": self.submission_error,
            "saving_progress": self.saving_progress,
        }
        q = self.current_question
        if q is not None:
            data["current_question"] = q.public_dict()
            data["selected_answer"] = self.answers.get(self.position)
            data["is_last_question"] = self.is_last_question
        if self.state == QuizState.RESULTS and self.attempt is not None:
            data["attempt"] = self.attempt.to_dict()
            data["can_retry"] = decision.allowed
            data["retry_reason"] = decision.reason
            data["can_continue"] = self.can_continue
            data["review"] = [item.to_dict() for item in self.review()]
        return data
