from __future__ import annotations

import logging
import sqlite3

from course_player.db import Database
from course_player.errors import SubmissionError
from course_player.models import AnswerSubmission, ShuffleMapping
from course_player.recorders.base import ProgressRecorder
from course_player.store import DatabaseStore, KeyValueStore

log = logging.getLogger("course_player.recorder")


class LocalProgressRecorder(ProgressRecorder):
    """Writes straight to the local sqlite database."""

    def __init__(self, db: Database, cache: KeyValueStore | None = None):
        super().__init__(cache if cache is not None else DatabaseStore(db))
        self.db = db

    async def submit_answers(
        self,
        course_id: str,
        lesson_id: str,
        answers: list[AnswerSubmission],
        shuffle: ShuffleMapping | None = None,
    ) -> dict:
        try:
            n = self.db.save_quiz_results(
                course_id,
                lesson_id,
                [a.to_dict() for a in answers],
                shuffle.to_list() if shuffle else None,
            )
        except sqlite3.Error as e:
            log.warning("Saving quiz results for lesson %s failed: %s", lesson_id, e)
            raise SubmissionError("Failed to save quiz results") from e
        log.info("Saved %d answers for lesson %s", n, lesson_id)
        return {"saved": n}

    async def save_progress(
        self,
        course_id: str,
        lesson_id: str,
        completed: bool,
        score_percentage: float | None = None,
        attempts: int | None = None,
    ) -> dict:
        try:
            record = self.db.save_progress(course_id, lesson_id, completed, score_percentage, attempts)
        except sqlite3.Error as e:
            log.warning("Saving progress for lesson %s failed: %s", lesson_id, e)
            raise SubmissionError("Failed to save progress") from e
        self.remember_progress(course_id, lesson_id, record)
        return record

    async def load_lesson_state(self, course_id: str, lesson_id: str) -> tuple[list[dict], dict | None]:
        try:
            return (
                self.db.get_quiz_results(course_id, lesson_id),
                self.db.get_progress(course_id, lesson_id),
            )
        except sqlite3.Error as e:
            log.warning("Loading stored quiz state for lesson %s failed: %s", lesson_id, e)
            raise SubmissionError("Failed to load quiz progress") from e

    def name(self) -> str:
        return "local"
