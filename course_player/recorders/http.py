from __future__ import annotations

import logging
import time

import httpx

from course_player.errors import SubmissionError, error_from_response, format_error_message
from course_player.models import AnswerSubmission, ShuffleMapping
from course_player.recorders.base import ProgressRecorder
from course_player.store import KeyValueStore

log = logging.getLogger("course_player.recorder")


class HttpProgressRecorder(ProgressRecorder):
    """Posts answers and progress to the course API as JSON."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 30.0,
        cache: KeyValueStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(cache)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _request(self, method: str, path: str, fallback: str, **kwargs) -> dict:
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %s", method, path, e)
            raise SubmissionError(format_error_message(e, fallback)) from e

        if not resp.is_success:
            err = error_from_response(resp)
            log.warning("%s %s -> %d: %s", method, path, resp.status_code, err.user_message)
            raise err

        log.info("%s %s -> %d (%.2fs)", method, path, resp.status_code, time.monotonic() - t0)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) else {"data": data}

    async def _post(self, path: str, body: dict, fallback: str) -> dict:
        return await self._request("POST", path, fallback, json=body)

    async def submit_answers(
        self,
        course_id: str,
        lesson_id: str,
        answers: list[AnswerSubmission],
        shuffle: ShuffleMapping | None = None,
    ) -> dict:
        body: dict = {
            "lessonId": lesson_id,
            "answers": [a.to_dict() for a in answers],
        }
        if shuffle is not None:
            body["shuffledQuestionOrder"] = shuffle.to_list()
        return await self._post(
            f"/api/courses/{course_id}/quiz-results", body, "Failed to submit quiz results"
        )

    async def save_progress(
        self,
        course_id: str,
        lesson_id: str,
        completed: bool,
        score_percentage: float | None = None,
        attempts: int | None = None,
    ) -> dict:
        body = {
            "course_id": course_id,
            "lesson_id": lesson_id,
            "completed": completed,
            "quiz_score": score_percentage,
            "quiz_attempts": attempts,
        }
        data = await self._post("/api/progress", body, "Failed to save progress")
        record = data.get("progress") or body
        self.remember_progress(course_id, lesson_id, record)
        return record

    async def load_lesson_state(self, course_id: str, lesson_id: str) -> tuple[list[dict], dict | None]:
        """Answers come from the server; progress from the local cache, else the server."""
        data = await self._request(
            "GET", f"/api/courses/{course_id}/quiz-results", "Failed to load quiz results",
            params={"lesson_id": lesson_id},
        )
        results = data.get("results") or []

        progress = self.cached_progress(course_id, lesson_id)
        if progress is None:
            data = await self._request(
                "GET", f"/api/courses/{course_id}/progress", "Failed to load progress"
            )
            progress = next(
                (p for p in data.get("lessons") or [] if str(p.get("lesson_id")) == str(lesson_id)),
                None,
            )
            if progress is not None:
                self.remember_progress(course_id, lesson_id, progress)
        return results, progress

    def name(self) -> str:
        return f"http/{self.base_url}"
