from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

SCHEMA = """
CREATE TABLE IF NOT EXISTS progress (
    course_id TEXT NOT NULL,
    lesson_id TEXT NOT NULL,
    completed INTEGER NOT NULL DEFAULT 0,
    quiz_score REAL,
    quiz_attempts INTEGER,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (course_id, lesson_id)
);

CREATE TABLE IF NOT EXISTS quiz_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    course_id TEXT NOT NULL,
    lesson_id TEXT NOT NULL,
    quiz_question_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    user_answer_json TEXT,
    shuffled_question_order_json TEXT,
    submitted_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_quiz_results_lesson
    ON quiz_results (course_id, lesson_id);

CREATE TABLE IF NOT EXISTS kv_cache (
    key TEXT PRIMARY KEY,
    value_json TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Progress ──────────────────────────────────────────────────────────

    def save_progress(
        self,
        course_id: str,
        lesson_id: str,
        completed: bool,
        quiz_score: float | None = None,
        quiz_attempts: int | None = None,
    ) -> dict:
        """Upsert the progress record for a lesson.

        ``completed`` is always written, so a failing score clears an
        earlier completion.
        """
        self.conn.execute(
            "INSERT INTO progress (course_id, lesson_id, completed, quiz_score, "
            "quiz_attempts, updated_at) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(course_id, lesson_id) DO UPDATE SET "
            "completed=excluded.completed, "
            "quiz_score=COALESCE(excluded.quiz_score, progress.quiz_score), "
            "quiz_attempts=COALESCE(excluded.quiz_attempts, progress.quiz_attempts), "
            "updated_at=excluded.updated_at",
            (str(course_id), str(lesson_id), 1 if completed else 0,
             quiz_score, quiz_attempts, _now()),
        )
        self.conn.commit()
        return self.get_progress(course_id, lesson_id)

    def get_progress(self, course_id: str, lesson_id: str) -> dict | None:
        row = self.conn.execute(
            "SELECT * FROM progress WHERE course_id = ? AND lesson_id = ?",
            (str(course_id), str(lesson_id)),
        ).fetchone()
        return self._progress_row(row) if row else None

    def get_course_progress(self, course_id: str) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM progress WHERE course_id = ? ORDER BY lesson_id",
            (str(course_id),),
        ).fetchall()
        return [self._progress_row(r) for r in rows]

    @staticmethod
    def _progress_row(row: sqlite3.Row) -> dict:
        d = dict(row)
        d["completed"] = bool(d["completed"])
        return d

    # ── Quiz results ──────────────────────────────────────────────────────

    def save_quiz_results(
        self,
        course_id: str,
        lesson_id: str,
        answers: list[dict],
        shuffled_question_order: list | None = None,
    ) -> int:
        """Replace the stored answers for a lesson with the latest attempt.

        Each answer is ``{"questionId": ..., "userAnswer": ...}``; the
        shuffled order is denormalized onto every row.
        """
        now = _now()
        order_json = json.dumps(shuffled_question_order) if shuffled_question_order else None
        self.conn.execute(
            "DELETE FROM quiz_results WHERE course_id = ? AND lesson_id = ?",
            (str(course_id), str(lesson_id)),
        )
        for position, a in enumerate(answers):
            self.conn.execute(
                "INSERT INTO quiz_results (course_id, lesson_id, quiz_question_id, position, "
                "user_answer_json, shuffled_question_order_json, submitted_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (str(course_id), str(lesson_id), str(a["questionId"]), position,
                 json.dumps(a.get("userAnswer")), order_json, now),
            )
        self.conn.commit()
        return len(answers)

    def get_quiz_results(self, course_id: str, lesson_id: str) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM quiz_results WHERE course_id = ? AND lesson_id = ? "
            "ORDER BY position",
            (str(course_id), str(lesson_id)),
        ).fetchall()
        results = []
        for r in rows:
            d = dict(r)
            d["user_answer"] = json.loads(d.pop("user_answer_json") or "null")
            raw_order = d.pop("shuffled_question_order_json")
            d["shuffled_question_order"] = json.loads(raw_order) if raw_order else None
            results.append(d)
        return results

    def clear_quiz_results(self, course_id: str, lesson_id: str) -> int:
        cur = self.conn.execute(
            "DELETE FROM quiz_results WHERE course_id = ? AND lesson_id = ?",
            (str(course_id), str(lesson_id)),
        )
        self.conn.commit()
        return cur.rowcount

    # ── Key-value cache ───────────────────────────────────────────────────

    def kv_get(self, key: str) -> Any:
        row = self.conn.execute(
            "SELECT value_json FROM kv_cache WHERE key = ?", (key,)
        ).fetchone()
        return json.loads(row[0]) if row else None

    def kv_set(self, key: str, value: Any) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO kv_cache (key, value_json, updated_at) VALUES (?, ?, ?)",
            (key, json.dumps(value), _now()),
        )
        self.conn.commit()

    def kv_delete(self, key: str) -> None:
        self.conn.execute("DELETE FROM kv_cache WHERE key = ?", (key,))
        self.conn.commit()

    # ── Stats ─────────────────────────────────────────────────────────────

    def get_stats(self) -> dict:
        lessons_tracked = self.conn.execute("SELECT COUNT(*) FROM progress").fetchone()[0]
        completed = self.conn.execute(
            "SELECT COUNT(*) FROM progress WHERE completed = 1"
        ).fetchone()[0]
        avg = self.conn.execute(
            "SELECT AVG(quiz_score) FROM progress WHERE quiz_score IS NOT NULL"
        ).fetchone()[0]
        attempts = self.conn.execute(
            "SELECT COALESCE(SUM(quiz_attempts), 0) FROM progress"
        ).fetchone()[0]
        return {
            "lessons_tracked": lessons_tracked,
            "lessons_completed": completed,
            "average_quiz_score": round(avg, 1) if avg is not None else 0,
            "total_quiz_attempts": attempts,
        }
