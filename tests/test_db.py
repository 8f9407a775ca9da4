"""Tests for the sqlite progress store."""
from __future__ import annotations

from course_player.store import DatabaseStore, MemoryStore, lesson_key


class TestProgress:
    def test_save_and_get(self, tmp_db):
        rec = tmp_db.save_progress("c1", "l1", True, 85.0, 1)
        assert rec["completed"] is True
        assert rec["quiz_score"] == 85.0
        assert tmp_db.get_progress("c1", "l1")["quiz_attempts"] == 1

    def test_missing(self, tmp_db):
        assert tmp_db.get_progress("c1", "nope") is None

    def test_failing_score_clears_completion(self, tmp_db):
        tmp_db.save_progress("c1", "l1", True, 90.0, 1)
        rec = tmp_db.save_progress("c1", "l1", False, 30.0, 2)
        assert rec["completed"] is False
        assert rec["quiz_score"] == 30.0
        assert rec["quiz_attempts"] == 2

    def test_null_fields_keep_previous(self, tmp_db):
        tmp_db.save_progress("c1", "l1", False, 40.0, 1)
        rec = tmp_db.save_progress("c1", "l1", True)
        assert rec["completed"] is True
        assert rec["quiz_score"] == 40.0
        assert rec["quiz_attempts"] == 1

    def test_course_progress(self, tmp_db):
        tmp_db.save_progress("c1", "b", True)
        tmp_db.save_progress("c1", "a", False)
        tmp_db.save_progress("c2", "a", True)
        rows = tmp_db.get_course_progress("c1")
        assert [r["lesson_id"] for r in rows] == ["a", "b"]


class TestQuizResults:
    def test_round_trip_values(self, tmp_db):
        answers = [
            {"questionId": "q1", "userAnswer": 0},
            {"questionId": "q2", "userAnswer": False},
            {"questionId": "q3", "userAnswer": [[0, 1]]},
        ]
        assert tmp_db.save_quiz_results("c1", "l1", answers, ["q3", "q1", "q2"]) == 3
        rows = tmp_db.get_quiz_results("c1", "l1")
        assert [r["user_answer"] for r in rows] == [0, False, [[0, 1]]]
        assert all(r["shuffled_question_order"] == ["q3", "q1", "q2"] for r in rows)

    def test_resubmit_replaces(self, tmp_db):
        tmp_db.save_quiz_results("c1", "l1", [{"questionId": "q1", "userAnswer": 1}])
        tmp_db.save_quiz_results("c1", "l1", [{"questionId": "q1", "userAnswer": 2}])
        rows = tmp_db.get_quiz_results("c1", "l1")
        assert len(rows) == 1
        assert rows[0]["user_answer"] == 2
        assert rows[0]["shuffled_question_order"] is None

    def test_clear_is_per_lesson(self, tmp_db):
        tmp_db.save_quiz_results("c1", "l1", [{"questionId": "q1", "userAnswer": 1}])
        tmp_db.save_quiz_results("c1", "l2", [{"questionId": "q1", "userAnswer": 1}])
        assert tmp_db.clear_quiz_results("c1", "l1") == 1
        assert tmp_db.get_quiz_results("c1", "l1") == []
        assert len(tmp_db.get_quiz_results("c1", "l2")) == 1


class TestKeyValue:
    def test_set_get_delete(self, tmp_db):
        tmp_db.kv_set("k", {"a": [1, 2]})
        assert tmp_db.kv_get("k") == {"a": [1, 2]}
        tmp_db.kv_delete("k")
        assert tmp_db.kv_get("k") is None

    def test_stores_share_interface(self, tmp_db):
        for store in (MemoryStore(), DatabaseStore(tmp_db)):
            key = lesson_key("c1", "l1", "shuffle")
            store.set(key, ["b", "a"])
            assert store.get(key) == ["b", "a"]
            assert store.get(lesson_key("c1", "l2", "shuffle")) is None
            store.delete(key)
            assert store.get(key) is None


class TestStats:
    def test_empty(self, tmp_db):
        assert tmp_db.get_stats() == {
            "lessons_tracked": 0,
            "lessons_completed": 0,
            "average_quiz_score": 0,
            "total_quiz_attempts": 0,
        }

    def test_aggregates(self, tmp_db):
        tmp_db.save_progress("c1", "l1", True, 90.0, 1)
        tmp_db.save_progress("c1", "l2", False, 45.0, 3)
        tmp_db.save_progress("c1", "l3", True)
        stats = tmp_db.get_stats()
        assert stats["lessons_tracked"] == 3
        assert stats["lessons_completed"] == 2
        assert stats["average_quiz_score"] == 67.5
        assert stats["total_quiz_attempts"] == 4
