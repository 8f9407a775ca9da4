"""FastAPI application: course progress API and the learner quiz view."""
from __future__ import annotations

import logging
import os

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from course_player.config import Settings, load_settings, save_settings
from course_player.db import Database
from course_player.errors import (
    InvalidTransitionError,
    MissingAnswerError,
    RetryDeniedError,
    SubmissionError,
)
from course_player.models import Course, Lesson, ShuffleMapping
from course_player.parsers.course_parser import parse_course_file
from course_player.recorders.base import ProgressRecorder
from course_player.resume import can_access_lesson, course_progress_summary, restore_quiz_state
from course_player.review import new_shuffle
from course_player.scoring import passed, score
from course_player.session import QuizSession
from course_player.store import DatabaseStore, lesson_key

app = FastAPI(title="Course Player")

# Global state (initialized in startup)
_db: Database | None = None
_settings: Settings | None = None
_courses: dict[str, Course] = {}
_recorder: ProgressRecorder | None = None
_quiz: QuizSession | None = None  # the quiz view; holds one lesson at a time

log = logging.getLogger("course_player.app")


def get_db() -> Database:
    assert _db is not None
    return _db


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_recorder() -> ProgressRecorder:
    global _recorder
    if _recorder is not None:
        return _recorder
    s = get_settings()
    if s.recorder == "local":
        from course_player.recorders.local import LocalProgressRecorder
        _recorder = LocalProgressRecorder(get_db())
    elif s.recorder == "http":
        from course_player.recorders.http import HttpProgressRecorder
        _recorder = HttpProgressRecorder(
            base_url=s.api_base_url,
            timeout=s.request_timeout,
            cache=DatabaseStore(get_db()),
        )
    else:
        raise ValueError(f"Unknown recorder: {s.recorder}")
    return _recorder


def _load_courses(settings: Settings) -> dict[str, Course]:
    courses: dict[str, Course] = {}
    for cf in settings.resolved_course_files():
        if not cf.exists():
            log.warning("Course file missing: %s", cf)
            continue
        course = parse_course_file(
            cf,
            minimum_quiz_score=settings.minimum_quiz_score,
            max_attempts=settings.max_attempts,
        )
        courses[course.id] = course
        log.info("Loaded course %s (%d lessons) from %s", course.id, len(course.lessons), cf.name)
    return courses


@app.on_event("startup")
async def startup():
    global _db, _settings, _courses
    if _db is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _db = Database(_settings.db_full_path)
    if not os.environ.get("COURSE_PLAYER_NO_COURSES"):
        _courses = _load_courses(_settings)


@app.on_event("shutdown")
async def shutdown():
    if _db:
        _db.close()


def _get_course(course_id: str) -> Course:
    course = _courses.get(str(course_id))
    if course is None:
        raise HTTPException(404, "Course not found")
    return course


def _get_lesson(course: Course, lesson_id: str) -> Lesson:
    lesson = course.get_lesson(lesson_id)
    if lesson is None:
        raise HTTPException(404, "Lesson not found")
    return lesson


def _completed_lessons(course: Course) -> list[str]:
    """Completed lesson ids: local rows first, then what the recorder last saved."""
    rows = {p["lesson_id"]: p for p in get_db().get_course_progress(course.id)}
    recorder = _get_recorder()
    done = []
    for l in course.lessons:
        p = rows.get(l.id) or recorder.cached_progress(course.id, l.id)
        if p and p.get("completed"):
            done.append(l.id)
    return done


# ── Shuffle data ──────────────────────────────────────────────────────────

def _shuffle_for(course_id: str, lesson: Lesson, refresh: bool = False) -> ShuffleMapping | None:
    """Cached display order for a lesson's quiz, generated on first use."""
    if lesson.quiz is None or not lesson.quiz.shuffle_questions:
        return None
    store = DatabaseStore(get_db())
    key = lesson_key(course_id, lesson.id, "shuffle")
    cached = None if refresh else store.get(key)
    if cached:
        return ShuffleMapping(tuple(cached))
    fresh = new_shuffle(lesson.quiz)
    store.set(key, fresh.to_list())
    return fresh


# ── Quiz view callbacks ───────────────────────────────────────────────────

def _make_callbacks(course: Course, lesson: Lesson) -> dict:
    course_id, lesson_id = course.id, lesson.id

    async def on_complete(answers: list, questions: list, attempt_count: int) -> None:
        """Persist progress right after the attempt; a failing score clears completion."""
        quiz = lesson.quiz.with_questions(questions)
        _, _, pct = score(quiz, dict(enumerate(answers)))
        completed = passed(pct, course.minimum_quiz_score)
        await _get_recorder().save_progress(course_id, lesson_id, completed, pct, attempt_count)

    async def on_retry() -> ShuffleMapping | None:
        db = get_db()
        db.clear_quiz_results(course_id, lesson_id)
        DatabaseStore(db).delete(lesson_key(course_id, lesson_id, "shuffle"))
        return _shuffle_for(course_id, lesson, refresh=True)

    async def on_continue() -> None:
        log.info("Learner continued past lesson %s", lesson_id)

    return {"on_complete": on_complete, "on_retry": on_retry, "on_continue": on_continue}


async def _session_inputs(course: Course, lesson: Lesson) -> dict:
    try:
        results, progress = await _get_recorder().load_lesson_state(course.id, lesson.id)
    except SubmissionError as e:
        raise HTTPException(502, e.user_message)
    inputs = restore_quiz_state(lesson.quiz, results, progress).session_kwargs()
    if inputs["shuffle"] is None:
        inputs["shuffle"] = _shuffle_for(course.id, lesson)
    inputs["minimum_quiz_score"] = course.minimum_quiz_score
    inputs["disabled"] = not can_access_lesson(course, lesson.id, _completed_lessons(course))
    return inputs


def _require_quiz() -> QuizSession:
    if _quiz is None:
        raise HTTPException(404, "No quiz is open")
    return _quiz


# ── API: Courses ──────────────────────────────────────────────────────────

@app.get("/api/courses")
async def api_courses():
    return {
        "courses": [
            {"id": c.id, "title": c.title, "lesson_count": len(c.lessons)}
            for c in _courses.values()
        ]
    }


@app.get("/api/courses/{course_id}")
async def api_course(course_id: str):
    course = _get_course(course_id)
    return {
        "id": course.id,
        "title": course.title,
        "minimum_quiz_score": course.minimum_quiz_score,
        "lessons": [
            {
                "id": l.id,
                "title": l.title,
                "is_required": l.is_required,
                "question_count": len(l.quiz.questions) if l.quiz else 0,
            }
            for l in course.lessons
        ],
    }


def _bad_request(message: str) -> JSONResponse:
    # Same error shape the remote recorder reads back
    return JSONResponse({"error": message}, status_code=400)


# ── API: Progress ─────────────────────────────────────────────────────────

@app.get("/api/courses/{course_id}/progress")
async def api_course_progress(course_id: str):
    course = _get_course(course_id)
    rows = get_db().get_course_progress(course.id)
    summary = course_progress_summary(course, rows)
    summary["lessons"] = rows
    return summary


@app.post("/api/progress")
async def api_save_progress(request: Request):
    body = await request.json()
    course_id = body.get("course_id")
    lesson_id = body.get("lesson_id")
    if course_id is None or lesson_id is None:
        return _bad_request("course_id and lesson_id are required")
    record = get_db().save_progress(
        str(course_id),
        str(lesson_id),
        bool(body.get("completed", False)),
        body.get("quiz_score"),
        body.get("quiz_attempts"),
    )
    return {"progress": record}


# ── API: Quiz results ─────────────────────────────────────────────────────

@app.post("/api/courses/{course_id}/quiz-results")
async def api_submit_quiz_results(course_id: str, request: Request):
    body = await request.json()
    lesson_id = body.get("lessonId")
    answers = body.get("answers")
    if lesson_id is None or not isinstance(answers, list):
        return _bad_request("lessonId and answers are required")
    if any(not isinstance(a, dict) or "questionId" not in a for a in answers):
        return _bad_request("Each answer needs a questionId")
    n = get_db().save_quiz_results(
        str(course_id), str(lesson_id), answers, body.get("shuffledQuestionOrder")
    )
    return {"saved": n}


@app.get("/api/courses/{course_id}/quiz-results")
async def api_quiz_results(course_id: str, lesson_id: str):
    return {"results": get_db().get_quiz_results(course_id, lesson_id)}


# ── API: Quiz view ────────────────────────────────────────────────────────

@app.post("/api/courses/{course_id}/lessons/{lesson_id}/quiz/open")
async def api_quiz_open(course_id: str, lesson_id: str):
    """Show a lesson's quiz, discarding whatever the view held before."""
    global _quiz
    course = _get_course(course_id)
    lesson = _get_lesson(course, lesson_id)
    if lesson.quiz is None or not lesson.quiz.questions:
        raise HTTPException(404, "No quiz available for this lesson")

    inputs = await _session_inputs(course, lesson)
    callbacks = _make_callbacks(course, lesson)
    if _quiz is None:
        _quiz = QuizSession(
            lesson.quiz,
            course_id=course.id,
            lesson_id=lesson.id,
            recorder=_get_recorder(),
            **callbacks,
            **inputs,
        )
    else:
        _quiz.on_complete = callbacks["on_complete"]
        _quiz.on_retry = callbacks["on_retry"]
        _quiz.on_continue = callbacks["on_continue"]
        _quiz.recorder = _get_recorder()
        _quiz.switch_lesson(lesson.quiz, course.id, lesson.id, **inputs)
    return _quiz.snapshot()


@app.get("/api/quiz")
async def api_quiz_state():
    return _require_quiz().snapshot()


@app.post("/api/quiz/start")
async def api_quiz_start():
    quiz = _require_quiz()
    try:
        quiz.start()
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    return quiz.snapshot()


@app.post("/api/quiz/answer")
async def api_quiz_answer(request: Request):
    body = await request.json()
    if "answer" not in body:
        raise HTTPException(400, "No answer provided")
    quiz = _require_quiz()
    try:
        quiz.select_answer(body["answer"])
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    return quiz.snapshot()


@app.post("/api/quiz/next")
async def api_quiz_next():
    quiz = _require_quiz()
    try:
        await quiz.next()
    except MissingAnswerError as e:
        raise HTTPException(400, str(e))
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    return quiz.snapshot()


@app.post("/api/quiz/previous")
async def api_quiz_previous():
    quiz = _require_quiz()
    try:
        quiz.previous()
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    return quiz.snapshot()


@app.post("/api/quiz/retry")
async def api_quiz_retry():
    quiz = _require_quiz()
    try:
        await quiz.retry()
    except RetryDeniedError as e:
        raise HTTPException(403, e.reason)
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    return quiz.snapshot()


@app.post("/api/quiz/continue")
async def api_quiz_continue():
    quiz = _require_quiz()
    try:
        await quiz.continue_lesson()
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    return {"continued": True, "lesson_id": quiz.lesson_id}


# ── API: Stats & settings ─────────────────────────────────────────────────

@app.get("/api/stats")
async def api_stats():
    stats = get_db().get_stats()
    stats["courses_loaded"] = len(_courses)
    return stats


@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    global _recorder
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    _recorder = None  # rebuilt from the new settings on next use
    return s.to_dict()
