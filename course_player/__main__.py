"""CLI entry point for course-player.

Usage:
  python -m course_player serve [--port PORT] [--host HOST] [--no-courses]
  python -m course_player import
  python -m course_player progress COURSE_ID
  python -m course_player stats
"""
from __future__ import annotations

import os
import sys

from course_player.config import Settings, load_settings
from course_player.db import Database
from course_player.models import Course
from course_player.parsers.course_parser import parse_course_file
from course_player.resume import course_progress_summary


def _options(args: list[str]) -> tuple[list[str], dict[str, str | bool]]:
    """Split argv into positionals and ``--name value`` / bare ``--flag`` options."""
    positional: list[str] = []
    opts: dict[str, str | bool] = {}
    i = 0
    while i < len(args):
        a = args[i]
        if a.startswith("--"):
            if i + 1 < len(args) and not args[i + 1].startswith("--"):
                opts[a[2:]] = args[i + 1]
                i += 1
            else:
                opts[a[2:]] = True
        else:
            positional.append(a)
        i += 1
    return positional, opts


def _parse_courses(settings: Settings) -> tuple[list[Course], list[str]]:
    courses, problems = [], []
    for cf in settings.resolved_course_files():
        if not cf.exists():
            problems.append(f"not found: {cf}")
            continue
        try:
            courses.append(parse_course_file(
                cf,
                minimum_quiz_score=settings.minimum_quiz_score,
                max_attempts=settings.max_attempts,
            ))
        except (ValueError, KeyError) as e:
            problems.append(f"invalid {cf.name}: {e}")
    return courses, problems


def cmd_serve(args: list[str]) -> int:
    import uvicorn

    _, opts = _options(args)
    if opts.get("no-courses"):
        os.environ["COURSE_PLAYER_NO_COURSES"] = "1"
    host = str(opts.get("host", "127.0.0.1"))
    port = int(opts.get("port", 8780))

    print(f"Starting Course Player on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run("course_player.app:app", host=host, port=port, timeout_graceful_shutdown=5)
    finally:
        os.environ.pop("COURSE_PLAYER_NO_COURSES", None)
    return 0


def cmd_import(args: list[str]) -> int:
    """Check every configured course file and summarize its quizzes."""
    courses, problems = _parse_courses(load_settings())
    for course in courses:
        quizzes = [l.quiz for l in course.lessons if l.quiz is not None]
        print(f"{course.id}: {len(course.lessons)} lessons, {len(quizzes)} quizzes, "
              f"{sum(len(q.questions) for q in quizzes)} questions "
              f"(pass mark {course.minimum_quiz_score}%)")
    for p in problems:
        print(f"  {p}")
    return 1 if problems else 0


def cmd_progress(args: list[str]) -> int:
    positional, _ = _options(args)
    if not positional:
        print("Usage: progress COURSE_ID")
        return 2
    course_id = positional[0]
    settings = load_settings()
    db = Database(settings.db_full_path)
    try:
        rows = db.get_course_progress(course_id)
    finally:
        db.close()

    course = next((c for c in _parse_courses(settings)[0] if c.id == course_id), None)
    if course is not None:
        summary = course_progress_summary(course, rows)
        print(f"{course.title}: {len(summary['completed_lessons'])}/{len(course.lessons)} "
              f"lessons completed ({summary['progress']}%)")
    if not rows:
        print(f"No progress recorded for course {course_id}.")
    for p in rows:
        mark = "x" if p["completed"] else " "
        pct = "-" if p["quiz_score"] is None else f"{p['quiz_score']}%"
        print(f"  [{mark}] {p['lesson_id']:20s} score {pct:>7s}  attempts {p['quiz_attempts'] or 0}")
    return 0


def cmd_stats(args: list[str]) -> int:
    db = Database(load_settings().db_full_path)
    try:
        stats = db.get_stats()
    finally:
        db.close()

    print("Course Player Stats")
    print("=" * 40)
    print(f"Lessons tracked:    {stats['lessons_tracked']}")
    print(f"Lessons completed:  {stats['lessons_completed']}")
    print(f"Average quiz score: {stats['average_quiz_score']}%")
    print(f"Quiz attempts:      {stats['total_quiz_attempts']}")
    return 0


COMMANDS = {
    "serve": cmd_serve,
    "import": cmd_import,
    "progress": cmd_progress,
    "stats": cmd_stats,
}


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "serve"
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}")
        print(f"Commands: {', '.join(COMMANDS)}")
        return 2
    return handler(args[1:])


if __name__ == "__main__":
    sys.exit(main())
