"""Tests for the command-line entry point."""
from __future__ import annotations

import pytest

from course_player import __main__ as cli
from course_player.config import Settings
from course_player.db import Database

SAMPLE = str(Settings().data_dir / "sample_course.json")


@pytest.fixture
def settings(tmp_path, monkeypatch):
    s = Settings(course_files=[SAMPLE], db_path=str(tmp_path / "cli.db"))
    monkeypatch.setattr(cli, "load_settings", lambda: s)
    return s


class TestOptions:
    def test_values_flags_and_positionals(self):
        positional, opts = cli._options(["c1", "--port", "9000", "--no-courses", "--host", "0.0.0.0"])
        assert positional == ["c1"]
        assert opts == {"port": "9000", "no-courses": True, "host": "0.0.0.0"}

    def test_trailing_flag(self):
        assert cli._options(["--no-courses"]) == ([], {"no-courses": True})


class TestCommands:
    def test_unknown_command(self, capsys):
        assert cli.main(["launch"]) == 2
        assert "Commands: serve, import, progress, stats" in capsys.readouterr().out

    def test_import_summarizes_courses(self, settings, capsys):
        assert cli.main(["import"]) == 0
        out = capsys.readouterr().out
        assert "intro-astronomy: 3 lessons" in out
        assert "(pass mark 70%)" in out

    def test_import_reports_bad_files(self, settings, tmp_path, capsys):
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")
        settings.course_files = [SAMPLE, str(broken), str(tmp_path / "gone.json")]
        assert cli.main(["import"]) == 1
        out = capsys.readouterr().out
        assert "intro-astronomy" in out
        assert "invalid broken.json" in out
        assert "not found:" in out

    def test_progress_requires_course(self, settings, capsys):
        assert cli.main(["progress"]) == 2
        assert "Usage: progress COURSE_ID" in capsys.readouterr().out

    def test_progress_report(self, settings, capsys):
        db = Database(settings.db_full_path)
        db.save_progress("intro-astronomy", "solar-system", True, 80.0, 2)
        db.close()

        assert cli.main(["progress", "intro-astronomy"]) == 0
        out = capsys.readouterr().out
        assert "Introduction to Astronomy: 1/3 lessons completed (33.3%)" in out
        assert "[x] solar-system" in out
        assert "attempts 2" in out

    def test_progress_unknown_course(self, settings, capsys):
        assert cli.main(["progress", "nope"]) == 0
        assert "No progress recorded for course nope." in capsys.readouterr().out

    def test_stats(self, settings, capsys):
        db = Database(settings.db_full_path)
        db.save_progress("intro-astronomy", "solar-system", False, 40.0, 1)
        db.close()

        assert cli.main(["stats"]) == 0
        out = capsys.readouterr().out
        assert "Lessons tracked:    1" in out
        assert "Average quiz score: 40.0%" in out
