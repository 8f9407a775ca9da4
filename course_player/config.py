from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_PATH = Path(
    os.environ.get("COURSE_PLAYER_CONFIG")
    or Path(__file__).resolve().parent.parent / "config.json"
)

DEFAULTS = {
    "course_files": [],
    "db_path": "progress.db",
    "minimum_quiz_score": 50,
    "max_attempts": 3,
    "recorder": "local",
    "api_base_url": "http://localhost:3000",
    "request_timeout": 30.0,
}


@dataclass
class Settings:
    course_files: list[str] = field(default_factory=lambda: list(DEFAULTS["course_files"]))
    db_path: str = DEFAULTS["db_path"]
    minimum_quiz_score: int = DEFAULTS["minimum_quiz_score"]
    max_attempts: int = DEFAULTS["max_attempts"]
    recorder: str = DEFAULTS["recorder"]
    api_base_url: str = DEFAULTS["api_base_url"]
    request_timeout: float = DEFAULTS["request_timeout"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def data_dir(self) -> Path:
        return self.project_root / "data"

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    def resolved_course_files(self) -> list[Path]:
        if self.course_files:
            root = self.project_root
            return [root / f for f in self.course_files]
        return sorted(self.data_dir.glob("*.json"))

    def to_dict(self) -> dict:
        return {
            "course_files": self.course_files,
            "db_path": self.db_path,
            "minimum_quiz_score": self.minimum_quiz_score,
            "max_attempts": self.max_attempts,
            "recorder": self.recorder,
            "api_base_url": self.api_base_url,
            "request_timeout": self.request_timeout,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
