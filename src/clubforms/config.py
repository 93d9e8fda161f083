from __future__ import annotations

import os
from pathlib import Path
from typing import Any

BASE_DIR = Path(__file__).resolve().parent

FIELD_TYPES = {"text", "email", "textarea", "select", "radio", "checkbox", "number"}
CHOICE_TYPES = {"select", "radio", "checkbox"}
RECENT_RESPONSES_LIMIT = 5


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    def __init__(self, **overrides: Any) -> None:
        self.storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/clubforms.db"))
        self.json_path = Path(os.getenv("JSON_PATH", "./data/clubforms.json"))
        self.host = os.getenv("HOST", "0.0.0.0")
        port_value = os.getenv("PORT", "3001")
        try:
            self.port = int(port_value)
        except ValueError:
            self.port = 3001
        origins = os.getenv("CORS_ORIGINS", "*")
        self.cors_origins = [item.strip() for item in origins.split(",") if item.strip()]
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.strict_answers = _env_flag("STRICT_ANSWERS")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            if key in {"sqlite_path", "json_path"}:
                value = Path(value)
            setattr(self, key, value)


def ensure_dirs(settings: Settings) -> None:
    settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    settings.json_path.parent.mkdir(parents=True, exist_ok=True)
