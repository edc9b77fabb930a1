from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

FIELD_TYPES = ("text", "number", "select", "multi-select", "date", "textarea", "switch")
OPTION_TYPES = {"select", "multi-select"}

DEFAULT_SCHEMA_PATH = BASE_DIR / "data" / "form_schema.json"


class Settings:
    def __init__(self) -> None:
        self.app_env = os.getenv("APP_ENV", "production").lower()
        self.storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/app.db"))
        self.json_path = Path(os.getenv("JSON_PATH", "./data/jsonstore.json"))
        schema_path = os.getenv("FORM_SCHEMA_PATH")
        self.form_schema_path = Path(schema_path) if schema_path else None
        self.auth_mode = os.getenv("AUTH_MODE", "none").lower()
        self.admin_token = os.getenv("ADMIN_TOKEN", "")
        self.log_level = os.getenv("LOG_LEVEL", "info").lower()
        self.host = os.getenv("HOST", "0.0.0.0")
        port_value = os.getenv("PORT", "8000")
        try:
            self.port = int(port_value)
        except ValueError:
            self.port = 8000

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def ensure_dirs(settings: Settings) -> None:
    if settings.storage_backend == "json":
        settings.json_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
