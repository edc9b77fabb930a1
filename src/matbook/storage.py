from __future__ import annotations

import logging
import math
from typing import Any, Protocol, TypedDict

from matbook.config import Settings, ensure_dirs

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


class SubmissionPage(TypedDict):
    items: list[dict[str, Any]]
    total: int
    total_pages: int


class SubmissionRepository(Protocol):
    def create_submission(self, data: dict[str, Any]) -> dict[str, str]: ...

    def get_submission(self, submission_id: str) -> dict[str, Any] | None: ...

    def list_submissions(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        sort_order: str = "desc",
        search: str | None = None,
    ) -> SubmissionPage: ...

    def update_submission(self, submission_id: str, data: dict[str, Any]) -> None: ...

    def delete_submission(self, submission_id: str) -> None: ...


class Storage(Protocol):
    submissions: SubmissionRepository


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def escape_like(search: str) -> str:
    return search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def init_storage(settings: Settings) -> Storage:
    ensure_dirs(settings)
    if settings.storage_backend == "json":
        from matbook.repo_json import JSONStorage

        logger.info("Using JSON storage at %s", settings.json_path)
        return JSONStorage(settings.json_path)

    from matbook.repo_sqlite import SQLiteStorage

    logger.info("Using SQLite storage at %s", settings.sqlite_path)
    return SQLiteStorage(settings.sqlite_path)
