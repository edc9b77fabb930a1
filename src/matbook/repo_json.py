from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from filelock import FileLock
from tinydb import Query, TinyDB

from matbook.errors import NotFoundError
from matbook.storage import DEFAULT_LIMIT, DEFAULT_PAGE, SubmissionPage, total_pages
from matbook.utils import dumps_json, new_submission_id, now_utc, to_iso

logger = logging.getLogger(__name__)

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")


def _matches(data: Any, needle: str) -> bool:
    # same semantics as SQLite LIKE: case-insensitive for ASCII letters only
    return needle.translate(_ASCII_LOWER) in dumps_json(data).translate(_ASCII_LOWER)


class JSONSubmissionRepo:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterator[TinyDB]:
        with self._lock:
            db = TinyDB(self._path)
            try:
                yield db
            finally:
                db.close()

    def create_submission(self, data: dict[str, Any]) -> dict[str, str]:
        submission_id = new_submission_id()
        created_at = to_iso(now_utc())
        with self._db() as db:
            db.table("submissions").insert(
                {"id": submission_id, "data": data, "createdAt": created_at}
            )
        logger.info("Created submission %s", submission_id)
        return {"id": submission_id, "createdAt": created_at}

    def get_submission(self, submission_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("submissions").get(Query().id == submission_id)
        return self._from_record(item) if item else None

    def list_submissions(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        sort_order: str = "desc",
        search: str | None = None,
    ) -> SubmissionPage:
        with self._db() as db:
            records = db.table("submissions").all()
        items = [self._from_record(record) for record in records]
        if search:
            items = [item for item in items if _matches(item["data"], search)]
        items.sort(key=lambda x: (x["createdAt"], x["id"]), reverse=sort_order != "asc")
        total = len(items)
        start = (page - 1) * limit
        return {
            "items": items[start : start + limit],
            "total": total,
            "total_pages": total_pages(total, limit),
        }

    def update_submission(self, submission_id: str, data: dict[str, Any]) -> None:
        with self._db() as db:
            updated = db.table("submissions").update({"data": data}, Query().id == submission_id)
        if not updated:
            raise NotFoundError()
        logger.info("Updated submission %s", submission_id)

    def delete_submission(self, submission_id: str) -> None:
        with self._db() as db:
            removed = db.table("submissions").remove(Query().id == submission_id)
        if not removed:
            raise NotFoundError()
        logger.info("Deleted submission %s", submission_id)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "data": record.get("data", {}),
            "createdAt": record.get("createdAt", ""),
        }


class JSONStorage:
    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        self.submissions = JSONSubmissionRepo(path, self._lock)

    def close(self) -> None:
        return None
