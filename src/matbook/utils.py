from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson
import ulid


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """UTC timestamp in the `2024-01-01T09:30:00.000Z` form used for createdAt."""
    value = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return value.replace("+00:00", "Z")


def dumps_json(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def loads_json(value: str | bytes | None) -> Any:
    if not value:
        return None
    return orjson.loads(value)


def new_submission_id() -> str:
    # ULID rendered as a UUID: time-ordered, still a valid UUID string
    return str(ulid.new().uuid)
