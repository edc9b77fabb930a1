"""Server-side validation of a submitted record against the form schema.

Every field yields at most one message. When several rules fail on the same
value, the rule checked last decides the message: minLength, maxLength and
regex are checked in that order, so a regex failure replaces a length
failure. Existing clients rely on this ordering, so it is kept as-is.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any, Mapping

from matbook.errors import ValidationFailed

_MISSING = object()


def is_empty(value: Any) -> bool:
    """Absent, null or the empty string. An empty list is *not* empty here."""
    return value is _MISSING or value is None or value == ""


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def to_number(value: Any) -> float:
    """Numeric coercion; anything unparseable becomes NaN and never compares."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def to_datetime(value: Any) -> datetime | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_bound(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _check_string(value: str, rules: Mapping[str, Any]) -> str | None:
    message = None
    min_length = rules.get("minLength")
    max_length = rules.get("maxLength")
    pattern = rules.get("regex")
    if min_length and len(value) < min_length:
        message = f"Min length is {min_length}"
    if max_length and len(value) > max_length:
        message = f"Max length is {max_length}"
    if pattern and not compile_pattern(pattern).search(value):
        message = "Invalid format"
    return message


def _check_number(value: Any, rules: Mapping[str, Any]) -> str | None:
    message = None
    number = to_number(value)
    if rules.get("min") is not None and number < rules["min"]:
        message = f"Min value is {_format_bound(rules['min'])}"
    if rules.get("max") is not None and number > rules["max"]:
        message = f"Max value is {_format_bound(rules['max'])}"
    return message


def _check_selection(value: list[Any], rules: Mapping[str, Any]) -> str | None:
    message = None
    min_selected = rules.get("minSelected")
    max_selected = rules.get("maxSelected")
    if min_selected and len(value) < min_selected:
        message = f"Select at least {min_selected} options"
    if max_selected and len(value) > max_selected:
        message = f"Select at most {max_selected} options"
    return message


def _check_date(value: Any, rules: Mapping[str, Any]) -> str | None:
    min_date = rules.get("minDate")
    if not min_date:
        return None
    value_dt = to_datetime(value)
    min_dt = to_datetime(min_date)
    if value_dt is None or min_dt is None:
        return None
    if value_dt < min_dt:
        return f"Date must be after {min_date}"
    return None


def validate_field(field: Mapping[str, Any], value: Any = _MISSING) -> str | None:
    if is_empty(value):
        if field.get("required"):
            return f"{field['label']} is required"
        return None

    rules = field.get("validation")
    if not rules:
        return None

    message = None
    field_type = field["type"]
    if isinstance(value, str):
        message = _check_string(value, rules) or message
    if field_type == "number":
        message = _check_number(value, rules) or message
    if field_type == "multi-select" and isinstance(value, list):
        message = _check_selection(value, rules) or message
    if field_type == "date":
        message = _check_date(value, rules) or message
    return message


def validate_submission(
    schema: Mapping[str, Any], record: Mapping[str, Any]
) -> dict[str, str]:
    errors: dict[str, str] = {}
    for field in schema["fields"]:
        message = validate_field(field, record.get(field["id"], _MISSING))
        if message:
            errors[field["id"]] = message
    return errors


def validate_or_raise(schema: Mapping[str, Any], record: Mapping[str, Any]) -> None:
    errors = validate_submission(schema, record)
    if errors:
        raise ValidationFailed(errors)
