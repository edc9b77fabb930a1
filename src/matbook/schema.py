from __future__ import annotations

import logging
from copy import deepcopy
from pathlib import Path
from typing import Any

import orjson
from jsonschema import Draft7Validator

from matbook.config import DEFAULT_SCHEMA_PATH, FIELD_TYPES, OPTION_TYPES

logger = logging.getLogger(__name__)

_OPTION = {
    "type": "object",
    "required": ["value", "label"],
    "properties": {
        "value": {"type": "string"},
        "label": {"type": "string"},
    },
}

_VALIDATION = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "minLength": {"type": "integer", "minimum": 0},
        "maxLength": {"type": "integer", "minimum": 0},
        "regex": {"type": "string", "format": "regex"},
        "min": {"type": "number"},
        "max": {"type": "number"},
        "minDate": {"type": "string", "format": "date"},
        "minSelected": {"type": "integer", "minimum": 0},
        "maxSelected": {"type": "integer", "minimum": 0},
    },
}

FIELD_META_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "type", "label"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "type": {"enum": list(FIELD_TYPES)},
        "label": {"type": "string"},
        "placeholder": {"type": "string"},
        "required": {"type": "boolean"},
        "options": {"type": "array", "items": _OPTION},
        "validation": _VALIDATION,
    },
    "if": {"properties": {"type": {"enum": sorted(OPTION_TYPES)}}},
    "then": {"required": ["options"]},
    "else": {"not": {"required": ["options"]}},
}

FORM_META_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["title", "fields"],
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "fields": {"type": "array", "items": FIELD_META_SCHEMA},
    },
}


class SchemaError(ValueError):
    """Raised when a form schema document breaks the field invariants."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def check_form_schema(document: Any) -> list[str]:
    validator = Draft7Validator(FORM_META_SCHEMA, format_checker=Draft7Validator.FORMAT_CHECKER)
    errors = sorted(validator.iter_errors(document), key=lambda err: list(err.path))
    messages: list[str] = []
    for error in errors:
        location = "/".join(str(part) for part in error.path)
        messages.append(f"{location}: {error.message}" if location else error.message)
    if messages:
        return messages

    seen: set[str] = set()
    for field in document["fields"]:
        field_id = field["id"]
        if field_id in seen:
            messages.append(f"fields: duplicate field id ({field_id})")
        seen.add(field_id)
    return messages


def normalize_form_schema(document: dict[str, Any]) -> dict[str, Any]:
    fields: list[dict[str, Any]] = []
    for raw in document["fields"]:
        field: dict[str, Any] = {
            "id": raw["id"],
            "type": raw["type"],
            "label": raw["label"],
            "required": bool(raw.get("required", False)),
        }
        if raw.get("placeholder"):
            field["placeholder"] = raw["placeholder"]
        if raw["type"] in OPTION_TYPES:
            field["options"] = [
                {"value": opt["value"], "label": opt["label"]} for opt in raw["options"]
            ]
        if raw.get("validation"):
            field["validation"] = dict(raw["validation"])
        fields.append(field)
    return {
        "title": document["title"],
        "description": document.get("description", ""),
        "fields": fields,
    }


def load_form_schema(path: Path | None = None) -> dict[str, Any]:
    source = path or DEFAULT_SCHEMA_PATH
    try:
        document = orjson.loads(Path(source).read_bytes())
    except orjson.JSONDecodeError as exc:
        raise SchemaError([f"{source}: invalid JSON ({exc})"]) from exc
    errors = check_form_schema(document)
    if errors:
        raise SchemaError(errors)
    schema = normalize_form_schema(document)
    logger.info("Loaded form schema %r with %d fields", schema["title"], len(schema["fields"]))
    return schema


def field_ids(schema: dict[str, Any]) -> list[str]:
    return [field["id"] for field in schema.get("fields", [])]


def get_field(schema: dict[str, Any], field_id: str) -> dict[str, Any] | None:
    for field in schema.get("fields", []):
        if field["id"] == field_id:
            return field
    return None


def schema_output(schema: dict[str, Any]) -> dict[str, Any]:
    return deepcopy(schema)
