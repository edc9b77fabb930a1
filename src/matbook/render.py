from __future__ import annotations

import math
from typing import Any, Callable, Mapping

from matbook.config import FIELD_TYPES
from matbook.validator import validate_submission

REQUIRED_MESSAGE = "Required"
SELECT_PLACEHOLDER = "Select an option..."


def required_message(field: Mapping[str, Any], value: Any) -> str | None:
    """Interactive "Required" pre-check shown while the form is being edited."""
    if not field.get("required"):
        return None
    if value is None:
        return REQUIRED_MESSAGE
    if isinstance(value, str) and value.strip() == "":
        return REQUIRED_MESSAGE
    if isinstance(value, list) and not value:
        return REQUIRED_MESSAGE
    return None


def _visible_errors(errors: list[Any] | None) -> list[str]:
    return [str(error) for error in (errors or []) if error]


def _text_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _input_widget(field: Mapping[str, Any], value: Any) -> dict[str, Any]:
    return {
        "control": "input",
        "input_type": field["type"],
        "value": _text_value(value),
        "placeholder": field.get("placeholder", ""),
    }


def _textarea_widget(field: Mapping[str, Any], value: Any) -> dict[str, Any]:
    return {
        "control": "textarea",
        "value": _text_value(value),
        "placeholder": field.get("placeholder", ""),
    }


def _select_widget(field: Mapping[str, Any], value: Any) -> dict[str, Any]:
    current = _text_value(value)
    options = [{"value": "", "label": SELECT_PLACEHOLDER, "selected": current == ""}]
    for option in field.get("options", []):
        options.append({**option, "selected": option["value"] == current})
    return {"control": "select", "value": current, "options": options}


def _multi_select_widget(field: Mapping[str, Any], value: Any) -> dict[str, Any]:
    current = value if isinstance(value, list) else []
    return {
        "control": "checkboxes",
        "value": list(current),
        "options": [
            {**option, "selected": option["value"] in current}
            for option in field.get("options", [])
        ],
    }


def _switch_widget(field: Mapping[str, Any], value: Any) -> dict[str, Any]:
    checked = bool(value)
    return {
        "control": "switch",
        "value": checked,
        "checked": checked,
        "caption": "Yes" if checked else "No",
    }


WIDGET_BUILDERS: dict[str, Callable[[Mapping[str, Any], Any], dict[str, Any]]] = {
    "text": _input_widget,
    "number": _input_widget,
    "date": _input_widget,
    "textarea": _textarea_widget,
    "select": _select_widget,
    "multi-select": _multi_select_widget,
    "switch": _switch_widget,
}

if set(WIDGET_BUILDERS) != set(FIELD_TYPES):
    raise RuntimeError("every field type needs exactly one widget builder")


def build_widget(
    field: Mapping[str, Any], value: Any = None, errors: list[Any] | None = None
) -> dict[str, Any]:
    builder = WIDGET_BUILDERS.get(field["type"])
    if builder is None:
        raise ValueError(f"unsupported field type: {field['type']}")
    visible = _visible_errors(errors)
    widget = builder(field, value)
    widget.update(
        {
            "id": field["id"],
            "label": field["label"],
            "required": bool(field.get("required")),
            "errors": visible,
            "has_error": bool(visible),
            "error_text": ", ".join(visible),
        }
    )
    return widget


def apply_change(field: Mapping[str, Any], current: Any, event_value: Any = None) -> Any:
    """New field value after one change event from the control."""
    field_type = field["type"]
    if field_type == "switch":
        return not bool(current)
    if field_type == "multi-select":
        selected = list(current) if isinstance(current, list) else []
        if event_value in selected:
            return [item for item in selected if item != event_value]
        return [*selected, event_value]
    return event_value


def _parse_bool(value: Any) -> bool:
    return str(value).lower() in {"1", "true", "on", "yes"}


def _normalize_number(value: Any) -> Any:
    if value in (None, ""):
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def collect_form_values(schema: Mapping[str, Any], form_data: Any) -> dict[str, Any]:
    """Build a record from an HTML form post (a starlette FormData or similar)."""
    record: dict[str, Any] = {}
    for field in schema["fields"]:
        key = field["id"]
        field_type = field["type"]
        if field_type == "multi-select":
            values = [str(v) for v in form_data.getlist(key) if v not in (None, "")]
            if values:
                record[key] = values
            continue
        raw_value = form_data.get(key)
        if field_type == "switch":
            record[key] = _parse_bool(raw_value) if raw_value is not None else False
            continue
        if raw_value in (None, ""):
            continue
        if field_type == "number":
            number = _normalize_number(raw_value)
            if number is not None:
                record[key] = number
        else:
            record[key] = str(raw_value)
    return record


def preview_errors(schema: Mapping[str, Any], record: Mapping[str, Any]) -> dict[str, list[str]]:
    """Errors for each field as the interactive form shows them."""
    server_errors = validate_submission(schema, record)
    errors: dict[str, list[str]] = {}
    for field in schema["fields"]:
        key = field["id"]
        messages: list[str] = []
        mirror = required_message(field, record.get(key))
        if mirror:
            messages.append(mirror)
        if key in server_errors and not mirror:
            messages.append(server_errors[key])
        if messages:
            errors[key] = messages
    return errors


def build_widgets(
    schema: Mapping[str, Any],
    record: Mapping[str, Any] | None = None,
    errors: Mapping[str, list[str]] | None = None,
) -> list[dict[str, Any]]:
    record = record or {}
    errors = errors or {}
    return [
        build_widget(field, record.get(field["id"]), errors.get(field["id"]))
        for field in schema["fields"]
    ]
