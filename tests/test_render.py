"""
Unit tests for the field widgets and the interactive "Required" check.
"""

from __future__ import annotations

import pytest
from starlette.datastructures import FormData

from matbook.config import FIELD_TYPES
from matbook.render import (
    WIDGET_BUILDERS,
    apply_change,
    build_widget,
    build_widgets,
    collect_form_values,
    preview_errors,
    required_message,
)
from matbook.schema import get_field


class TestRequiredMessage:
    @pytest.mark.parametrize("value", [None, "", "   ", []])
    def test_empty_values(self, value) -> None:
        field = {"id": "x", "type": "text", "label": "X", "required": True}
        assert required_message(field, value) == "Required"

    @pytest.mark.parametrize("value", ["a", 0, False, ["a"]])
    def test_present_values(self, value) -> None:
        field = {"id": "x", "type": "text", "label": "X", "required": True}
        assert required_message(field, value) is None

    def test_optional_field_never_required(self) -> None:
        field = {"id": "x", "type": "text", "label": "X", "required": False}
        assert required_message(field, None) is None


class TestBuildWidget:
    def test_every_type_has_a_builder(self) -> None:
        assert set(WIDGET_BUILDERS) == set(FIELD_TYPES)

    @pytest.mark.parametrize("field_id,control", [
        ("fullName", "input"),
        ("age", "input"),
        ("startDate", "input"),
        ("bio", "textarea"),
        ("department", "select"),
        ("skills", "checkboxes"),
        ("remote", "switch"),
    ])
    def test_control_per_type(self, form_schema, field_id, control) -> None:
        widget = build_widget(get_field(form_schema, field_id))
        assert widget["control"] == control

    def test_input_type_follows_field_type(self, form_schema) -> None:
        assert build_widget(get_field(form_schema, "age"), 30)["input_type"] == "number"
        assert build_widget(get_field(form_schema, "age"), 30)["value"] == "30"
        assert build_widget(get_field(form_schema, "startDate"))["input_type"] == "date"

    def test_select_has_placeholder_option(self, form_schema) -> None:
        widget = build_widget(get_field(form_schema, "department"), "hr")
        assert widget["options"][0] == {
            "value": "",
            "label": "Select an option...",
            "selected": False,
        }
        selected = [opt["value"] for opt in widget["options"] if opt["selected"]]
        assert selected == ["hr"]

    def test_multi_select_flags(self, form_schema) -> None:
        widget = build_widget(get_field(form_schema, "skills"), ["sql", "react"])
        flags = {opt["value"]: opt["selected"] for opt in widget["options"]}
        assert flags == {"react": True, "node": False, "sql": True, "python": False}

    def test_switch_caption(self, form_schema) -> None:
        field = get_field(form_schema, "remote")
        assert build_widget(field, True)["caption"] == "Yes"
        assert build_widget(field, None)["caption"] == "No"

    def test_errors_are_filtered_and_joined(self, form_schema) -> None:
        widget = build_widget(get_field(form_schema, "email"), "x", ["Invalid format", None, "", "Required"])
        assert widget["errors"] == ["Invalid format", "Required"]
        assert widget["has_error"] is True
        assert widget["error_text"] == "Invalid format, Required"

    def test_no_errors(self, form_schema) -> None:
        widget = build_widget(get_field(form_schema, "email"), "a@b.co")
        assert widget["has_error"] is False
        assert widget["required"] is True

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError):
            build_widget({"id": "x", "type": "color", "label": "X"})

    def test_build_widgets_keeps_schema_order(self, form_schema) -> None:
        widgets = build_widgets(form_schema)
        assert [w["id"] for w in widgets] == [f["id"] for f in form_schema["fields"]]


class TestApplyChange:
    def test_switch_toggles(self, form_schema) -> None:
        field = get_field(form_schema, "remote")
        assert apply_change(field, None) is True
        assert apply_change(field, True) is False

    def test_multi_select_toggles_membership(self, form_schema) -> None:
        field = get_field(form_schema, "skills")
        value = apply_change(field, None, "sql")
        value = apply_change(field, value, "react")
        assert value == ["sql", "react"]
        assert apply_change(field, value, "sql") == ["react"]

    def test_text_takes_event_value(self, form_schema) -> None:
        assert apply_change(get_field(form_schema, "fullName"), "Jo", "Joe") == "Joe"


class TestFormPost:
    def test_collect_form_values(self, form_schema) -> None:
        form_data = FormData(
            [
                ("fullName", "Jane Doe"),
                ("email", "jane@example.com"),
                ("age", "30"),
                ("department", "eng"),
                ("skills", "sql"),
                ("skills", "react"),
                ("startDate", "2024-03-01"),
                ("bio", ""),
                ("remote", "on"),
            ]
        )
        assert collect_form_values(form_schema, form_data) == {
            "fullName": "Jane Doe",
            "email": "jane@example.com",
            "age": 30,
            "department": "eng",
            "skills": ["sql", "react"],
            "startDate": "2024-03-01",
            "remote": True,
        }

    @pytest.mark.parametrize("raw", ["nan", "inf", "-Infinity", "abc"])
    def test_unusable_number_is_dropped(self, form_schema, raw) -> None:
        record = collect_form_values(form_schema, FormData([("age", raw)]))
        assert "age" not in record
        assert preview_errors(form_schema, record)["age"] == ["Required"]

    def test_unchecked_switch_is_false(self, form_schema) -> None:
        record = collect_form_values(form_schema, FormData([]))
        assert record == {"remote": False}

    def test_preview_errors_uses_required_mirror(self, form_schema) -> None:
        errors = preview_errors(form_schema, {"fullName": "   ", "age": 10})
        assert errors["fullName"] == ["Required"]
        assert errors["age"] == ["Min value is 18"]
        assert errors["email"] == ["Required"]
        assert "skills" not in errors

    def test_preview_errors_clean(self, form_schema, valid_record) -> None:
        assert preview_errors(form_schema, valid_record) == {}
