from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from matbook.auth import admin_guard
from matbook.routes.api import list_params

router = APIRouter()


def summarize_value(value: Any, options: dict[str, str]) -> str:
    if isinstance(value, list):
        return ", ".join(summarize_value(item, options) for item in value if item is not None)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    text = str(value)
    return options.get(text, text)


def build_rows(schema: dict[str, Any], items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    option_labels = {
        field["id"]: {opt["value"]: opt["label"] for opt in field.get("options", [])}
        for field in schema["fields"]
    }
    rows = []
    for item in items:
        data = item.get("data", {})
        rows.append(
            {
                "id": item["id"],
                "createdAt": item["createdAt"],
                "values": [
                    summarize_value(data.get(field["id"]), option_labels[field["id"]])
                    for field in schema["fields"]
                ],
            }
        )
    return rows


@router.get("/admin/submissions", response_class=HTMLResponse, tags=["admin"])
async def list_submissions(request: Request, _: Any = Depends(admin_guard)) -> HTMLResponse:
    storage = request.app.state.storage
    templates = request.app.state.templates
    schema = request.app.state.form_schema

    params = list_params(request.query_params)
    result = storage.submissions.list_submissions(**params)
    return templates.TemplateResponse(
        request,
        "submissions.html",
        {
            "form": schema,
            "rows": build_rows(schema, result["items"]),
            "page": params["page"],
            "limit": params["limit"],
            "sort_order": params["sort_order"],
            "search": params["search"] or "",
            "total": result["total"],
            "total_pages": result["total_pages"],
            "query": dict(request.query_params),
        },
    )


@router.post("/admin/submissions/{submission_id}/delete", tags=["admin"])
async def delete_submission(
    request: Request, submission_id: str, _: Any = Depends(admin_guard)
) -> RedirectResponse:
    storage = request.app.state.storage
    storage.submissions.delete_submission(submission_id)
    return RedirectResponse("/admin/submissions", status_code=303)
