from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from matbook.render import build_widgets, collect_form_values, preview_errors

router = APIRouter()


@router.get("/", tags=["public"])
async def home() -> RedirectResponse:
    return RedirectResponse("/f", status_code=303)


@router.get("/f", response_class=HTMLResponse, tags=["public"])
async def public_form(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    schema = request.app.state.form_schema
    return templates.TemplateResponse(
        request,
        "form_public.html",
        {"form": schema, "widgets": build_widgets(schema)},
    )


@router.post("/f", response_class=HTMLResponse, tags=["public"])
async def submit_form(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    storage = request.app.state.storage
    schema = request.app.state.form_schema

    form_data = await request.form()
    record = collect_form_values(schema, form_data)
    errors = preview_errors(schema, record)
    if errors:
        return templates.TemplateResponse(
            request,
            "form_public.html",
            {
                "form": schema,
                "widgets": build_widgets(schema, record, errors),
                "error_count": len(errors),
            },
            status_code=400,
        )

    created = storage.submissions.create_submission(record)
    return templates.TemplateResponse(
        request,
        "submission_done.html",
        {"form": schema, "submission": created},
        status_code=201,
    )


@router.get("/healthz", tags=["system"])
async def healthz() -> dict[str, str]:
    return {"status": "ok"}
