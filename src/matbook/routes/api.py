from __future__ import annotations

from typing import Any

import orjson
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from matbook.auth import admin_guard
from matbook.errors import AppError, NotFoundError
from matbook.schema import schema_output
from matbook.storage import DEFAULT_LIMIT, DEFAULT_PAGE
from matbook.validator import validate_or_raise

router = APIRouter(prefix="/api")


def parse_positive_int(value: Any, default: int) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def list_params(query_params: Any) -> dict[str, Any]:
    return {
        "page": parse_positive_int(query_params.get("page"), DEFAULT_PAGE),
        "limit": parse_positive_int(query_params.get("limit"), DEFAULT_LIMIT),
        "sort_order": "asc" if query_params.get("sortOrder") == "asc" else "desc",
        "search": query_params.get("search") or None,
    }


async def read_record(request: Request) -> dict[str, Any]:
    body = await request.body()
    try:
        payload = orjson.loads(body) if body else {}
    except orjson.JSONDecodeError:
        raise AppError("Request body must be valid JSON", status_code=400) from None
    if not isinstance(payload, dict):
        raise AppError("Request body must be a JSON object", status_code=400)
    return payload


@router.get("/form-schema", tags=["api/schema"])
async def api_form_schema(request: Request) -> JSONResponse:
    return JSONResponse(schema_output(request.app.state.form_schema))


@router.get("/submissions", tags=["api/submissions"])
async def api_list_submissions(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    params = list_params(request.query_params)
    result = storage.submissions.list_submissions(**params)
    return JSONResponse(
        {
            "success": True,
            "data": result["items"],
            "meta": {
                "total": result["total"],
                "page": params["page"],
                "limit": params["limit"],
                "totalPages": result["total_pages"],
            },
        }
    )


@router.get("/submissions/{submission_id}", tags=["api/submissions"])
async def api_get_submission(request: Request, submission_id: str) -> JSONResponse:
    storage = request.app.state.storage
    submission = storage.submissions.get_submission(submission_id)
    if not submission:
        raise NotFoundError()
    return JSONResponse({"success": True, "data": submission})


@router.post("/submissions", tags=["api/submissions"])
async def api_create_submission(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    record = await read_record(request)
    validate_or_raise(request.app.state.form_schema, record)
    created = storage.submissions.create_submission(record)
    return JSONResponse(
        {"success": True, "id": created["id"], "createdAt": created["createdAt"]},
        status_code=201,
    )


@router.put("/submissions/{submission_id}", tags=["api/submissions"])
async def api_update_submission(
    request: Request, submission_id: str, _: Any = Depends(admin_guard)
) -> JSONResponse:
    storage = request.app.state.storage
    record = await read_record(request)
    validate_or_raise(request.app.state.form_schema, record)
    storage.submissions.update_submission(submission_id, record)
    return JSONResponse({"success": True, "message": "Updated successfully"})


@router.delete("/submissions/{submission_id}", tags=["api/submissions"])
async def api_delete_submission(
    request: Request, submission_id: str, _: Any = Depends(admin_guard)
) -> JSONResponse:
    storage = request.app.state.storage
    storage.submissions.delete_submission(submission_id)
    return JSONResponse({"success": True, "message": "Deleted successfully"})
