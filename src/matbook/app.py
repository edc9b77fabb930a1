from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlencode

import markupsafe
from fastapi import FastAPI
from fastapi.templating import Jinja2Templates

from matbook.auth import get_auth_provider
from matbook.config import BASE_DIR, Settings
from matbook.errors import install_error_handlers
from matbook.routes.admin import router as admin_router
from matbook.routes.api import router as api_router
from matbook.routes.public import router as public_router
from matbook.schema import load_form_schema
from matbook.storage import Storage, init_storage


def _tojson_attr(value: Any) -> markupsafe.Markup:
    """Escape a JSON string so it can be embedded in an HTML attribute."""
    return markupsafe.Markup(markupsafe.escape(json.dumps(value, ensure_ascii=False)))


def build_query(base: dict[str, Any], **overrides: Any) -> str:
    params = {k: v for k, v in base.items() if v not in (None, "")}
    for key, value in overrides.items():
        if value is None:
            params.pop(key, None)
        else:
            params[key] = str(value)
    return urlencode(params, doseq=True)


def create_app(
    settings: Settings | None = None,
    storage: Storage | None = None,
    form_schema: dict[str, Any] | None = None,
) -> FastAPI:
    settings = settings or Settings()
    form_schema = form_schema or load_form_schema(settings.form_schema_path)
    storage = storage or init_storage(settings)
    auth = get_auth_provider(settings)

    app = FastAPI(
        title="MatBook",
        openapi_tags=[
            {"name": "public", "description": "Form page (HTML)"},
            {"name": "admin", "description": "Submission browser (HTML)"},
            {"name": "api/schema", "description": "REST API: form schema"},
            {"name": "api/submissions", "description": "REST API: submissions"},
            {"name": "system", "description": "System"},
        ],
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.form_schema = form_schema
    app.state.auth_provider = auth

    templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
    app.state.templates = templates

    templates.env.filters["tojson_attr"] = _tojson_attr
    templates.env.globals["build_query"] = build_query

    install_error_handlers(app)

    app.include_router(public_router)
    app.include_router(admin_router)
    app.include_router(api_router)

    return app
