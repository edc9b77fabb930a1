"""Shared pytest fixtures.

Fixture overview
----------------
form_schema     the packaged Employee Onboarding schema
valid_record    a record that passes every rule of that schema
settings        Settings pointed at a temporary data directory
storage         a fresh store, once per backend (sqlite and json)
client          TestClient over an app built on that store
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from matbook.app import create_app
from matbook.config import Settings
from matbook.schema import load_form_schema
from matbook.storage import init_storage


@pytest.fixture
def form_schema() -> dict[str, Any]:
    return load_form_schema()


@pytest.fixture
def valid_record() -> dict[str, Any]:
    return {
        "fullName": "Jane Doe",
        "email": "jane@example.com",
        "age": 30,
        "department": "eng",
        "skills": ["python", "sql"],
        "startDate": "2024-03-01",
        "bio": "Backend developer.",
        "remote": True,
    }


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "app.db"))
    monkeypatch.setenv("JSON_PATH", str(tmp_path / "jsonstore.json"))
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("AUTH_MODE", raising=False)
    monkeypatch.delenv("FORM_SCHEMA_PATH", raising=False)
    monkeypatch.delenv("STORAGE_BACKEND", raising=False)
    return Settings()


@pytest.fixture(params=["sqlite", "json"])
def storage(request, settings):
    settings.storage_backend = request.param
    store = init_storage(settings)
    yield store
    store.close()


@pytest.fixture
def client(settings, storage, form_schema) -> TestClient:
    app = create_app(settings, storage=storage, form_schema=form_schema)
    return TestClient(app)
