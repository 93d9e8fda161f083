from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from clubforms.app import create_app
from clubforms.config import Settings
from clubforms.form_service import FormService
from clubforms.response_service import ResponseService
from clubforms.storage import init_storage


def make_settings(tmp_path: Any, **overrides: Any) -> Settings:
    values = {
        "storage_backend": "sqlite",
        "sqlite_path": tmp_path / "data" / "test.db",
        "json_path": tmp_path / "data" / "test.json",
        "strict_answers": False,
        "cors_origins": ["*"],
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def sample_fields() -> list[dict[str, Any]]:
    return [
        {"id": "name", "type": "text", "label": "Name", "required": True, "placeholder": "Your name"},
        {"id": "mail", "type": "email", "label": "Email address", "required": False},
        {"id": "bio", "type": "textarea", "label": "About you", "required": False},
        {"id": "team", "type": "select", "label": "Team", "required": True, "options": ["Red", "Blue"]},
        {"id": "level", "type": "radio", "label": "Level", "required": False, "options": ["Low", "High"]},
        {"id": "tags", "type": "checkbox", "label": "Tags", "required": False, "options": ["a", "b", "c"]},
        {"id": "age", "type": "number", "label": "Age", "required": False},
    ]


@pytest.fixture
def settings(tmp_path: Any) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture(params=["sqlite", "json"])
def storage(request: pytest.FixtureRequest, tmp_path: Any):
    store = init_storage(make_settings(tmp_path, storage_backend=request.param))
    yield store
    store.close()


@pytest.fixture
def form_service(storage: Any) -> FormService:
    return FormService(storage)


@pytest.fixture
def response_service(storage: Any) -> ResponseService:
    return ResponseService(storage)


@pytest.fixture
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
