from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from sqlalchemy.exc import SQLAlchemyError

from clubforms.config import Settings, ensure_dirs
from clubforms.errors import StoreError


class FormRepository(Protocol):
    def list_forms(self) -> list[dict[str, Any]]: ...

    def get_form(self, form_id: str) -> dict[str, Any] | None: ...

    def create_form(self, form: dict[str, Any]) -> None: ...

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]: ...

    def delete_form(self, form_id: str) -> None: ...

    def count_forms(self) -> int: ...


class ResponseRepository(Protocol):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]: ...

    def list_all_responses(self, limit: int | None = None) -> list[dict[str, Any]]: ...

    def create_response(self, response: dict[str, Any]) -> None: ...

    def count_responses(self) -> int: ...

    def count_by_form(self) -> dict[str, int]: ...


class Storage(Protocol):
    forms: FormRepository
    responses: ResponseRepository

    def close(self) -> None: ...


def init_storage(settings: Settings) -> Storage:
    ensure_dirs(settings)
    if settings.storage_backend == "json":
        from clubforms.repo_json import JSONStorage

        return JSONStorage(settings.json_path)
    from clubforms.repo_sqlite import SQLiteStorage

    return SQLiteStorage(settings.sqlite_path)


@contextmanager
def translate_store_errors(action: str) -> Iterator[None]:
    """Re-raise persistence failures as StoreError with a short message."""
    try:
        yield
    except (SQLAlchemyError, json.JSONDecodeError, OSError) as exc:
        raise StoreError(f"Failed to {action}") from exc
