from __future__ import annotations

import logging
from typing import Any

from clubforms.errors import NotFound, StoreError, ValidationError
from clubforms.fields import normalize_fields
from clubforms.storage import Storage, translate_store_errors
from clubforms.utils import dumps_json, loads_json, new_ulid, now_utc

logger = logging.getLogger(__name__)


def _clean_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title and fields are required")
    return title.strip()


def _clean_description(description: Any) -> str:
    if description is None:
        return ""
    if not isinstance(description, str):
        raise ValidationError("Description must be a string")
    return description.strip()


def decode_form(row: dict[str, Any]) -> dict[str, Any]:
    try:
        fields = loads_json(row["fields"])
    except ValueError as exc:
        raise StoreError("Failed to read form") from exc
    if not isinstance(fields, list):
        raise StoreError("Failed to read form")
    return {**row, "fields": fields}


class FormService:
    """CRUD over forms; fields are serialized to JSON text only at this boundary."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def list_forms(self) -> list[dict[str, Any]]:
        with translate_store_errors("fetch forms"):
            rows = self._storage.forms.list_forms()
        return [decode_form(row) for row in rows]

    def get_form(self, form_id: str) -> dict[str, Any]:
        with translate_store_errors("fetch form"):
            row = self._storage.forms.get_form(form_id)
        if not row:
            raise NotFound("Form not found")
        return decode_form(row)

    def create_form(
        self, title: Any, description: Any, fields: Any
    ) -> dict[str, Any]:
        clean_title = _clean_title(title)
        clean_fields = normalize_fields(fields)
        form = {
            "id": new_ulid(),
            "title": clean_title,
            "description": _clean_description(description),
            "fields": dumps_json(clean_fields),
            "created_at": now_utc(),
        }
        with translate_store_errors("create form"):
            self._storage.forms.create_form(form)
        logger.info("Form created: %s", form["id"])
        return {**form, "fields": clean_fields}

    def update_form(
        self, form_id: str, title: Any, description: Any, fields: Any
    ) -> dict[str, Any]:
        updates = {
            "title": _clean_title(title),
            "description": _clean_description(description),
            "fields": dumps_json(normalize_fields(fields)),
        }
        try:
            with translate_store_errors("update form"):
                row = self._storage.forms.update_form(form_id, updates)
        except KeyError:
            raise NotFound("Form not found") from None
        logger.info("Form updated: %s", form_id)
        return decode_form(row)

    def delete_form(self, form_id: str) -> None:
        try:
            with translate_store_errors("delete form"):
                self._storage.forms.delete_form(form_id)
        except KeyError:
            raise NotFound("Form not found") from None
        logger.info("Form deleted: %s", form_id)
