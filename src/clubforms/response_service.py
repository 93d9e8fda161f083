from __future__ import annotations

import logging
from typing import Any

from clubforms.config import RECENT_RESPONSES_LIMIT
from clubforms.errors import NotFound, StoreError, ValidationError
from clubforms.export import build_all_responses_csv, build_form_csv
from clubforms.fields import validate_answers
from clubforms.form_service import FormService
from clubforms.storage import Storage, translate_store_errors
from clubforms.utils import dumps_json, loads_json, new_ulid, now_utc

logger = logging.getLogger(__name__)


def _clean_submitter(value: Any, name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip() or None


def decode_response(row: dict[str, Any]) -> dict[str, Any]:
    try:
        answers = loads_json(row["answers"])
    except ValueError as exc:
        raise StoreError("Failed to read response") from exc
    if not isinstance(answers, dict):
        raise StoreError("Failed to read response")
    return {**row, "answers": answers}


def format_average(total_responses: int, total_forms: int) -> str:
    if total_forms == 0:
        return "0"
    return f"{total_responses / total_forms:.1f}"


class ResponseService:
    def __init__(self, storage: Storage, strict_answers: bool = False) -> None:
        self._storage = storage
        self._forms = FormService(storage)
        self._strict_answers = strict_answers

    def submit_response(
        self,
        form_id: str,
        answers: Any,
        submitter_name: Any = None,
        submitter_email: Any = None,
    ) -> dict[str, Any]:
        fields = None
        if self._strict_answers:
            fields = self._forms.get_form(form_id)["fields"]
        clean_answers = validate_answers(answers, fields)
        response = {
            "id": new_ulid(),
            "form_id": form_id,
            "answers": dumps_json(clean_answers),
            "submitter_name": _clean_submitter(submitter_name, "submitterName"),
            "submitter_email": _clean_submitter(submitter_email, "submitterEmail"),
            "submitted_at": now_utc(),
        }
        # The store rejects responses for unknown forms (foreign key / lock-held check).
        try:
            with translate_store_errors("submit response"):
                self._storage.responses.create_response(response)
        except KeyError:
            raise NotFound("Form not found") from None
        logger.info("Response submitted: %s -> %s", response["id"], form_id)
        return {**response, "answers": clean_answers}

    def list_responses_for_form(self, form_id: str) -> list[dict[str, Any]]:
        with translate_store_errors("fetch responses"):
            rows = self._storage.responses.list_responses(form_id)
        return [decode_response(row) for row in rows]

    def list_all_responses(self) -> list[dict[str, Any]]:
        with translate_store_errors("fetch responses"):
            rows = self._storage.responses.list_all_responses()
        return [decode_response(row) for row in rows]

    def response_counts(self) -> dict[str, int]:
        with translate_store_errors("count responses"):
            return self._storage.responses.count_by_form()

    def compute_dashboard_stats(self) -> dict[str, Any]:
        with translate_store_errors("fetch dashboard stats"):
            total_forms = self._storage.forms.count_forms()
            total_responses = self._storage.responses.count_responses()
            recent = self._storage.responses.list_all_responses(
                limit=RECENT_RESPONSES_LIMIT
            )
        return {
            "total_forms": total_forms,
            "total_responses": total_responses,
            "avg_responses_per_form": format_average(total_responses, total_forms),
            "recent_responses": [decode_response(row) for row in recent],
        }

    def export_responses_csv(self, form_id: str) -> bytes:
        form = self._forms.get_form(form_id)
        responses = self.list_responses_for_form(form_id)
        return build_form_csv(form, responses)

    def export_all_responses_csv(self) -> bytes:
        responses = self.list_all_responses()
        if not responses:
            raise NotFound("No responses to export")
        return build_all_responses_csv(responses)
