from __future__ import annotations

from typing import Any, Mapping, Union

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from clubforms.config import CHOICE_TYPES, FIELD_TYPES
from clubforms.errors import ValidationError

# An answer is either a scalar string or, for checkbox fields, a list of strings.
AnswerValue = Union[str, list[str]]

FIELD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "type", "label"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "type": {"enum": sorted(FIELD_TYPES)},
        "label": {"type": "string"},
        "required": {"type": "boolean"},
        "placeholder": {"type": ["string", "null"]},
        "options": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": False,
}

ANSWER_SCHEMA: dict[str, Any] = {
    "anyOf": [
        {"type": "string"},
        {"type": "array", "items": {"type": "string"}},
    ]
}

_field_validator = Draft7Validator(FIELD_SCHEMA)
_answer_validator = Draft7Validator(ANSWER_SCHEMA)


def normalize_fields(raw_fields: Any) -> list[dict[str, Any]]:
    """Validate a field list and return it in canonical shape, order preserved."""
    if not isinstance(raw_fields, list):
        raise ValidationError("Title and fields are required")

    fields: list[dict[str, Any]] = []
    seen_ids: set[str] = set()
    for index, raw in enumerate(raw_fields, start=1):
        error = best_match(_field_validator.iter_errors(raw))
        if error is not None:
            raise ValidationError(f"Field {index}: {error.message}")
        field_id = raw["id"]
        if field_id in seen_ids:
            raise ValidationError(f"Field {index}: duplicate field id ({field_id})")
        seen_ids.add(field_id)

        field: dict[str, Any] = {
            "id": field_id,
            "type": raw["type"],
            "label": raw["label"],
            "required": bool(raw.get("required", False)),
        }
        if raw.get("placeholder") is not None:
            field["placeholder"] = raw["placeholder"]
        if "options" in raw:
            field["options"] = list(raw["options"])
        if field["type"] in CHOICE_TYPES and not field.get("options"):
            raise ValidationError(
                f"Field {index}: options are required for {field['type']} fields"
            )
        fields.append(field)
    return fields


def validate_answers(
    raw_answers: Any, fields: list[dict[str, Any]] | None = None
) -> dict[str, AnswerValue]:
    """Check the answers mapping; ``fields`` enables the field-id check."""
    if raw_answers is None:
        raise ValidationError("Answers are required")
    if not isinstance(raw_answers, Mapping):
        raise ValidationError("Answers must be an object")

    answers: dict[str, AnswerValue] = {}
    for key, value in raw_answers.items():
        if not _answer_validator.is_valid(value):
            raise ValidationError(
                f"Answer for {key} must be a string or a list of strings"
            )
        answers[str(key)] = list(value) if isinstance(value, list) else value

    if fields is not None:
        known = {field["id"] for field in fields}
        unknown = [key for key in answers if key not in known]
        if unknown:
            raise ValidationError(f"Unknown field ids: {', '.join(sorted(unknown))}")
    return answers


def answer_to_text(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    if value is None:
        return ""
    return str(value)


def is_answer_empty(value: Any) -> bool:
    if isinstance(value, list):
        return len(value) == 0
    return value is None or str(value).strip() == ""
