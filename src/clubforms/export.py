from __future__ import annotations

import csv
import io
from typing import Any, Iterable

from clubforms.fields import answer_to_text
from clubforms.utils import dumps_json, format_dt

FORM_EXPORT_PREFIX = ["Submitted At", "Name", "Email"]
ALL_EXPORT_HEADERS = [
    "Form Title",
    "Submitted At",
    "Submitter Name",
    "Submitter Email",
    "Response Data",
]


def _write_csv(rows: Iterable[list[str]]) -> bytes:
    # QUOTE_ALL quotes every cell and doubles embedded quotes.
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return output.getvalue().encode("utf-8")


def csv_headers_and_rows(
    fields: list[dict[str, Any]],
    responses: list[dict[str, Any]],
) -> tuple[list[str], list[list[str]]]:
    headers = FORM_EXPORT_PREFIX + [str(field.get("label", "")) for field in fields]
    rows: list[list[str]] = []
    for response in responses:
        answers = response.get("answers", {})
        row = [
            format_dt(response["submitted_at"]),
            response.get("submitter_name") or "",
            response.get("submitter_email") or "",
        ]
        row.extend(answer_to_text(answers.get(field["id"])) for field in fields)
        rows.append(row)
    return headers, rows


def build_form_csv(form: dict[str, Any], responses: list[dict[str, Any]]) -> bytes:
    headers, rows = csv_headers_and_rows(form["fields"], responses)
    return _write_csv([headers, *rows])


def build_all_responses_csv(responses: list[dict[str, Any]]) -> bytes:
    rows = [
        [
            response.get("form_title") or "",
            format_dt(response["submitted_at"]),
            response.get("submitter_name") or "",
            response.get("submitter_email") or "",
            dumps_json(response.get("answers", {})),
        ]
        for response in responses
    ]
    return _write_csv([ALL_EXPORT_HEADERS, *rows])
