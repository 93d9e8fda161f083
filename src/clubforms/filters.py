from __future__ import annotations

from typing import Any

SORT_KEYS = ("date", "name", "email")


def normalize_sort(sort: Any, order: Any) -> tuple[str, str]:
    sort_value = str(sort or "date")
    order_value = str(order or "desc")
    if sort_value not in SORT_KEYS:
        sort_value = "date"
    if order_value not in ("asc", "desc"):
        order_value = "desc"
    return sort_value, order_value


def matches_search(response: dict[str, Any], term: str) -> bool:
    needle = term.lower()
    haystack = (
        response.get("submitter_name") or "",
        response.get("submitter_email") or "",
        response.get("form_title") or "",
    )
    return any(needle in value.lower() for value in haystack)


def filter_responses(
    responses: list[dict[str, Any]],
    form_id: str | None = None,
    search: str | None = None,
    sort: str | None = None,
    order: str | None = None,
) -> list[dict[str, Any]]:
    """Dashboard view over the joined response list; the input is not modified."""
    result = list(responses)
    if form_id and form_id != "all":
        result = [item for item in result if item.get("form_id") == form_id]
    term = (search or "").strip()
    if term:
        result = [item for item in result if matches_search(item, term)]

    sort_key, sort_order = normalize_sort(sort, order)
    reverse = sort_order == "desc"
    if sort_key == "name":
        result.sort(key=lambda item: item.get("submitter_name") or "", reverse=reverse)
    elif sort_key == "email":
        result.sort(key=lambda item: item.get("submitter_email") or "", reverse=reverse)
    else:
        result.sort(key=lambda item: item["submitted_at"], reverse=reverse)
    return result
