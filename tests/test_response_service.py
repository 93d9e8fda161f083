from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from clubforms.errors import NotFound, ValidationError
from clubforms.response_service import ResponseService, format_average


@pytest.fixture
def clock(monkeypatch):
    """Hand out strictly increasing submission timestamps."""
    start = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    ticks = iter(start + timedelta(minutes=n) for n in range(1000))
    monkeypatch.setattr("clubforms.response_service.now_utc", lambda: next(ticks))


@pytest.fixture
def form(form_service, sample_fields):
    return form_service.create_form("Signup", "", sample_fields)


def test_submit_response(response_service, form):
    response = response_service.submit_response(
        form["id"],
        {"name": "Alice", "tags": ["a", "c"]},
        "  Alice  ",
        "alice@example.com",
    )
    assert response["form_id"] == form["id"]
    assert response["answers"] == {"name": "Alice", "tags": ["a", "c"]}
    assert response["submitter_name"] == "Alice"
    assert response["submitter_email"] == "alice@example.com"

    stored = response_service.list_responses_for_form(form["id"])
    assert [item["id"] for item in stored] == [response["id"]]
    assert stored[0]["answers"] == {"name": "Alice", "tags": ["a", "c"]}


def test_submit_blank_submitter_is_none(response_service, form):
    response = response_service.submit_response(form["id"], {}, "", "   ")
    assert response["submitter_name"] is None
    assert response["submitter_email"] is None


def test_submit_tolerates_unknown_answer_keys(response_service, form):
    response = response_service.submit_response(form["id"], {"whatever": "x"})
    assert response["answers"] == {"whatever": "x"}


def test_submit_to_missing_form(response_service):
    with pytest.raises(NotFound):
        response_service.submit_response("missing", {"name": "Bob"})
    assert response_service.list_all_responses() == []


@pytest.mark.parametrize(
    "answers, message",
    [
        (None, "Answers are required"),
        ("text", "Answers must be an object"),
        (["a"], "Answers must be an object"),
        ({"age": 42}, "Answer for age must be a string or a list of strings"),
        ({"tags": ["a", 1]}, "Answer for tags must be a string or a list of strings"),
        ({"bio": None}, "Answer for bio must be a string or a list of strings"),
        ({"nested": {"a": "b"}}, "Answer for nested must be a string or a list of strings"),
    ],
)
def test_submit_rejects_malformed_answers(response_service, form, answers, message):
    with pytest.raises(ValidationError) as excinfo:
        response_service.submit_response(form["id"], answers)
    assert excinfo.value.message == message


def test_submit_rejects_non_string_submitter(response_service, form):
    with pytest.raises(ValidationError):
        response_service.submit_response(form["id"], {}, submitter_name=12)


def test_strict_answers_rejects_unknown_keys(storage, form):
    strict = ResponseService(storage, strict_answers=True)
    with pytest.raises(ValidationError) as excinfo:
        strict.submit_response(form["id"], {"name": "A", "zzz": "b", "aaa": "c"})
    assert excinfo.value.message == "Unknown field ids: aaa, zzz"

    strict.submit_response(form["id"], {"name": "A", "tags": ["b"]})
    with pytest.raises(NotFound):
        strict.submit_response("missing", {})


def test_responses_newest_first(response_service, form, clock):
    ids = [response_service.submit_response(form["id"], {})["id"] for _ in range(3)]
    listed = response_service.list_responses_for_form(form["id"])
    assert [item["id"] for item in listed] == list(reversed(ids))


def test_response_ties_keep_insertion_order(response_service, form, monkeypatch):
    stamp = datetime(2024, 3, 1, tzinfo=timezone.utc)
    monkeypatch.setattr("clubforms.response_service.now_utc", lambda: stamp)
    ids = [response_service.submit_response(form["id"], {})["id"] for _ in range(3)]
    listed = response_service.list_responses_for_form(form["id"])
    assert [item["id"] for item in listed] == ids


def test_list_responses_for_unknown_form_is_empty(response_service):
    assert response_service.list_responses_for_form("missing") == []


def test_list_all_responses_joins_form_title(form_service, response_service, clock):
    first = form_service.create_form("First", "", [])
    second = form_service.create_form("Second", "", [])
    a = response_service.submit_response(first["id"], {})
    b = response_service.submit_response(second["id"], {})

    listed = response_service.list_all_responses()
    assert [(item["id"], item["form_title"]) for item in listed] == [
        (b["id"], "Second"),
        (a["id"], "First"),
    ]


def test_delete_form_cascades_to_responses(form_service, response_service, form):
    for _ in range(3):
        response_service.submit_response(form["id"], {"name": "x"})
    assert len(response_service.list_responses_for_form(form["id"])) == 3

    form_service.delete_form(form["id"])

    assert response_service.list_responses_for_form(form["id"]) == []
    assert response_service.list_all_responses() == []
    assert response_service.compute_dashboard_stats()["total_responses"] == 0


def test_dashboard_stats_without_forms(response_service):
    stats = response_service.compute_dashboard_stats()
    assert stats == {
        "total_forms": 0,
        "total_responses": 0,
        "avg_responses_per_form": "0",
        "recent_responses": [],
    }


def test_dashboard_stats_average_and_recent(form_service, response_service, clock):
    first = form_service.create_form("First", "", [])
    second = form_service.create_form("Second", "", [])
    submitted = [
        response_service.submit_response(form_id, {})
        for form_id in (first["id"], first["id"], second["id"], first["id"], second["id"])
    ]

    stats = response_service.compute_dashboard_stats()
    assert stats["total_forms"] == 2
    assert stats["total_responses"] == 5
    assert stats["avg_responses_per_form"] == "2.5"
    assert [item["id"] for item in stats["recent_responses"]] == [
        item["id"] for item in reversed(submitted)
    ]
    assert stats["recent_responses"][0]["form_title"] == "Second"


def test_dashboard_recent_is_limited_to_five(form_service, response_service, clock):
    form = form_service.create_form("Busy", "", [])
    submitted = [response_service.submit_response(form["id"], {}) for _ in range(7)]

    recent = response_service.compute_dashboard_stats()["recent_responses"]
    assert [item["id"] for item in recent] == [
        item["id"] for item in reversed(submitted[2:])
    ]


def test_response_counts(form_service, response_service):
    first = form_service.create_form("First", "", [])
    second = form_service.create_form("Second", "", [])
    response_service.submit_response(first["id"], {})
    response_service.submit_response(first["id"], {})
    response_service.submit_response(second["id"], {})

    assert response_service.response_counts() == {first["id"]: 2, second["id"]: 1}


@pytest.mark.parametrize(
    "responses, forms, expected",
    [(0, 0, "0"), (5, 0, "0"), (5, 2, "2.5"), (1, 3, "0.3"), (4, 2, "2.0")],
)
def test_format_average(responses, forms, expected):
    assert format_average(responses, forms) == expected
