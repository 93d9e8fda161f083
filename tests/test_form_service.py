from __future__ import annotations

from datetime import datetime, timezone

import pytest

from clubforms.errors import NotFound, StoreError, ValidationError


def test_create_and_get_round_trip(form_service, sample_fields):
    created = form_service.create_form("Club signup", "Join us", sample_fields)

    fetched = form_service.get_form(created["id"])
    assert fetched["title"] == "Club signup"
    assert fetched["description"] == "Join us"
    assert fetched["fields"] == sample_fields
    assert [field["id"] for field in fetched["fields"]] == [
        "name", "mail", "bio", "team", "level", "tags", "age",
    ]
    assert fetched["created_at"] == created["created_at"]


def test_create_defaults_description_and_required(form_service):
    form = form_service.create_form(
        "Quick poll", None, [{"id": "q", "type": "text", "label": "Question"}]
    )
    assert form["description"] == ""
    assert form_service.get_form(form["id"])["fields"] == [
        {"id": "q", "type": "text", "label": "Question", "required": False}
    ]


def test_create_with_empty_fields_is_allowed(form_service):
    form = form_service.create_form("Empty", "", [])
    assert form_service.get_form(form["id"])["fields"] == []


@pytest.mark.parametrize("title", ["", "   ", None, 42])
def test_create_rejects_missing_title(form_service, sample_fields, title):
    with pytest.raises(ValidationError):
        form_service.create_form(title, "", sample_fields)


@pytest.mark.parametrize("fields", [None, "name", {"id": "x"}])
def test_create_rejects_non_list_fields(form_service, fields):
    with pytest.raises(ValidationError):
        form_service.create_form("Title", "", fields)


@pytest.mark.parametrize(
    "field, message",
    [
        ({"id": "x", "type": "date", "label": "When"}, "Field 1"),
        ({"type": "text", "label": "No id"}, "'id' is a required property"),
        ({"id": "x", "type": "select", "label": "Pick"}, "options are required"),
        ({"id": "x", "type": "text", "label": "X", "required": "yes"}, "Field 1"),
        ({"id": "x", "type": "radio", "label": "X", "options": [1, 2]}, "Field 1"),
        (
            {"id": "a", "type": "text", "label": "A", "required": False, "helpText": "hint"},
            "Field 1: Additional properties are not allowed",
        ),
    ],
)
def test_create_rejects_invalid_field(form_service, field, message):
    with pytest.raises(ValidationError) as excinfo:
        form_service.create_form("Title", "", [field])
    assert message in excinfo.value.message


def test_create_rejects_duplicate_field_ids(form_service):
    fields = [
        {"id": "dup", "type": "text", "label": "One"},
        {"id": "dup", "type": "text", "label": "Two"},
    ]
    with pytest.raises(ValidationError) as excinfo:
        form_service.create_form("Title", "", fields)
    assert "Field 2: duplicate field id (dup)" == excinfo.value.message


def test_list_forms_newest_first(form_service, monkeypatch):
    stamps = iter(
        datetime(2024, 1, day, tzinfo=timezone.utc) for day in (1, 3, 2)
    )
    monkeypatch.setattr("clubforms.form_service.now_utc", lambda: next(stamps))
    first = form_service.create_form("First", "", [])
    second = form_service.create_form("Second", "", [])
    third = form_service.create_form("Third", "", [])

    ids = [form["id"] for form in form_service.list_forms()]
    assert ids == [second["id"], third["id"], first["id"]]


def test_list_forms_ties_keep_insertion_order(form_service, monkeypatch):
    stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    monkeypatch.setattr("clubforms.form_service.now_utc", lambda: stamp)
    created = [form_service.create_form(f"Form {n}", "", []) for n in range(3)]

    assert [form["id"] for form in form_service.list_forms()] == [
        form["id"] for form in created
    ]


def test_update_replaces_wholesale(form_service, sample_fields):
    form = form_service.create_form("Before", "Old", sample_fields)
    new_fields = [{"id": "only", "type": "number", "label": "Only", "required": True}]

    updated = form_service.update_form(form["id"], "After", "", new_fields)

    assert updated["title"] == "After"
    assert updated["description"] == ""
    assert updated["fields"] == new_fields
    assert updated["created_at"] == form["created_at"]
    assert form_service.get_form(form["id"])["fields"] == new_fields


def test_update_validates_before_lookup(form_service):
    with pytest.raises(ValidationError):
        form_service.update_form("missing", "", "", [])


def test_update_missing_form(form_service):
    with pytest.raises(NotFound):
        form_service.update_form("missing", "Title", "", [])


def test_get_missing_form(form_service):
    with pytest.raises(NotFound) as excinfo:
        form_service.get_form("missing")
    assert excinfo.value.message == "Form not found"


def test_delete_form(form_service):
    form = form_service.create_form("Gone soon", "", [])
    form_service.delete_form(form["id"])

    with pytest.raises(NotFound):
        form_service.get_form(form["id"])
    with pytest.raises(NotFound):
        form_service.delete_form(form["id"])


def test_malformed_stored_fields_raise_store_error(storage, form_service):
    storage.forms.create_form(
        {
            "id": "broken",
            "title": "Broken",
            "description": "",
            "fields": "{not json",
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
    )
    with pytest.raises(StoreError):
        form_service.get_form("broken")
    with pytest.raises(StoreError):
        form_service.list_forms()


def test_stored_fields_must_be_a_list(storage, form_service):
    storage.forms.create_form(
        {
            "id": "odd",
            "title": "Odd",
            "description": "",
            "fields": '{"id": "x"}',
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
    )
    with pytest.raises(StoreError):
        form_service.get_form("odd")


@pytest.mark.parametrize("description", [{"a": 1}, ["x"], 7])
def test_create_rejects_non_string_description(form_service, description):
    with pytest.raises(ValidationError) as excinfo:
        form_service.create_form("Title", description, [])
    assert excinfo.value.message == "Description must be a string"


def test_update_rejects_non_string_description(form_service):
    form = form_service.create_form("Title", "Kept", [])
    with pytest.raises(ValidationError):
        form_service.update_form(form["id"], "Title", {"a": 1}, [])
    assert form_service.get_form(form["id"])["description"] == "Kept"
