from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from filelock import FileLock
from tinydb import Query, TinyDB

from clubforms.utils import parse_dt, to_iso


class JSONRepoBase:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterable[TinyDB]:
        with self._lock:
            db = TinyDB(self._path)
            try:
                yield db
            finally:
                db.close()


def _iso(value: Any) -> Any:
    return to_iso(value) if isinstance(value, datetime) else value


class JSONFormRepo(JSONRepoBase):
    def list_forms(self) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("forms").all()
        forms = [self._from_record(item) for item in items]
        return sorted(forms, key=lambda x: x["created_at"], reverse=True)

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().id == form_id)
        return self._from_record(item) if item else None

    def create_form(self, form: dict[str, Any]) -> None:
        record = {
            "id": form["id"],
            "title": form["title"],
            "description": form["description"],
            "fields": form["fields"],
            "created_at": _iso(form["created_at"]),
        }
        with self._db() as db:
            db.table("forms").insert(record)

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("forms")
            item = table.get(Query().id == form_id)
            if not item:
                raise KeyError(form_id)
            item = dict(item)
            for key in ("title", "description", "fields"):
                if key in updates:
                    item[key] = updates[key]
            table.update(item, Query().id == form_id)
        return self._from_record(item)

    def delete_form(self, form_id: str) -> None:
        with self._db() as db:
            removed = db.table("forms").remove(Query().id == form_id)
            if not removed:
                raise KeyError(form_id)
            db.table("responses").remove(Query().form_id == form_id)

    def count_forms(self) -> int:
        with self._db() as db:
            return len(db.table("forms"))

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "title": record["title"],
            "description": record.get("description", ""),
            "fields": record["fields"],
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONResponseRepo(JSONRepoBase):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("responses").search(Query().form_id == form_id)
        responses = [self._from_record(item) for item in items]
        return sorted(responses, key=lambda x: x["submitted_at"], reverse=True)

    def list_all_responses(self, limit: int | None = None) -> list[dict[str, Any]]:
        with self._db() as db:
            titles = {item["id"]: item["title"] for item in db.table("forms").all()}
            items = db.table("responses").all()
        responses = [
            {**self._from_record(item), "form_title": titles[item["form_id"]]}
            for item in items
            if item["form_id"] in titles
        ]
        responses.sort(key=lambda x: x["submitted_at"], reverse=True)
        return responses if limit is None else responses[:limit]

    def create_response(self, response: dict[str, Any]) -> None:
        record = {
            "id": response["id"],
            "form_id": response["form_id"],
            "answers": response["answers"],
            "submitter_name": response.get("submitter_name"),
            "submitter_email": response.get("submitter_email"),
            "submitted_at": _iso(response["submitted_at"]),
        }
        with self._db() as db:
            if not db.table("forms").contains(Query().id == response["form_id"]):
                raise KeyError(response["form_id"])
            db.table("responses").insert(record)

    def count_responses(self) -> int:
        with self._db() as db:
            return len(db.table("responses"))

    def count_by_form(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        with self._db() as db:
            for item in db.table("responses").all():
                counts[item["form_id"]] = counts.get(item["form_id"], 0) + 1
        return counts

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "form_id": record["form_id"],
            "answers": record["answers"],
            "submitter_name": record.get("submitter_name"),
            "submitter_email": record.get("submitter_email"),
            "submitted_at": parse_dt(record.get("submitted_at")),
        }


class JSONStorage:
    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        with self._lock:
            TinyDB(path).close()
        self.forms = JSONFormRepo(path, self._lock)
        self.responses = JSONResponseRepo(path, self._lock)

    def close(self) -> None:
        return None
