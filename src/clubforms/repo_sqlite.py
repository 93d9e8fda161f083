from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, func, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from clubforms.models import Base, FormModel, ResponseModel
from clubforms.utils import parse_dt


class SQLiteFormRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def list_forms(self) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(FormModel)
                .order_by(FormModel.created_at.desc(), text("forms.rowid"))
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            return self._to_dict(row) if row else None

    def create_form(self, form: dict[str, Any]) -> None:
        with self._Session() as session:
            row = FormModel(
                id=form["id"],
                title=form["title"],
                description=form["description"],
                fields=form["fields"],
                created_at=form["created_at"],
            )
            session.add(row)
            session.commit()

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            for key in ("title", "description", "fields"):
                if key in updates:
                    setattr(row, key, updates[key])
            session.commit()
            session.refresh(row)
            return self._to_dict(row)

    def delete_form(self, form_id: str) -> None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            session.delete(row)
            session.commit()

    def count_forms(self) -> int:
        with self._Session() as session:
            return session.query(func.count(FormModel.id)).scalar() or 0

    @staticmethod
    def _to_dict(row: FormModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "title": row.title,
            "description": row.description or "",
            "fields": row.fields,
            "created_at": parse_dt(row.created_at),
        }


class SQLiteResponseRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(ResponseModel)
                .filter(ResponseModel.form_id == form_id)
                .order_by(ResponseModel.submitted_at.desc(), text("responses.rowid"))
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def list_all_responses(self, limit: int | None = None) -> list[dict[str, Any]]:
        with self._Session() as session:
            query = (
                session.query(ResponseModel, FormModel.title)
                .join(FormModel, ResponseModel.form_id == FormModel.id)
                .order_by(ResponseModel.submitted_at.desc(), text("responses.rowid"))
            )
            if limit is not None:
                query = query.limit(limit)
            return [
                {**self._to_dict(row), "form_title": title}
                for row, title in query.all()
            ]

    def create_response(self, response: dict[str, Any]) -> None:
        with self._Session() as session:
            row = ResponseModel(
                id=response["id"],
                form_id=response["form_id"],
                answers=response["answers"],
                submitter_name=response.get("submitter_name"),
                submitter_email=response.get("submitter_email"),
                submitted_at=response["submitted_at"],
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if "FOREIGN KEY" in str(exc.orig).upper():
                    raise KeyError(response["form_id"]) from exc
                raise

    def count_responses(self) -> int:
        with self._Session() as session:
            return session.query(func.count(ResponseModel.id)).scalar() or 0

    def count_by_form(self) -> dict[str, int]:
        with self._Session() as session:
            rows = (
                session.query(ResponseModel.form_id, func.count(ResponseModel.id))
                .group_by(ResponseModel.form_id)
                .all()
            )
            return {form_id: count for form_id, count in rows}

    @staticmethod
    def _to_dict(row: ResponseModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "form_id": row.form_id,
            "answers": row.answers,
            "submitter_name": row.submitter_name,
            "submitter_email": row.submitter_email,
            "submitted_at": parse_dt(row.submitted_at),
        }


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SQLiteStorage:
    def __init__(self, db_path: Path) -> None:
        self._engine = create_engine(
            f"sqlite:///{db_path}",
            future=True,
            connect_args={"check_same_thread": False},
        )
        event.listen(self._engine, "connect", _enable_foreign_keys)
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        self.forms = SQLiteFormRepo(self._Session)
        self.responses = SQLiteResponseRepo(self._Session)

    def close(self) -> None:
        self._engine.dispose()
