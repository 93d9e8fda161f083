from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from starlette.datastructures import FormData

from clubforms.deps import get_form_service, get_response_service
from clubforms.errors import ValidationError
from clubforms.fields import is_answer_empty
from clubforms.form_service import FormService
from clubforms.response_service import ResponseService

router = APIRouter()

ANSWER_PREFIX = "answer:"


def collect_answers(fields: list[dict[str, Any]], form_data: FormData) -> dict[str, Any]:
    answers: dict[str, Any] = {}
    for field in fields:
        name = f"{ANSWER_PREFIX}{field['id']}"
        if field["type"] == "checkbox":
            values = [str(value) for value in form_data.getlist(name) if str(value)]
            if values:
                answers[field["id"]] = values
            continue
        value = str(form_data.get(name, "")).strip()
        if value:
            answers[field["id"]] = value
    return answers


def missing_required(fields: list[dict[str, Any]], answers: dict[str, Any]) -> list[str]:
    return [
        field["label"]
        for field in fields
        if field.get("required") and is_answer_empty(answers.get(field["id"]))
    ]


def render_viewer(
    request: Request,
    form: dict[str, Any],
    mode: str,
    answers: dict[str, Any] | None = None,
    submitter: dict[str, str] | None = None,
    errors: list[str] | None = None,
) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "viewer.html",
        {
            "form": form,
            "mode": mode,
            "answers": answers or {},
            "submitter": submitter or {"name": "", "email": ""},
            "errors": errors or [],
            "answer_prefix": ANSWER_PREFIX,
        },
        status_code=400 if errors else 200,
    )


@router.get("/", response_class=HTMLResponse, tags=["public"])
async def home(
    request: Request, forms: FormService = Depends(get_form_service)
) -> Response:
    form_id = request.query_params.get("form")
    if not form_id:
        return RedirectResponse("/forms")
    mode = "fill" if request.query_params.get("mode") == "fill" else "preview"
    return render_viewer(request, forms.get_form(form_id), mode)


@router.post("/fill/{form_id}", response_class=HTMLResponse, tags=["public"])
async def fill_form(
    request: Request,
    form_id: str,
    forms: FormService = Depends(get_form_service),
    responses: ResponseService = Depends(get_response_service),
) -> HTMLResponse:
    form = forms.get_form(form_id)
    form_data = await request.form()
    answers = collect_answers(form["fields"], form_data)
    submitter = {
        "name": str(form_data.get("submitter_name", "")).strip(),
        "email": str(form_data.get("submitter_email", "")).strip(),
    }

    errors: list[str] = []
    missing = missing_required(form["fields"], answers)
    if missing:
        errors.append(
            f"Please fill in the following required fields: {', '.join(missing)}"
        )
    else:
        try:
            responses.submit_response(
                form_id, answers, submitter["name"], submitter["email"]
            )
        except ValidationError as exc:
            errors.append(exc.message)
    if errors:
        return render_viewer(request, form, "fill", answers, submitter, errors)

    templates = request.app.state.templates
    return templates.TemplateResponse(request, "thanks.html", {"form": form})
