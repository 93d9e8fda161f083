from __future__ import annotations

from typing import Any

import orjson
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from clubforms.deps import get_form_service, get_response_service
from clubforms.errors import ValidationError
from clubforms.filters import filter_responses, normalize_sort
from clubforms.form_service import FormService
from clubforms.response_service import ResponseService

router = APIRouter()


def parse_fields_json(fields_json: str) -> tuple[list[Any], list[str]]:
    try:
        raw_fields = orjson.loads(fields_json) if fields_json else []
    except orjson.JSONDecodeError:
        return [], ["Could not read the field definitions"]
    if not isinstance(raw_fields, list):
        return [], ["Could not read the field definitions"]
    return raw_fields, []


def render_builder(
    request: Request,
    form: dict[str, Any] | None,
    title: str,
    description: str,
    fields: list[Any],
    errors: list[str],
) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "builder.html",
        {
            "form": form,
            "title": title,
            "description": description,
            "fields": fields,
            "errors": errors,
        },
        status_code=400 if errors else 200,
    )


async def read_builder_input(request: Request) -> tuple[str, str, list[Any], list[str]]:
    form_data = await request.form()
    title = str(form_data.get("title", "")).strip()
    description = str(form_data.get("description", "")).strip()
    fields, errors = parse_fields_json(str(form_data.get("fields_json", "")))
    if not title:
        errors.append("Please enter a form title")
    if not fields:
        errors.append("Please add at least one field")
    return title, description, fields, errors


@router.get("/forms", response_class=HTMLResponse, tags=["ui"])
async def list_forms(
    request: Request,
    forms: FormService = Depends(get_form_service),
    responses: ResponseService = Depends(get_response_service),
) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "forms.html",
        {"forms": forms.list_forms(), "counts": responses.response_counts()},
    )


@router.get("/forms/new", response_class=HTMLResponse, tags=["ui"])
async def new_form(request: Request) -> HTMLResponse:
    return render_builder(request, None, "", "", [], [])


@router.post("/forms/new", response_class=HTMLResponse, tags=["ui"])
async def create_form(
    request: Request, forms: FormService = Depends(get_form_service)
) -> HTMLResponse:
    title, description, fields, errors = await read_builder_input(request)
    if not errors:
        try:
            forms.create_form(title, description, fields)
        except ValidationError as exc:
            errors.append(exc.message)
    if errors:
        return render_builder(request, None, title, description, fields, errors)
    return RedirectResponse("/forms", status_code=303)


@router.get("/forms/{form_id}/edit", response_class=HTMLResponse, tags=["ui"])
async def edit_form(
    request: Request, form_id: str, forms: FormService = Depends(get_form_service)
) -> HTMLResponse:
    form = forms.get_form(form_id)
    return render_builder(
        request, form, form["title"], form["description"], form["fields"], []
    )


@router.post("/forms/{form_id}/edit", response_class=HTMLResponse, tags=["ui"])
async def update_form(
    request: Request, form_id: str, forms: FormService = Depends(get_form_service)
) -> HTMLResponse:
    form = forms.get_form(form_id)
    title, description, fields, errors = await read_builder_input(request)
    if not errors:
        try:
            forms.update_form(form_id, title, description, fields)
        except ValidationError as exc:
            errors.append(exc.message)
    if errors:
        return render_builder(request, form, title, description, fields, errors)
    return RedirectResponse("/forms", status_code=303)


@router.post("/forms/{form_id}/delete", tags=["ui"])
async def delete_form(
    form_id: str, forms: FormService = Depends(get_form_service)
) -> RedirectResponse:
    forms.delete_form(form_id)
    return RedirectResponse("/forms", status_code=303)


@router.get("/dashboard", response_class=HTMLResponse, tags=["ui"])
async def dashboard(
    request: Request,
    forms: FormService = Depends(get_form_service),
    responses: ResponseService = Depends(get_response_service),
) -> HTMLResponse:
    templates = request.app.state.templates
    params = request.query_params
    selected_form = params.get("form", "all")
    search = params.get("q", "")
    sort, order = normalize_sort(params.get("sort"), params.get("order"))

    all_responses = responses.list_all_responses()
    visible = filter_responses(
        all_responses, form_id=selected_form, search=search, sort=sort, order=order
    )
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "stats": responses.compute_dashboard_stats(),
            "forms": forms.list_forms(),
            "counts": responses.response_counts(),
            "responses": visible,
            "total_responses": len(all_responses),
            "selected_form": selected_form,
            "search": search,
            "sort": sort,
            "order": order,
            "query": {"form": selected_form, "q": search, "sort": sort, "order": order},
        },
    )
