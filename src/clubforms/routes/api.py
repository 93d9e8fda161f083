from __future__ import annotations

from typing import Any
from urllib.parse import quote

import orjson
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from clubforms.deps import get_form_service, get_response_service
from clubforms.errors import ValidationError
from clubforms.form_service import FormService
from clubforms.response_service import ResponseService
from clubforms.utils import now_utc, safe_filename, to_iso

router = APIRouter(prefix="/api")


async def read_payload(request: Request) -> dict[str, Any]:
    body = await request.body()
    try:
        payload = orjson.loads(body) if body else {}
    except orjson.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON") from None
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def form_output(form: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": form["id"],
        "title": form["title"],
        "description": form.get("description", ""),
        "fields": form.get("fields", []),
        "createdAt": to_iso(form["created_at"]),
    }


def response_output(response: dict[str, Any]) -> dict[str, Any]:
    output = {
        "id": response["id"],
        "formId": response["form_id"],
        "answers": response.get("answers", {}),
        "submitterName": response.get("submitter_name"),
        "submitterEmail": response.get("submitter_email"),
        "submittedAt": to_iso(response["submitted_at"]),
    }
    if "form_title" in response:
        output["formTitle"] = response["form_title"]
    return output


def csv_attachment(
    content: bytes, filename: str, display_name: str | None = None
) -> Response:
    # Header values are latin-1; non-ASCII names go in the RFC 5987 parameter.
    disposition = f'attachment; filename="{filename}"'
    if display_name and display_name != filename:
        disposition += f"; filename*=UTF-8''{quote(display_name, safe='')}"
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": disposition},
    )


@router.get("/forms", tags=["api/forms"])
async def api_list_forms(forms: FormService = Depends(get_form_service)) -> JSONResponse:
    return JSONResponse([form_output(form) for form in forms.list_forms()])


@router.get("/forms/{form_id}", tags=["api/forms"])
async def api_get_form(
    form_id: str, forms: FormService = Depends(get_form_service)
) -> JSONResponse:
    return JSONResponse(form_output(forms.get_form(form_id)))


@router.post("/forms", tags=["api/forms"])
async def api_create_form(
    request: Request, forms: FormService = Depends(get_form_service)
) -> JSONResponse:
    payload = await read_payload(request)
    form = forms.create_form(
        payload.get("title"), payload.get("description"), payload.get("fields")
    )
    return JSONResponse(form_output(form), status_code=201)


@router.put("/forms/{form_id}", tags=["api/forms"])
async def api_update_form(
    form_id: str, request: Request, forms: FormService = Depends(get_form_service)
) -> JSONResponse:
    payload = await read_payload(request)
    form = forms.update_form(
        form_id,
        payload.get("title"),
        payload.get("description"),
        payload.get("fields"),
    )
    return JSONResponse(form_output(form))


@router.delete("/forms/{form_id}", tags=["api/forms"])
async def api_delete_form(
    form_id: str, forms: FormService = Depends(get_form_service)
) -> JSONResponse:
    forms.delete_form(form_id)
    return JSONResponse({"message": "Form deleted successfully"})


@router.get("/forms/{form_id}/responses", tags=["api/responses"])
async def api_list_form_responses(
    form_id: str, responses: ResponseService = Depends(get_response_service)
) -> JSONResponse:
    items = responses.list_responses_for_form(form_id)
    return JSONResponse([response_output(item) for item in items])


@router.post("/forms/{form_id}/responses", tags=["api/responses"])
async def api_submit_response(
    form_id: str,
    request: Request,
    responses: ResponseService = Depends(get_response_service),
) -> JSONResponse:
    payload = await read_payload(request)
    response = responses.submit_response(
        form_id,
        payload.get("answers"),
        payload.get("submitterName"),
        payload.get("submitterEmail"),
    )
    return JSONResponse(response_output(response), status_code=201)


@router.get("/forms/{form_id}/export", tags=["api/responses"])
async def api_export_form_responses(
    form_id: str,
    forms: FormService = Depends(get_form_service),
    responses: ResponseService = Depends(get_response_service),
) -> Response:
    content = responses.export_responses_csv(form_id)
    title = forms.get_form(form_id)["title"]
    return csv_attachment(
        content,
        f"{safe_filename(title)}_responses.csv",
        display_name=f"{title}_responses.csv",
    )


@router.get("/responses", tags=["api/responses"])
async def api_list_all_responses(
    responses: ResponseService = Depends(get_response_service),
) -> JSONResponse:
    return JSONResponse([response_output(item) for item in responses.list_all_responses()])


@router.get("/responses/export", tags=["api/responses"])
async def api_export_all_responses(
    responses: ResponseService = Depends(get_response_service),
) -> Response:
    return csv_attachment(responses.export_all_responses_csv(), "all_responses.csv")


@router.get("/dashboard/stats", tags=["api/responses"])
async def api_dashboard_stats(
    responses: ResponseService = Depends(get_response_service),
) -> JSONResponse:
    stats = responses.compute_dashboard_stats()
    return JSONResponse(
        {
            "totalForms": stats["total_forms"],
            "totalResponses": stats["total_responses"],
            "avgResponsesPerForm": stats["avg_responses_per_form"],
            "recentResponses": [
                response_output(item) for item in stats["recent_responses"]
            ],
        }
    )


@router.get("/health", tags=["system"])
async def api_health() -> dict[str, str]:
    return {"status": "OK", "timestamp": to_iso(now_utc())}
