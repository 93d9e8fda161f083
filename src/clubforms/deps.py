from __future__ import annotations

from fastapi import Request

from clubforms.form_service import FormService
from clubforms.response_service import ResponseService


def get_form_service(request: Request) -> FormService:
    return FormService(request.app.state.storage)


def get_response_service(request: Request) -> ResponseService:
    settings = request.app.state.settings
    return ResponseService(
        request.app.state.storage, strict_answers=settings.strict_answers
    )
