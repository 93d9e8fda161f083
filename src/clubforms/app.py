from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from urllib.parse import urlencode

import markupsafe
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.templating import Jinja2Templates

from clubforms.config import BASE_DIR, Settings
from clubforms.errors import ClubFormsError
from clubforms.fields import answer_to_text
from clubforms.routes.admin import router as admin_router
from clubforms.routes.api import router as api_router
from clubforms.routes.public import router as public_router
from clubforms.storage import Storage, init_storage
from clubforms.utils import dumps_json, format_dt

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error"

FIELD_TYPE_LABELS = {
    "text": "Short Text",
    "textarea": "Long Text",
    "email": "Email",
    "number": "Number",
    "select": "Dropdown",
    "radio": "Multiple Choice",
    "checkbox": "Checkboxes",
}


def _tojson_attr(value: Any) -> markupsafe.Markup:
    return markupsafe.Markup(markupsafe.escape(dumps_json(value)))


def build_query(base: dict[str, Any], **overrides: Any) -> str:
    params = {k: v for k, v in base.items() if v not in (None, "")}
    for key, value in overrides.items():
        if value is None:
            params.pop(key, None)
        else:
            params[key] = str(value)
    return urlencode(params, doseq=True)


def fill_url(form_id: str) -> str:
    return "/?" + build_query({"form": form_id, "mode": "fill"})


def _wants_json(request: Request) -> bool:
    return request.url.path.startswith("/api")


def _error_response(request: Request, status_code: int, message: str) -> Response:
    if _wants_json(request):
        return JSONResponse({"error": message}, status_code=status_code)
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "error.html",
        {"message": message, "status_code": status_code},
        status_code=status_code,
    )


async def handle_clubforms_error(request: Request, exc: ClubFormsError) -> Response:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
    return _error_response(request, exc.status_code, exc.message)


async def handle_unexpected_error(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(request, 500, GENERIC_ERROR)


def create_app(
    settings: Settings | None = None, storage: Storage | None = None
) -> FastAPI:
    settings = settings or Settings()
    storage = storage or init_storage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        storage.close()

    app = FastAPI(
        title="Club Forms",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "ui", "description": "Form list, builder and dashboard (HTML)"},
            {"name": "public", "description": "Form viewer and filling (HTML)"},
            {"name": "api/forms", "description": "REST API: forms"},
            {"name": "api/responses", "description": "REST API: responses"},
            {"name": "system", "description": "System"},
        ],
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.storage = storage
    app.state.settings = settings

    templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
    templates.env.filters["tojson_attr"] = _tojson_attr
    templates.env.globals["format_dt"] = format_dt
    templates.env.globals["answer_to_text"] = answer_to_text
    templates.env.globals["build_query"] = build_query
    templates.env.globals["fill_url"] = fill_url
    templates.env.globals["field_type_labels"] = FIELD_TYPE_LABELS
    app.state.templates = templates

    app.add_exception_handler(ClubFormsError, handle_clubforms_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(admin_router)
    app.include_router(public_router)
    app.include_router(api_router)

    return app
