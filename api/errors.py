"""Error envelope for the HTTP API.

Every failure answers with the same shape::

    {"error": {"code": "not_found", "message": "...", "details": null}}

Domain errors keep their stable `code`; state-machine violations (a plain
ValueError from WorkflowInstance.transition) become 409 conflicts.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.errors import (
    ConfirmationRequired,
    DuplicateId,
    ExternalCallFailure,
    IndexOutOfRange,
    InvalidInput,
    NoRulesConfigured,
    NotFound,
    PricingError,
)

logger = logging.getLogger(__name__)

STATUS_FOR: dict[type[PricingError], int] = {
    InvalidInput: 422,
    NotFound: 404,
    DuplicateId: 409,
    IndexOutOfRange: 409,
    NoRulesConfigured: 409,
    ExternalCallFailure: 502,
    ConfirmationRequired: 428,
}


def build_error_envelope(*, code: str, message: str, details: Any = None) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


def status_for(exc: PricingError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_FOR:
            return STATUS_FOR[cls]
    return 400


async def pricing_error_handler(request: Request, exc: PricingError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(build_error_envelope(**exc.to_dict()), status_code=status)


async def conflict_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(build_error_envelope(code="conflict", message=str(exc)), status_code=409)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        build_error_envelope(code="validation_error", message="Request failed validation.", details=details),
        status_code=422,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PricingError, pricing_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValueError, conflict_handler)
