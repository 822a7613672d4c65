from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mqtt_publisher.api.schemas import ApiResponse
from mqtt_publisher.core.exceptions import MessageValidationError

logger = logging.getLogger(__name__)


def _describe(errors: list[dict]) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    detail = _describe(list(exc.errors()))
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, detail)
    return ApiResponse.failure("Validation failed", detail).to_response(400)


async def message_validation_handler(
    request: Request, exc: MessageValidationError
) -> JSONResponse:
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return ApiResponse.failure("Validation failed", str(exc)).to_response(400)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(MessageValidationError, message_validation_handler)
