"""Exception handlers mapping domain errors onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from errors.exceptions import (
    AllProvidersExhausted,
    AuthError,
    ConversationNotFound,
    NoCredentialsConfigured,
    UnknownMode,
)
from models.request import ErrorResponse
from services.messages import t

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, code: str) -> JSONResponse:
    body = ErrorResponse(error=message, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


async def _unknown_mode(request: Request, exc: UnknownMode) -> JSONResponse:
    return _error(400, str(exc), "unknown_mode")


async def _auth_error(request: Request, exc: AuthError) -> JSONResponse:
    return _error(exc.status_code, str(exc), "auth")


async def _not_found(request: Request, exc: ConversationNotFound) -> JSONResponse:
    return _error(404, str(exc), "not_found")


async def _misconfigured(request: Request, exc: NoCredentialsConfigured) -> JSONResponse:
    logger.error("Unhandled configuration error on %s: %s", request.url.path, exc)
    return _error(503, t("error_misconfigured"), "misconfigured")


async def _exhausted(request: Request, exc: AllProvidersExhausted) -> JSONResponse:
    logger.error("Unhandled provider exhaustion on %s: %s", request.url.path, exc)
    return _error(503, t("error_overloaded"), "overloaded")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UnknownMode, _unknown_mode)
    app.add_exception_handler(AuthError, _auth_error)
    app.add_exception_handler(ConversationNotFound, _not_found)
    app.add_exception_handler(NoCredentialsConfigured, _misconfigured)
    app.add_exception_handler(AllProvidersExhausted, _exhausted)
