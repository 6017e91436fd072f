"""
eventquest.api.errors — Service error → HTTP response mapping
==============================================================

One exception handler for :class:`~eventquest.errors.EventQuestError`.
The body is ``{"detail": message, "error": type_name}``; a
``MissingConnectionError`` also carries ``"provider"`` so the client can
offer the right "link your account" button.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from eventquest.errors import (
    AlreadyCompletedError,
    AlreadyJoinedError,
    AuthorizationError,
    EventQuestError,
    ExpiredAuthError,
    ExternalServiceError,
    InactiveEventError,
    MissingConnectionError,
    NotFoundError,
    SignatureMismatchError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses resolve through isinstance.
STATUS_CODES: tuple[tuple[type[EventQuestError], int], ...] = (
    (ValidationError, 400),
    (InactiveEventError, 400),
    (MissingConnectionError, 403),
    (NotFoundError, 404),
    (AuthorizationError, 403),
    (AlreadyJoinedError, 409),
    (AlreadyCompletedError, 409),
    (SignatureMismatchError, 401),
    (ExpiredAuthError, 401),
    (ExternalServiceError, 502),
)


def status_for(exc: EventQuestError) -> int:
    for exc_type, code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return 500


async def handle_service_error(request: Request, exc: EventQuestError) -> JSONResponse:
    code = status_for(exc)
    body = {"detail": exc.message, "error": type(exc).__name__}
    if isinstance(exc, MissingConnectionError):
        body["provider"] = exc.provider
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content=body)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EventQuestError, handle_service_error)
