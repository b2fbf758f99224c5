"""HTTP mapping for courier errors.

Starlette picks the handler registered for the closest class in the
exception's MRO, so the specific kinds below take precedence over Protean's
generic handlers.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from courier.shared.errors import (
    AlreadyInvoiced,
    BookingNotFound,
    ConcurrentModification,
    InvalidTransition,
    MissingRemarks,
    NotEligibleForInvoicing,
    OutOfOrder,
    UnknownAWB,
)


def _body(exc: Exception, kind: str, **extra) -> dict:
    return {"error": kind, "messages": getattr(exc, "messages", {}), **extra}


async def _validation(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_body(exc, type(exc).__name__))


async def _invalid_transition(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_body(
            exc,
            "InvalidTransition",
            current_status=exc.current,
            proposed_status=exc.proposed,
            allowed_next_statuses=exc.allowed,
        ),
    )


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    body = _body(exc, type(exc).__name__)
    if not body["messages"]:
        body["messages"] = {"_entity": [str(exc)]}
    return JSONResponse(status_code=404, content=body)


async def _concurrent_modification(request: Request, exc: ConcurrentModification) -> JSONResponse:
    return JSONResponse(status_code=409, content=_body(exc, "ConcurrentModification", retryable=True))


async def _version_conflict(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    # A save that lost to another process after retries ran out
    body = {"error": "ConcurrentModification", "messages": {"_entity": [str(exc)]}, "retryable": True}
    return JSONResponse(status_code=409, content=body)


async def _already_invoiced(request: Request, exc: AlreadyInvoiced) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content=_body(exc, "AlreadyInvoiced", retryable=False, refresh="eligible-bookings"),
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)

    for kind in (ValidationError, MissingRemarks, OutOfOrder, NotEligibleForInvoicing):
        app.add_exception_handler(kind, _validation)
    app.add_exception_handler(InvalidTransition, _invalid_transition)
    for kind in (ObjectNotFoundError, BookingNotFound, UnknownAWB):
        app.add_exception_handler(kind, _not_found)
    app.add_exception_handler(ConcurrentModification, _concurrent_modification)
    app.add_exception_handler(ExpectedVersionError, _version_conflict)
    app.add_exception_handler(AlreadyInvoiced, _already_invoiced)
