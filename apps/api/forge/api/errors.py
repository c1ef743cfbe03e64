"""Mapping of Forge errors onto HTTP responses."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from forge.errors import (
    EditNotFoundError,
    ErrorKind,
    ForgeError,
    GatewayError,
    InvalidTransitionError,
    MissingCredentialError,
    StepBusyError,
    StepNotFoundError,
)


KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.AUTH_FAILED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.NETWORK: 502,
    ErrorKind.GENERIC: 502,
}


def error_status(error: ForgeError) -> int:
    """HTTP status for a Forge error."""
    if isinstance(error, StepBusyError):
        return 409
    if isinstance(error, (StepNotFoundError, EditNotFoundError)):
        return 404
    if isinstance(error, InvalidTransitionError):
        return 400
    if isinstance(error, MissingCredentialError):
        return 401
    if isinstance(error, GatewayError):
        return KIND_STATUS[error.kind]
    return 500


async def forge_error_handler(request: Request, exc: ForgeError) -> JSONResponse:
    kind = exc.kind.value if isinstance(exc, GatewayError) else None
    return JSONResponse(
        status_code=error_status(exc),
        content={"detail": str(exc), "error": type(exc).__name__, "kind": kind},
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})
