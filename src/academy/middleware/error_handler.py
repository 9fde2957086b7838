"""Exception handlers that turn every failure into ``{"detail": ...}`` JSON.

Services raise the domain exceptions from ``academy.errors`` and the class
decides the status code:

    NotFoundError     404
    ForbiddenError    403
    ConflictError     409 (matched before its BadRequestError base)
    BadRequestError   400

Anything else is logged as ``unhandled_exception`` and returns a bare 500.
"""

from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from academy.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError

logger = structlog.get_logger()

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (ConflictError, 409),
    (BadRequestError, 400),
)


def _jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    """Pydantic error dicts with their ``ctx`` values stringified."""
    errors: list[dict[str, object]] = []
    for error in exc.errors():
        cleaned = dict(error)
        if "ctx" in cleaned:
            cleaned["ctx"] = {k: str(v) for k, v in dict(cleaned["ctx"]).items()}  # type: ignore[call-overload]
        errors.append(cleaned)
    return errors


def _domain_handler(status_code: int) -> Callable[[Request, Exception], Awaitable[JSONResponse]]:
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        if status_code == 400:
            logger.info("request_rejected", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handle


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": _jsonable_errors(exc)},
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def setup_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error)  # type: ignore[arg-type]
    for error_type, status_code in _STATUS_BY_ERROR:
        app.add_exception_handler(error_type, _domain_handler(status_code))
    app.add_exception_handler(Exception, _unhandled_error)
