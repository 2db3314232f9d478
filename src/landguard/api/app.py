"""FastAPI app factory for the LandGuard risk API."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from landguard.api.property import router as property_router
from landguard.api.scan import router as scan_router
from landguard.errors import LandGuardError
from landguard.observability import configure_logging

LOGGER = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": {"code": code, "message": message}})


async def _handle_landguard_error(request: Request, exc: LandGuardError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.warning("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.code, exc.message)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _error(400, "INVALID_FIELD", f"{location}: {message}" if location else message)


async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return _error(exc.status_code, code, str(exc.detail))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "INTERNAL_ERROR", "An unexpected error occurred")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance.
    """
    configure_logging()
    app = FastAPI(title="LandGuard Risk API", version="0.1")
    app.include_router(scan_router)
    app.include_router(property_router)

    app.add_exception_handler(LandGuardError, _handle_landguard_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(Exception, _handle_unexpected)

    @app.get("/health", tags=["health"])
    def health():
        return {"success": True, "data": {"status": "ok"}}

    return app


# For uvicorn, expose `app` at module level
app = create_app()

__all__ = ["app", "create_app"]
