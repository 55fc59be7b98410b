import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from .v1.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class BusMapError(Exception):
    """Base class for errors that are reported to the client as an ErrorResponse."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal Server Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(BusMapError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ConflictError(ValidationError):
    """The derived identity of a new entity collides with a stored one."""

    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"


class NotFoundError(BusMapError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"

    def __init__(self, resource_type: str, resource_id: Any, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{resource_type} not found with id: {resource_id}", details)
        self.resource_type = resource_type
        self.resource_id = resource_id


def error_response(request: Request, status_code: int, error: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        timestamp=datetime.now(),
        status=status_code,
        error=error,
        message=message,
        path=request.url.path,
        details=details,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(BusMapError)
    async def handle_busmap_error(request: Request, exc: BusMapError):
        return error_response(request, exc.status_code, exc.error, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = {}
        for err in exc.errors():
            # Drop the "body"/"query"/"path" prefix so keys match the JSON field names
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
            details[".".join(loc) or "request"] = err.get("msg")
        return error_response(
            request, status.HTTP_400_BAD_REQUEST, "Bad Request", "Validation failed", details
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal Server Error",
            "An unexpected error occurred",
        )
