"""
Domain exceptions and their mapping onto HTTP responses.

Stores and services raise these; routers let them propagate and the
handlers registered by `register_exception_handlers` turn them into JSON
error bodies with the matching status code.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DatingSimError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(detail)
        self.detail = detail
        self.errors = errors or []


class NotFoundError(DatingSimError):
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateKeyError(DatingSimError):
    status_code = status.HTTP_409_CONFLICT


class ValidationFailure(DatingSimError):
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamUnavailableError(DatingSimError):
    status_code = status.HTTP_502_BAD_GATEWAY


class StorageUnavailableError(DatingSimError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def _error_body(detail: str, errors: List[Dict[str, Any]]) -> Dict[str, Any]:
    body: Dict[str, Any] = {"detail": detail}
    if errors:
        body["errors"] = errors
    return body


async def dating_sim_error_handler(request: Request, exc: DatingSimError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.detail, exc.errors))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 with field-level detail."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    logger.info(f"Validation failed for {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Validation failed", errors),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error handling {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DatingSimError, dating_sim_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
