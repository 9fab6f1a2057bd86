"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses, and the
exception handlers rendering the error envelope.
"""

import time
import traceback
import uuid
from typing import List, Union

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from tapbridge.core.config import settings
from tapbridge.core.exceptions import ErrorKind, TapbridgeException, unpack_validation_error
from tapbridge.core.logging import logger
from tapbridge.schemas.response import ErrorResponse


def error_body(message: str, kind: ErrorKind, trace: str = None) -> dict:
    """Render the error envelope."""
    return ErrorResponse(message=message, code=kind.value, trace=trace).model_dump(
        exclude_none=True
    )


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions and render them as internal errors.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        trace = traceback.format_exc() if settings.DEBUG else None
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", ErrorKind.INTERNAL, trace),
        )


class AllowedOriginsCORSMiddleware(BaseHTTPMiddleware):
    """CORS for the configured origins, with credentials.

    Preflight requests from other origins are rejected with 403.
    """

    def __init__(self, app, allowed_origins: List[str]):
        """Initialize the middleware.

        Args:
            app: The FastAPI application
            allowed_origins: Origins allowed to call the API
        """
        super().__init__(app)
        self.allowed_origins = allowed_origins

    def _is_allowed(self, origin: str) -> bool:
        return "*" in self.allowed_origins or origin in self.allowed_origins

    async def dispatch(self, request: Request, call_next):
        """Answer preflight requests and add CORS headers for allowed origins."""
        origin = request.headers.get("origin")
        if not origin:
            return await call_next(request)

        if request.method == "OPTIONS":
            if not self._is_allowed(origin):
                logger.debug(f"Rejected OPTIONS preflight for {request.url.path} from {origin}")
                return Response(status_code=403)

            response = Response()
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS,PATCH"
            response.headers["Access-Control-Allow-Headers"] = "*"
            response.headers["Access-Control-Allow-Credentials"] = "true"
            return response

        response = await call_next(request)
        if self._is_allowed(origin):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
        return response


# Exception handlers
async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Render request validation failures as ``invalid-argument`` errors.

    Example of JSON output:
        {
            "status": "error",
            "message": "cartItems.0.quantity: Input should be greater than 0",
            "code": "invalid-argument"
        }

    """
    message = unpack_validation_error(exc)
    logger.warning(f"Validation error on {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=400, content=error_body(message, ErrorKind.INVALID_ARGUMENT))


async def tapbridge_exception_handler(request: Request, exc: TapbridgeException) -> JSONResponse:
    """Render every deliberate error with the status and code of its kind.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (TapbridgeException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: The error envelope.

    """
    if exc.kind == ErrorKind.INTERNAL:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.kind))
