import logging
import time
from typing import Callable, List

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from .context import RequestContext
from .errors import (
    AccessDeniedError,
    CompanyRegistryError,
    NotFoundError,
    ShuttingDownError,
    UpstreamError,
    ValidationError,
)
from .shutdown import ShutdownCoordinator


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _request_logger(request: Request) -> logging.LoggerAdapter | logging.Logger:
    ctx = getattr(request.state, "ctx", None)
    return ctx.logger if ctx is not None else logger


def apply_cors_headers(request: Request, response: Response, allowed_origins: List[str]) -> Response:
    origin = request.headers.get("origin")
    if origin and origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "*"
    return response


def error_response(exc: CompanyRegistryError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


async def shutdown_gate(request: Request, call_next: Callable, coordinator: ShutdownCoordinator):
    if not coordinator.try_enter():
        logger.info(f"Rejecting {request.method} {request.url.path}: shutting down")
        return error_response(ShuttingDownError())
    try:
        return await call_next(request)
    finally:
        coordinator.leave()


async def request_context(request: Request, call_next: Callable, timeout_seconds: float):
    ctx = RequestContext.create(request.url.path, timeout_seconds)
    request.state.ctx = ctx
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = ctx.request_id
    return response


async def log_requests(request: Request, call_next: Callable):
    start_time = time.time()
    log = _request_logger(request)

    try:
        response = await call_next(request)
        process_time = time.time() - start_time
        # Only log slow requests (>1s) or errors
        if process_time > 1.0 or response.status_code >= 400:
            log.info(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.2f}s")
        return response
    except Exception as e:
        process_time = time.time() - start_time
        log.error(f"{request.method} {request.url.path} - ERROR: {str(e)} - {process_time:.2f}s")
        raise


async def registry_exception_handler(request: Request, exc: CompanyRegistryError):
    log = _request_logger(request)
    if isinstance(exc, ValidationError):
        log.debug(f"Rejected invalid input: {exc.errors}")
    elif isinstance(exc, (NotFoundError, AccessDeniedError)):
        log.warning(str(exc))
    elif isinstance(exc, UpstreamError):
        log.error(f"Upstream failure: {exc}", exc_info=exc)
    else:
        log.info(str(exc))
    return error_response(exc)


async def global_exception_handler(request: Request, exc: Exception, allowed_origins: List[str]):
    log = _request_logger(request)
    log.error(f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}", exc_info=exc)

    response = JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return apply_cors_headers(request, response, allowed_origins)
