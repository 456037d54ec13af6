"""Entry point for the file server."""

import os
import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging, set_request_id, reset_request_id
from appserver import config
from appserver import service_locator
from appserver.routes.entry_routes import router as entry_router
from appserver.exceptions import (
    AppServerException,
    EntryNotFoundError,
    EntryFinalizedError,
    OffsetMismatchError,
    MissingBodyError,
    IncompleteBodyError,
    InvalidHeaderError,
    InvalidRangeError,
    RangeNotSatisfiableError,
)

logger = setup_logging('appserver')

app = FastAPI(
    title="Chunked File Server",
    description="Resumable chunked uploads with incremental SHA-256 and range reads",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)

    start_time = time.time()

    logger.info(f"Request started: {request.method} {request.url.path}")

    try:
        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        response.headers["X-Request-ID"] = request_id

        return response
    finally:
        reset_request_id(token)


@app.on_event("startup")
async def startup_event():
    """
    Make sure the data directory exists before serving requests.
    """
    repository = service_locator.get_entry_repository()
    repository.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info(
        f"File server starting up [data_dir={repository.data_dir}] "
        f"[base_uri={config.APPSERVER_BASEURI}] [range_max_bytes={config.RANGE_MAX_BYTES}]"
    )


def _error(request: Request, status_code: int, exc: Exception, code: str, headers=None) -> JSONResponse:
    logger.warning(
        f"{type(exc).__name__}: {exc} path={request.url.path} status={status_code}"
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code},
        headers=headers,
    )


@app.exception_handler(EntryNotFoundError)
async def entry_not_found_handler(request: Request, exc: EntryNotFoundError):
    return _error(request, status.HTTP_404_NOT_FOUND, exc, "ENTRY_NOT_FOUND")


@app.exception_handler(EntryFinalizedError)
async def entry_finalized_handler(request: Request, exc: EntryFinalizedError):
    return _error(request, status.HTTP_409_CONFLICT, exc, "ENTRY_FINALIZED")


@app.exception_handler(OffsetMismatchError)
async def offset_mismatch_handler(request: Request, exc: OffsetMismatchError):
    return _error(
        request, status.HTTP_409_CONFLICT, exc, "OFFSET_MISMATCH",
        headers={"X-Entry-Size": str(exc.size)},
    )


@app.exception_handler(MissingBodyError)
async def missing_body_handler(request: Request, exc: MissingBodyError):
    return _error(request, status.HTTP_400_BAD_REQUEST, exc, "MISSING_BODY")


@app.exception_handler(IncompleteBodyError)
async def incomplete_body_handler(request: Request, exc: IncompleteBodyError):
    return _error(request, status.HTTP_400_BAD_REQUEST, exc, "INCOMPLETE_BODY")


@app.exception_handler(InvalidHeaderError)
async def invalid_header_handler(request: Request, exc: InvalidHeaderError):
    return _error(request, status.HTTP_400_BAD_REQUEST, exc, "BAD_REQUEST")


@app.exception_handler(InvalidRangeError)
async def invalid_range_handler(request: Request, exc: InvalidRangeError):
    return _error(request, status.HTTP_400_BAD_REQUEST, exc, "INVALID_RANGE")


@app.exception_handler(RangeNotSatisfiableError)
async def range_not_satisfiable_handler(request: Request, exc: RangeNotSatisfiableError):
    return _error(
        request, status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE, exc, "RANGE_NOT_SATISFIABLE",
        headers={"Content-Range": f"bytes */{exc.size}"},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Request validation failed: path={request.url.path} errors={exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request", "code": "BAD_REQUEST", "errors": jsonable_errors(exc)},
    )


@app.exception_handler(AppServerException)
async def appserver_exception_handler(request: Request, exc: AppServerException):
    logger.error(
        f"Server exception: {exc} path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "code": "INTERNAL_ERROR"}
    )


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unexpected error: {exc} path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "code": "INTERNAL_ERROR"}
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Reduce validation errors to location and message pairs."""
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": str(error.get("msg", ""))}
        for error in exc.errors()
    ]


app.include_router(entry_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "appserver"}


@app.get("/ready")
async def ready_check():
    """
    Readiness check endpoint.
    Verifies the data directory is present and writable.
    """
    data_dir = service_locator.get_entry_repository().data_dir
    ready = data_dir.is_dir() and os.access(data_dir, os.W_OK)
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={"ready": ready, "data_dir": str(data_dir)}
    )


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "appserver.main:app",
        host=config.APPSERVER_HOST,
        port=config.APPSERVER_PORT,
    )


if __name__ == "__main__":
    main()
