import mimetypes
import logging
from contextlib import asynccontextmanager
from typing import Optional, Tuple
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect

from flat_file_server.app.errors import (
    BadRequest,
    FileServerError,
    MethodNotImplemented,
    PayloadTooLarge,
    ServerError,
)
from flat_file_server.app.responses import FileStreamingResponse
from flat_file_server.app.services.path_validator import decode_path, extract_filename
from flat_file_server.app.services.storage_manager import StorageManager
from flat_file_server.config import ServerConfig
from flat_file_server.logger_config import setup_logger
from flat_file_server.monitor import FailureMonitor


@asynccontextmanager
async def lifespan(app: FastAPI):
    await app.state.storage_manager.initialize()
    yield


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    """Create the file server application for the given configuration."""
    config = config or ServerConfig.from_env()
    logger = setup_logger(config.log_dir)

    app = FastAPI(title="Flat File Server", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config
    app.state.monitor = FailureMonitor(config.failure_threshold, config.failure_window_seconds)
    app.state.storage_manager = StorageManager(config, app.state.monitor)

    register_exception_handlers(app, logger)
    register_routes(app, logger)

    return app


def register_exception_handlers(app: FastAPI, logger: logging.Logger) -> None:
    @app.exception_handler(FileServerError)
    async def file_server_error_handler(request: Request, exc: FileServerError):
        logger.debug(f"{request.method} {request.url.path} -> {exc.status_code} {exc.message}")
        return PlainTextResponse(exc.message, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Routing only knows GET, POST and DELETE
        if exc.status_code == 405:
            logger.info(f"Unsupported method {request.method} on {request.url.path}")
            error = MethodNotImplemented()
            return PlainTextResponse(error.message, status_code=error.status_code)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        error = ServerError()
        return PlainTextResponse(error.message, status_code=error.status_code)


def validate_request_path(request: Request) -> Tuple[str, str]:
    """Return the decoded path and the flat filename it names."""
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        raw_path = quote(request.scope["path"]).encode("ascii")

    decoded_path = decode_path(raw_path)
    return decoded_path, extract_filename(decoded_path)


def register_routes(app: FastAPI, logger: logging.Logger) -> None:
    @app.get("/{filename:path}")
    async def get_file(request: Request):
        """Stream a stored file, or the welcome document for '/'."""
        storage_manager: StorageManager = request.app.state.storage_manager
        decoded_path, filename = validate_request_path(request)
        logger.info(f"Receiving download request for {decoded_path!r}")

        if decoded_path == "/":
            file_path = storage_manager.index_path
            media_type = "text/html"
        else:
            file_path = storage_manager.resolve(filename)
            media_type, _ = mimetypes.guess_type(filename)

        file = await storage_manager.open_file(file_path)

        return FileStreamingResponse(
            file,
            storage_manager.iter_file(file),
            media_type=media_type,
        )

    @app.post("/{filename:path}")
    async def upload_file(request: Request):
        """Store the request body as a new file."""
        storage_manager: StorageManager = request.app.state.storage_manager
        _, filename = validate_request_path(request)
        logger.info(f"Receiving upload request for {filename!r}")

        file_path = storage_manager.resolve(filename)

        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                declared_size = int(content_length)
            except ValueError:
                raise BadRequest("Invalid Content-Length header")
            if declared_size > storage_manager.max_file_size:
                logger.info(f"Rejecting {filename!r}: declared {declared_size} bytes")
                raise PayloadTooLarge()

        try:
            size = await storage_manager.save_file(file_path, request.stream())
        except ClientDisconnect:
            logger.info(f"Client disconnected while uploading {filename!r}")
            return PlainTextResponse("Upload aborted", status_code=400)

        logger.info(f"Stored {filename!r} ({size} bytes)")
        return PlainTextResponse("Ok")

    @app.delete("/{filename:path}")
    async def delete_file(request: Request):
        """Delete a stored file."""
        storage_manager: StorageManager = request.app.state.storage_manager
        _, filename = validate_request_path(request)
        logger.info(f"Receiving delete request for {filename!r}")

        await storage_manager.delete_file(storage_manager.resolve(filename))

        logger.info(f"Successfully deleted: {filename!r}")
        return PlainTextResponse("Ok")
