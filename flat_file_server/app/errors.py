"""Errors raised by the file store and rendered as plain-text responses."""
from typing import Dict, Optional


class FileServerError(Exception):
    """Base class for every error that maps to an HTTP status."""

    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None) -> None:
        self.message = message or self.default_message
        self.headers = headers or {}
        super().__init__(self.message)


class BadRequest(FileServerError):
    status_code = 400
    default_message = "Bad Request"


class NotFound(FileServerError):
    status_code = 404
    default_message = "File not found"


class Conflict(FileServerError):
    status_code = 409
    default_message = "File already exists"


class PayloadTooLarge(FileServerError):
    status_code = 413
    default_message = "File is too big"


class ServerError(FileServerError):
    status_code = 500
    default_message = "Server Error"


class MethodNotImplemented(FileServerError):
    # 502 is kept for compatibility with existing clients
    status_code = 502
    default_message = "Not implemented"
