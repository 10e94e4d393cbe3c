"""
    Centralized exception handling for the image watcher service.
"""
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)

class WatcherException(Exception):
    """Base class for watcher exceptions."""
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.detail)

class ConfigurationError(WatcherException):
    """Exception for an unloadable or invalid configuration. Fatal at startup."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

class IdentityNotFoundException(WatcherException):
    """Exception for a path that has no upload identity yet."""
    def __init__(self, path: str):
        super().__init__(status_code=404, detail=f"No upload identity assigned to '{path}'.")

class UploadException(WatcherException):
    """Base class for failures that abort the upload of a single file."""
    def __init__(self, path: str, detail: str, status_code: int = 500):
        self.path = path
        super().__init__(status_code=status_code, detail=detail)

class FileReadException(UploadException):
    """Exception for file metadata or content that cannot be read."""
    def __init__(self, path: str, detail: str):
        super().__init__(path, detail=f"Failed to read '{path}': {detail}")

class S3UploadException(UploadException):
    """Exception for S3 upload failures."""
    def __init__(self, path: str, detail: str):
        super().__init__(path, detail=f"Failed to upload '{path}' to S3: {detail}", status_code=502)

async def api_exception_handler(request: Request, exc: WatcherException):
    """Handles watcher exceptions."""
    log.error(f"API Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error(f"Unhandled Exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred."},
    )

def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(WatcherException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
