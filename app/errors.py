import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ReportError(Exception):
    """Base class for errors the report API turns into HTTP responses."""

    status_code = 500
    error = "Internal server error"
    # Seconds sent as Retry-After, for errors a client should retry
    retry_after = None

    def __init__(self, details: str = ""):
        super().__init__(details or self.error)
        self.details = details

    def to_dict(self):
        return {"error": self.error, "details": self.details}


class ReportValidationError(ReportError):
    status_code = 400
    error = "Invalid report data"


class ReportNotFoundError(ReportError):
    status_code = 404
    error = "Report not found"

    def to_dict(self):
        return {"error": self.error}


class PhotoStorageError(ReportError):
    status_code = 500
    error = "Error storing photo"


class ServiceUnavailableError(ReportError):
    """A backing service did not answer in time. Clients should back off and retry."""

    status_code = 503
    error = "Service is currently unavailable"
    retry_after = 30

    def to_dict(self):
        return {
            "error": self.error,
            "message": self.details or "The operation timed out. Please try again later.",
        }


class DatabaseUnavailableError(ServiceUnavailableError):
    error = "Database is currently unavailable"


class StorageUnavailableError(ServiceUnavailableError):
    error = "Photo storage is currently unavailable"


async def report_error_handler(request: Request, exc: ReportError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error}: {exc.details}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.error}: {exc.details}")
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(ReportError, report_error_handler)
