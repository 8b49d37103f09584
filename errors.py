import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class PortfolioError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(PortfolioError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(PortfolioError):
    status_code = 404
    default_message = "Not found"


class InvalidFile(PortfolioError):
    status_code = 400
    default_message = "Invalid file type. Only images, videos, PDFs, and Word documents are allowed."


class InvalidFormat(InvalidFile):
    pass


def format_size(num_bytes: int) -> str:
    for unit, scale in (("MB", 1024 * 1024), ("KB", 1024)):
        if num_bytes >= scale:
            return f"{num_bytes / scale:.4g}{unit}"
    return f"{num_bytes} bytes"


class PayloadTooLarge(PortfolioError):
    status_code = 400
    default_message = "File too large"

    @classmethod
    def for_limit(cls, max_bytes: int) -> "PayloadTooLarge":
        return cls(f"File too large. Maximum size is {format_size(max_bytes)}")


class MissingFile(PortfolioError):
    status_code = 400
    default_message = "No file uploaded"


class InvalidFields(PortfolioError):
    status_code = 400
    default_message = "Validation error"

    def __init__(self, details: list):
        super().__init__()
        self.details = details

    @classmethod
    def from_validation(cls, exc: ValidationError) -> "InvalidFields":
        return cls(_error_details(exc.errors()))


class UpstreamFailure(PortfolioError):
    status_code = 500


def _error_details(errors):
    # ctx values may hold exception instances which are not JSON serializable
    return [{k: v for k, v in e.items() if k in ("loc", "msg", "type")} for e in errors]


def register_exception_handlers(app):
    @app.exception_handler(PortfolioError)
    async def portfolio_error_handler(request: Request, exc: PortfolioError):
        if exc.status_code >= 500:
            logger.error("Request failed", extra={"path": request.url.path, "error": exc.message})
        else:
            logger.info("Request rejected", extra={"path": request.url.path, "status_code": exc.status_code})
        body = {"error": exc.message}
        if getattr(exc, "details", None):
            body["details"] = exc.details
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.info("HTTP exception", extra={"status_code": exc.status_code})
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("Validation error", extra={"errors": exc.errors()})
        return JSONResponse(
            {"error": "Validation error", "details": _error_details(exc.errors())},
            status_code=422,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse({"error": str(exc) or "Internal Server Error"}, status_code=500)
