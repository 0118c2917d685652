import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from third_party_audit.platform.response import api_response


class ThirdPartyAnalysisError(Exception):
    """Base error for the third-party analysis feature."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidDocumentError(ThirdPartyAnalysisError):
    """The document handed to the analyzer is missing or not queryable."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ComponentTimeoutError(ThirdPartyAnalysisError):
    """A detector or heuristic did not settle within its timeout."""

    def __init__(self, component: str, timeout: float):
        self.component = component
        self.timeout = timeout
        super().__init__(f"{component} timed out after {timeout:g}s")


class PageLoadError(ThirdPartyAnalysisError):
    """The browser could not load the requested page."""

    status_code = status.HTTP_502_BAD_GATEWAY


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(message=str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"errors": exc.errors()},
        )

    @app.exception_handler(ThirdPartyAnalysisError)
    async def analysis_exception_handler(request: Request, exc: ThirdPartyAnalysisError):
        return api_response(message=str(exc) or "Analysis failed", status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logging.exception(f"Unhandled exception: {exc}")
        return api_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
