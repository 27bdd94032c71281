"""
Exception hierarchy for policy discovery and the FastAPI handlers that expose it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

if TYPE_CHECKING:
    from policyscout.models.discovery import ContentValidationResult


class DiscoveryError(Exception):
    """Base class for every error raised by the discovery core."""


class FetchError(DiscoveryError):
    """A single fetch failed. Never escapes a strategy boundary."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class InvalidTargetError(FetchError):
    """URL matches an authentication/login pattern and was not requested."""


class AuthWallError(FetchError):
    """Response turned out to be a login wall (redirect or page content)."""


class RateLimitedError(FetchError):
    """Server kept answering 429 after all retry attempts."""


class UpstreamServerError(FetchError):
    """Server kept answering 5xx after all retry attempts."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: int = 500) -> None:
        super().__init__(message, url)
        self.status_code = status_code


class ForbiddenError(FetchError):
    """Every candidate user agent was refused with 403."""


class UnexpectedStatusError(FetchError):
    """Non-retryable 4xx answer (404, 410, ...)."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: int = 400) -> None:
        super().__init__(message, url)
        self.status_code = status_code


class ConnectionFailedError(FetchError):
    """Timeouts or connection errors persisted through all retry attempts."""


class RequestFailedError(FetchError):
    """Request could not be completed, e.g. a redirect loop or a malformed URL."""


class ValidationRejected(DiscoveryError):
    """Fetched content is not an instance of the requested document type."""

    def __init__(self, message: str, result: Optional["ContentValidationResult"] = None) -> None:
        super().__init__(message)
        self.result = result


class NotFoundError(DiscoveryError):
    """No strategy produced a usable candidate for the domain."""

    def __init__(self, message: str, domain: Optional[str] = None) -> None:
        super().__init__(message)
        self.domain = domain


class TargetResolutionError(DiscoveryError):
    """User input could not be turned into a domain."""


class ConfigurationError(DiscoveryError):
    """Static configuration (tables, override files) is malformed."""


def _error_payload(exc: Exception) -> dict[str, Any]:
    return {"detail": str(exc), "error": exc.__class__.__name__}


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers translating discovery errors into HTTP responses."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        logger.info(f"Discovery found nothing for {request.url.path}: {exc}")
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_payload(exc))

    @app.exception_handler(TargetResolutionError)
    async def target_resolution_handler(request: Request, exc: TargetResolutionError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_payload(exc),
        )

    @app.exception_handler(InvalidTargetError)
    async def invalid_target_handler(request: Request, exc: InvalidTargetError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_payload(exc),
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error(f"Configuration error while serving {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_payload(exc),
        )

    @app.exception_handler(DiscoveryError)
    async def discovery_error_handler(request: Request, exc: DiscoveryError) -> JSONResponse:
        logger.exception(f"Discovery failed for {request.url.path}: {exc}")
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_error_payload(exc))
