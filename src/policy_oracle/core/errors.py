"""
Global Error Handling

This module defines the domain error hierarchy of the Policy Oracle service
and the application-wide exception handlers that render it.

Design Goals
------------
- Never leak internal exception details to clients
- Always return deterministic, machine-readable `{"error": ...}` payloads
- Distinguish upstream capacity errors (rate limit, quota) from generic failures
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("oracle.errors")


# ---------------------------------------------------------------------
# Domain Errors
# ---------------------------------------------------------------------

class PolicyOracleError(Exception):
    """
    Base class for errors that map onto a client-facing response.

    Subclasses fix `status_code` and a default user-facing `message`.
    """

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DocumentNotFoundError(PolicyOracleError):
    """Raised when no document row matches a storage path."""

    default_message = "Document not found"


class IngestionConflictError(PolicyOracleError):
    """Raised when a document is already processing or processed."""

    status_code = 409
    default_message = "Document is already being processed"


class ConversationNotFoundError(PolicyOracleError):
    status_code = 404
    default_message = "Conversation not found"


class StorageError(PolicyOracleError):
    """Raised when the blob download or the chunk insert fails."""

    default_message = "Storage operation failed"


class UpstreamError(PolicyOracleError):
    """Base class for failures of the upstream chat-completion service."""

    default_message = "AI service error"


class UpstreamRateLimitError(UpstreamError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again in a moment."


class UpstreamQuotaError(UpstreamError):
    status_code = 402
    default_message = "AI usage limit reached. Please add credits."


class UpstreamServiceError(UpstreamError):
    status_code = 500
    default_message = "AI service error"


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def policy_oracle_error_handler(
    request: Request,
    exc: PolicyOracleError,
) -> JSONResponse:
    """
    Render a domain error as `{"error": message}` with its status code.
    """
    logger.warning(
        "%s during request %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Render a request validation failure as `{"error": message}` (422).

    Only the first problem is reported, named by its wire field
    (`filePath is required`).
    """
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        if first.get("type") == "missing":
            message = f"{field} is required"
        elif field:
            message = f"{field}: {first.get('msg')}"
        else:
            message = str(first.get("msg"))

    logger.warning(
        "Validation failed for %s %s: %s",
        request.method,
        request.url.path,
        message,
    )
    return JSONResponse(
        status_code=422,
        content={"error": message},
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.
    - Keeps the `{"error": ...}` response format used by every endpoint.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
