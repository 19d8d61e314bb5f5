"""Exception handlers for structured error responses.

Every error leaves the API as ``{error, message, details}``. Unexpected
exceptions are logged with their traceback and reported as a bare 500.
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import DashgateException, ErrorCode

logger = logging.getLogger(__name__)


async def dashgate_exception_handler(request: Request, exc: DashgateException) -> JSONResponse:
    """Convert a DashgateException into its JSON body and status code.

    Client errors are logged at WARNING, server errors at ERROR.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"DashgateException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, reveal nothing to the client."""
    logger.error(
        "Unhandled exception",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": ErrorCode.INTERNAL_ERROR.value,
            "message": "Internal server error",
            "details": {},
        },
    )
