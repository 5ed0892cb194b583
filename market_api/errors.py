"""Exception handlers for failures that are not the client's fault."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from market_api.storage import InvalidImageError

logger = logging.getLogger(__name__)


async def invalid_image_handler(request: Request, exc: InvalidImageError) -> JSONResponse:
    logger.info("Rejected upload on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def database_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    """Connection-level failures become 503; anything else is a plain 500."""
    if exc.connection_invalidated or isinstance(exc, (OperationalError, InterfaceError)):
        logger.error("Database unavailable on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Database unavailable"})
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidImageError, invalid_image_handler)
    app.add_exception_handler(DBAPIError, database_error_handler)
