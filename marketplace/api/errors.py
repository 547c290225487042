# marketplace/api/errors.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from marketplace.exceptions import MarketplaceError
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _error(status_code: int, message: str, code: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code, **extra},
    )


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")

    extra = {}
    if getattr(exc, "retryable", False):
        extra["retryable"] = True
    return _error(exc.status_code, exc.message or exc.code, exc.code, **extra)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error(400, "Validation failed", "VALIDATION_FAILED", details=details)


async def store_unavailable_handler(request: Request, exc: OperationalError) -> JSONResponse:
    # store_retry juz sprobowal kilka razy
    logger.error(f"{request.method} {request.url.path} -> store unavailable: {exc}")
    return _error(503, "Service temporarily unavailable, please try again", "STORE_UNAVAILABLE", retryable=True)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} -> unexpected error")
    return _error(500, "Internal server error", "INTERNAL_ERROR")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(OperationalError, store_unavailable_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
