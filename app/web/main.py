from __future__ import annotations

import time
import traceback
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.infrastructure.config import get_settings
from app.infrastructure.exceptions import CreditRatingError, ValidationError
from app.infrastructure.logging import clear_context, get_logger, set_context
from app.utils.bootstrap import initialise_database
from app.web.dependencies import app_session_factory
from app.web.routes import assessments, categories, customers, system, templates

logger = get_logger(__name__)

GENERIC_ERROR = "An unexpected error occurred. Please try again."


def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    content = {"success": False, "message": message, **extra}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def handle_app_error(request: Request, exc: CreditRatingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
        return _error_response(exc.status_code, exc.user_message)

    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    extra = {}
    if isinstance(exc, ValidationError):
        extra["field"] = exc.field
        if "errors" in exc.details:
            extra["errors"] = exc.details["errors"]
    elif exc.details:
        extra["details"] = exc.details
    return _error_response(exc.status_code, exc.user_message, **extra)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    first = errors[0] if errors else {"field": "", "message": "Invalid request"}
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    logger.warning(f"{request.method} {request.url.path} invalid request: {message}")
    return _error_response(status.HTTP_400_BAD_REQUEST, message, errors=errors)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    extra = {}
    if get_settings().expose_tracebacks():
        extra["traceback"] = "".join(traceback.format_exception(exc))
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR, **extra)


def create_application() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app.title,
        version=settings.app.version,
        debug=settings.app.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=settings.security.cors_methods,
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        set_context(request_id=request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = request_id
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"in {elapsed:.1f}ms"
            )
            return response
        finally:
            clear_context()

    app.add_exception_handler(CreditRatingError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)

    app.include_router(templates.router)
    app.include_router(assessments.router)
    app.include_router(categories.router)
    app.include_router(customers.router)
    app.include_router(system.router)

    @app.on_event("startup")
    async def startup_event() -> None:
        if get_settings().database.auto_create:
            app_session_factory(app)
            initialise_database(app.state.db_engine)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        publisher = getattr(app.state, "audit_publisher", None)
        if publisher is not None and hasattr(publisher, "stop"):
            publisher.stop()

    return app


app = create_application()
