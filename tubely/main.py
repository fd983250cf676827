from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tubely.api.v1 import get_api_router
from tubely.api.v1.schemas import ErrorResponse
from tubely.core.config import get_settings
from tubely.core.db import create_engine, create_session_factory
from tubely.core.errors import TubelyError
from tubely.core.logging import bind_request_context, configure_logging, get_logger
from tubely.core.storage import get_asset_storage, get_storage
from tubely.media import get_media_toolkit

UPLOAD_FIELDS = frozenset({"thumbnail", "video"})


async def handle_tubely_error(request: Request, exc: TubelyError) -> JSONResponse:
    logger = get_logger(component="api")
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_failed",
        status_code=exc.status_code,
        error=exc.code,
        cause=repr(exc.__cause__) if exc.__cause__ else None,
    )
    body = ErrorResponse(error=exc.code, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400s in the common error shape."""
    fields = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
    upload_field = next((field for field in fields if field in UPLOAD_FIELDS), None)
    if upload_field:
        body = ErrorResponse(error=f"missing_{upload_field}", detail=f"Form field '{upload_field}' must be a file.")
    else:
        body = ErrorResponse(error="invalid_request", detail="Invalid request payload.")
    get_logger(component="api").info("request_invalid", error=body.error, fields=fields)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


def create_app() -> FastAPI:
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    configure_logging(level=log_level)
    storage = get_storage(settings)
    asset_storage = get_asset_storage(settings)
    toolkit = get_media_toolkit(settings)
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.storage = storage
        app.state.asset_storage = asset_storage
        app.state.media_toolkit = toolkit
        app.state.engine = engine
        app.state.session_factory = session_factory
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        bind_request_context(request_id=request_id, method=request.method, path=request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            get_logger(component="api").exception("unhandled_exception")
            body = ErrorResponse(error="internal_error", detail="An unexpected error occurred.")
            response = JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_exception_handler(TubelyError, handle_tubely_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.include_router(get_api_router())
    app.mount("/assets", StaticFiles(directory=str(asset_storage.base_path)), name="assets")
    return app


__all__ = ["create_app", "handle_tubely_error", "handle_validation_error"]
