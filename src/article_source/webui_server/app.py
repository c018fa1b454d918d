from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from .. import __version__
from ..engine import SyncEngine, build_engine
from ..errors import ValidationError
from .deps import Services
from .routers import articles, meta
from .settings import WebUISettings, load_webui_settings

logger = logging.getLogger(__name__)


def create_app(
    engine: SyncEngine | None = None,
    settings: WebUISettings | None = None,
    *,
    initial_refresh: bool = True,
) -> FastAPI:
    settings = settings or load_webui_settings()
    engine = engine or build_engine()
    services = Services(settings=settings, engine=engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services
        if initial_refresh:
            result = await asyncio.to_thread(services.engine.refresh)
            if not result.ok:
                logger.warning("initial refresh failed: %s", result.error)
        print(
            f"[start] webui-server listening on http://{settings.bind_host}:{settings.bind_port}{settings.base_path}",
            flush=True,
        )
        try:
            yield
        finally:
            services.engine.close()

    app = FastAPI(title="Article Source", version=__version__, lifespan=lifespan)
    api_prefix = f"{settings.base_path}/api/v1"
    app.include_router(meta.router, prefix=api_prefix)
    app.include_router(articles.router, prefix=api_prefix)

    @app.get("/")
    async def root_redirect() -> Response:
        return RedirectResponse(url=f"{api_prefix}/health", status_code=307)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(_request: Request, exc: ValidationError) -> JSONResponse:
        content: dict[str, Any] = {"error": "validation_error", "detail": str(exc)}
        if exc.conflicts:
            content["error"] = "conflict"
            content["conflicts"] = [getattr(axis, "value", str(axis)) for axis in exc.conflicts]
            return JSONResponse(status_code=409, content=content)
        return JSONResponse(status_code=422, content=content)

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_request: Request, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": "runtime_error", "detail": str(exc)})

    return app
