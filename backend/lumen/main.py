"""Lumen media server — FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from lumen import __version__
from lumen.api.routes import media_router, status_router
from lumen.api.routes.media import ServerContext
from lumen.config import settings
from lumen.services.asset_store import AssetStore

logger = logging.getLogger(__name__)

STATUS_PREFIX = "/_lumen"
CORS_METHODS = ["GET", "HEAD", "OPTIONS"]


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    ctx: ServerContext = app.state.context
    logger.info(
        "Lumen media server v%s serving %s on %s:%s",
        __version__, ctx.root, settings.host, settings.media_port,
    )
    try:
        yield
    finally:
        logger.info("Media server stopped after %d requests", ctx.request_count)


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Set noisy third-party loggers to WARNING
    for noisy in ("httpx", "httpcore", "aiosqlite", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app(assets_dir: str | None = None) -> FastAPI:
    """Build the media server around one asset root."""
    store = AssetStore(assets_dir or settings.assets_dir)

    app = FastAPI(
        title=f"{settings.app_name} media server",
        version=__version__,
        debug=settings.debug,
        lifespan=_lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.context = ServerContext(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_METHODS,
        allow_headers=["Range"],
        expose_headers=["Content-Length", "Content-Range", "Accept-Ranges"],
    )

    # Outermost: counts every request and answers OPTIONS with an empty body
    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        ctx: ServerContext = request.app.state.context
        ctx.count_request()

        if request.method == "OPTIONS":
            return Response(
                status_code=200,
                headers={
                    "Access-Control-Allow-Origin": "*",
                    "Access-Control-Allow-Methods": ", ".join(CORS_METHODS),
                    "Access-Control-Allow-Headers": "Range",
                },
            )
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error serving %s", request.url.path)
            return Response(
                "Internal Server Error", status_code=500,
                headers={"Access-Control-Allow-Origin": "*"},
            )

    app.include_router(status_router, prefix=STATUS_PREFIX)
    app.include_router(media_router)
    return app


def run(assets_dir: str | None = None, **kwargs: Any) -> None:
    import uvicorn

    setup_logging()
    uvicorn.run(
        create_app(assets_dir),
        host=settings.host,
        port=settings.media_port,
        log_level=settings.log_level.lower(),
        **kwargs,
    )


if __name__ == "__main__":
    run()
