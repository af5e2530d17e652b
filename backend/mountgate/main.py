"""mountgate FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mountgate import __version__
from mountgate.config import settings
from mountgate.database import async_session, init_db
from mountgate.exceptions import MountGateError
from mountgate.services import init_services, shutdown_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    _setup_logging()

    await init_db()
    await init_services(async_session)
    logger.info("mountgate v%s started — listening on %s:%s", __version__, settings.host, settings.port)

    try:
        yield
    finally:
        await shutdown_services()
        logger.info("mountgate shutting down")


def _setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for noisy in ("aiosqlite", "asyncssh", "asyncssh.sftp"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MountGateError)
    async def mountgate_error_handler(request: Request, exc: MountGateError):
        """Typed gateway failures keep the remote text and the machine."""
        logger.warning(
            "%s %s failed on %s: %s",
            request.method, request.url.path, exc.machine or "-", exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(TimeoutError)
    async def timeout_handler(request: Request, exc: TimeoutError):
        logger.warning("%s %s timed out", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            content={"detail": "Remote operation timed out"},
        )


def create_app() -> FastAPI:
    """Application factory."""
    from mountgate.api.routes import api_router

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        debug=settings.debug,
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()


def run(**kwargs: Any) -> None:
    import uvicorn

    uvicorn.run(
        "mountgate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        **kwargs,
    )


if __name__ == "__main__":
    run()
