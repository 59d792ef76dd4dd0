"""
Main FastAPI application creation and configuration.
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..config import get_settings
from ..config.settings import configure_logging
from ..utils.logging import log_event, reset_correlation_id, set_correlation_id
from .api.dependencies import get_server, set_server_instance
from .api.router import get_api_router
from .application_server import ApplicationServer

# Global server instance
server = ApplicationServer()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging(level=server.settings.log_level)
    await server.initialize()
    set_server_instance(server)
    yield
    await server.cleanup()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="ChatJPT API",
        description="Chat sessions and assistant replies per authenticated user",
        version=__version__,
        lifespan=lifespan,
    )

    origins = settings.get_cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        """Tag every request with a correlation id and log its outcome."""
        correlation_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = set_correlation_id(correlation_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            log_event(
                "http_request",
                {
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                },
            )
            response.headers["X-Request-ID"] = correlation_id
            return response
        finally:
            reset_correlation_id(token)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "ok": True,
            "status": "healthy",
            "version": __version__,
            **get_server().health(),
        }

    app.include_router(get_api_router())

    # Frontend last, so API routes take precedence
    if settings.static_dir and settings.static_dir.is_dir():
        app.mount(
            "/",
            StaticFiles(directory=str(settings.static_dir), html=True),
            name="static",
        )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "chatjpt.server.main:create_app",
        host=settings.host,
        port=settings.port,
        factory=True,
    )
