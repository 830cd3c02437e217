from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockroom.api.v1.router import router as api_v1_router
from stockroom.config.settings import get_settings
from stockroom.core.logging import get_logger, setup_logging
from stockroom.core.middleware import register_exception_handlers, register_middlewares
from stockroom.db.init_db import init_db
from stockroom.db.session import dispose_engine, get_engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # Schema creation is for development only; production schemas are managed outside the app
    if not settings.is_production():
        await init_db(get_engine())
    logger.info("Application started", extra={"environment": settings.ENVIRONMENT})
    yield
    await dispose_engine()
    logger.info("Application stopped")


def create_app() -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures logging, title, version and debug mode from Settings.
    - Registers CORS, core middleware, and exception handlers.
    - Includes the versioned API router under ``API_PREFIX``.
    """
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    allow_all = not settings.CORS_ORIGINS or settings.CORS_ORIGINS == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.CORS_ORIGINS,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Link", "X-Request-ID", "X-Process-Time"],
    )

    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Health"], name="health")
    async def health() -> dict:
        return {"name": settings.APP_NAME, "version": settings.API_VERSION, "status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("stockroom.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
