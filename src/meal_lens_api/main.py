"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from meal_lens_api.api.routes import food_analysis
from meal_lens_api.core.config import get_settings
from meal_lens_api.core.exceptions import APIError
from meal_lens_api.db.mongo import MongoDB
from meal_lens_api.services.food_analysis import (
    clear_pipeline_cache,
    get_food_analysis_pipeline,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Connects MongoDB (when persistence is enabled) and closes the pipeline's
    HTTP clients on shutdown.
    """
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.api_version}")

    if settings.persistence_enabled:
        logger.info(f"Connecting to MongoDB at {settings.mongo_uri[:20]}...")
        MongoDB.connect(settings.mongo_uri, settings.db_name)

    yield

    logger.info("Shutting down...")
    await get_food_analysis_pipeline().close()
    clear_pipeline_cache()
    MongoDB.close()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        description="Meal photo recognition with USDA nutrition lookup",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle custom API errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "details": exc.details,
            },
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.api_version,
            "mongodb": MongoDB.is_connected(),
            "vision_configured": settings.is_vision_configured,
            "usda_configured": settings.is_usda_configured,
        }

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    app.include_router(food_analysis.router, prefix="/food-analysis", tags=["Food Analysis"])

    return app


app = create_app()
