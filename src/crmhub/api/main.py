"""FastAPI application entry point.

Main application configuration, middleware, and startup lifecycle.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from crmhub.core.config import get_settings
from crmhub.core.supabase import close_supabase_client
from crmhub.models.database import init_db, close_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Initialize database connection pool

    Shutdown:
    - Close database connections
    - Drop the Supabase client
    """
    settings = get_settings()

    logger.info("Initializing database connection...")
    init_db(
        settings.async_database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Database initialized")

    if not settings.has_search_config():
        logger.warning("Google Custom Search not configured; external search disabled")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()
    close_supabase_client()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()
    is_production = settings.is_production

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="CRM Hub API",
        description="Company catalogue, personal and team repositories, projects and reviews",
        version=settings.app_version,
        docs_url="/api/docs" if not is_production else None,
        redoc_url="/api/redoc" if not is_production else None,
        openapi_url="/api/openapi.json" if not is_production else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add compression for responses > 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Import and register routers
    from crmhub.api.routers import companies, health, licenses, profiles, projects, teams

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(companies.router, prefix="/api/companies", tags=["companies"])
    app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
    app.include_router(teams.router, prefix="/api/teams", tags=["teams"])
    app.include_router(licenses.router, prefix="/api/licenses", tags=["licenses"])
    app.include_router(profiles.router, prefix="/api/profiles", tags=["profiles"])

    # Register exception handlers
    from crmhub.api.exceptions import register_exception_handlers
    register_exception_handlers(app)

    return app


# Application instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "crmhub.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        workers=settings.workers if settings.is_production else 1,
    )
