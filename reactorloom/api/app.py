"""FastAPI application factory for reactorloom.

Creates the FastAPI app with the migration routes registered.
"""

import logging

from fastapi import FastAPI

from .. import __version__

logger = logging.getLogger(__name__)


def create_app(migration_engine=None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        migration_engine: MigrationEngine instance (optional; created on
            first request when omitted)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="reactorloom API",
        description="Reactor doAfterSuccessOrError to tap migration service",
        version=__version__,
    )

    # Store shared dependencies on app state
    app.state.migration_engine = migration_engine

    # Register routers
    from .routes.migration import router as migration_router

    app.include_router(migration_router, prefix="/api")

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "service": "reactorloom"}

    logger.info("FastAPI app created with all routes registered")
    return app
