"""FastAPI dependencies for reactorloom.

Shared services live on ``app.state`` and are handed to routes through
FastAPI's Depends() injection system.
"""

import logging

from fastapi import Request

logger = logging.getLogger(__name__)


async def get_migration_engine(request: Request):
    """Get or create MigrationEngine from app state."""
    if getattr(request.app.state, "migration_engine", None) is None:
        from reactorloom.core.migration.engine import MigrationEngine
        request.app.state.migration_engine = MigrationEngine()
    return request.app.state.migration_engine
