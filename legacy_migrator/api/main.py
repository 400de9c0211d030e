"""FastAPI application entry point."""

from typing import Optional

from fastapi import FastAPI

from .routes import migrations
from ..registry import MigrationRegistry


def create_app(registry: Optional[MigrationRegistry] = None) -> FastAPI:
    """
    Build the HTTP driver around a migration registry.

    Args:
        registry: Registered migrations to expose (empty if omitted)
    """
    app = FastAPI(
        title="Legacy Migrator API",
        description="Run record migrations from a legacy database",
        version="0.1.0",
    )
    app.state.registry = registry if registry is not None else MigrationRegistry()

    # Include routers
    app.include_router(migrations.router, prefix="/api/migrations", tags=["migrations"])

    @app.get("/api/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app
