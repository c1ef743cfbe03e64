"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forge.api.errors import forge_error_handler, value_error_handler
from forge.api.routes import router
from forge.config import Settings, get_settings
from forge.errors import ForgeError
from forge.services import Services


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Create the FastAPI application."""
    settings = settings or get_settings()
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        app.state.services = services or Services(settings)
        await app.state.services.start()
        
        yield
        
        logger.info("Shutting down...")
        await app.state.services.close()
    
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Forge Agent API - plan, execute and commit AI edits to GitHub repositories",
        lifespan=lifespan,
    )
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.add_exception_handler(ForgeError, forge_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.include_router(router, prefix="/api")
    
    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
        }
    
    return app


def run(settings: Settings | None = None) -> None:
    """Serve the API with uvicorn."""
    import uvicorn
    
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
    )


app = create_app()


if __name__ == "__main__":
    run()
