"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import health, jobs
from .core import JobRegistry, PromptCatalog
from .providers import GeminiClient
from .utils.config import Config, load_config
from .utils.errors import JobNotFoundError
from .utils.logger import get_logger, set_log_level

logger = get_logger(__name__)


def create_app(
    config: Optional[Config] = None,
    backend_factory: Optional[Callable] = None,
) -> FastAPI:
    """
    Build the application.
    
    Args:
        config: Preloaded configuration; loaded from disk on startup when None
        backend_factory: Callable taking an API key and returning an async
            context-managed ImageBackend; defaults to GeminiClient
    """
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up...")
        
        active_config = config or load_config()
        set_log_level(active_config.log_level)
        
        app.state.config = active_config
        app.state.catalog = PromptCatalog.from_config(active_config)
        app.state.registry = JobRegistry(ttl_seconds=active_config.job_ttl_seconds)
        app.state.backend_factory = backend_factory or (
            lambda api_key: GeminiClient.from_config(api_key, active_config)
        )
        
        logger.info(
            "Application startup complete",
            extra={"prompts": len(app.state.catalog), "environment": active_config.app_env}
        )
        
        yield
        
        logger.info("Application shutdown complete")
    
    app = FastAPI(
        title="Transform Pack",
        description="Generates a categorized pack of images from reference photos",
        version=__version__,
        lifespan=lifespan,
    )
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    @app.exception_handler(JobNotFoundError)
    async def job_not_found_handler(request: Request, exc: JobNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})
    
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
    
    return app


app = create_app()
