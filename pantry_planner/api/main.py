"""
FastAPI application for Pantry Planner.

Usage:
    # Development server with auto-reload
    uvicorn pantry_planner.api.main:app --reload --host 0.0.0.0 --port 8000

    # Debug mode (verbose logging)
    LOG_LEVEL=DEBUG uvicorn pantry_planner.api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import load_app_config
from ..tracing import init_from_config, shutdown_tracing
from .routes import health, plan


def configure_logging():
    """Configure logging from the ``logging.level`` config setting."""
    log_level = getattr(logging, load_app_config().log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("pantry_planner").setLevel(log_level)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    app_config = load_app_config()
    logger.info("Starting Pantry Planner API server")
    logger.info("=" * 60)
    logger.info("PLANNER CONFIGURATION")
    logger.info("  Backend: %s", app_config.model.backend)
    logger.info("  Model: %s", app_config.model.model_id)
    logger.info("  Max iterations: %d", app_config.agent.max_iterations)
    logger.info("  Repetition threshold: %d", app_config.agent.repetition_threshold)
    logger.info("  Pantry: %s", app_config.agent.pantry_path)
    logger.info("  Recipes: %s", app_config.agent.recipes_path)

    logger.info("-" * 60)
    logger.info("LANGFUSE OBSERVABILITY")
    tracing_client = init_from_config(app_config.langfuse)
    if tracing_client is not None and tracing_client.enabled:
        logger.info("  Status: ENABLED")
    else:
        logger.info("  Status: DISABLED")
        if tracing_client is not None and tracing_client.error:
            logger.info("  Reason: %s", tracing_client.error)
    logger.info("=" * 60)

    yield

    logger.info("Shutting down Pantry Planner API server")
    shutdown_tracing()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Pantry Planner API",
        description="Meal plans that fit the pantry, produced by a tool-calling model.",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(plan.router, tags=["Plan"])

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Log validation errors before returning 400 response."""
        logger.warning(
            "Validation error on %s %s: %s", request.method, request.url.path, exc.errors()
        )
        return JSONResponse(status_code=400, content={"detail": exc.errors()})

    return app


app = create_app()


def run_server():
    """Run the server using uvicorn."""
    import uvicorn

    server = load_app_config().server
    uvicorn.run("pantry_planner.api.main:app", host=server.host, port=server.port)


if __name__ == "__main__":
    run_server()
