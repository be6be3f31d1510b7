"""Main entrypoint and application factory for the Receipt OCR API.

This module configures logging, builds the shared services in the application lifespan, maps service errors to HTTP responses, and exposes the Scalar API reference endpoint. It also includes the main entrypoint for running the app with Uvicorn.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from scalar_fastapi import get_scalar_api_reference

from app.api.dependencies import ServiceContainer, build_container
from app.api.routes import router
from app.core.errors import AuthorizationError, JobNotFoundError, PersistenceError
from app.core.settings import get_settings
from app.core.utils import LOG_FORMAT, ensure_dir, get_logger


# --- Logging Setup ---
def setup_logging() -> None:
    """Configure logging to file and console for the receipt-ocr logger tree."""
    settings = get_settings()
    ensure_dir(Path(settings.log_file).parent)
    logger = get_logger("receipt-ocr")
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)


setup_logging()
logger = get_logger("receipt-ocr.app")


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Build the FastAPI app, optionally around a pre-built service container."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Acquire the shared services at start-up and release them at shutdown."""
        owned = container is None
        app.state.container = container or build_container(get_settings())
        logger.info("OCR services started")
        try:
            yield
        finally:
            if owned:
                app.state.container.close()
                logger.info("OCR services stopped")

    app = FastAPI(
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        title="Receipt OCR API",
        description="""
    The Receipt OCR API turns receipt images into structured expense data in the background.

    **Endpoints:**
    - `POST /ocrs/scan`: Submit a receipt image URL. Returns the queued job.
    - `GET /ocrs/{job_id}`: Check an OCR job and read its result.
    - `GET /ocrs/history`: List your OCR jobs.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
        version="1.0.0",
    )
    app.include_router(router)

    @app.exception_handler(JobNotFoundError)
    async def not_found_handler(_: Request, exc: JobNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(AuthorizationError)
    async def forbidden_handler(_: Request, exc: AuthorizationError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_handler(_: Request, exc: PersistenceError) -> JSONResponse:
        logger.error(f"Job store error: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Job store unavailable"})

    @app.get("/scalar", include_in_schema=False)
    async def scalar_docs() -> HTMLResponse:
        """Return Scalar API reference."""
        return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.server_host, port=settings.server_port, reload=True)
