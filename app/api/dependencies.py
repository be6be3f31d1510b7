"""FastAPI dependencies for DI (settings, shared services, caller identity).

This module builds the process-wide service container once at start-up (database engine, job store, OCR engine, image fetcher, event publisher, dispatcher) and exposes request-scoped accessors for the API endpoints.
"""

from dataclasses import dataclass

from fastapi import Header, HTTPException, Request
from sqlalchemy.engine import Engine

from app.core.db import JobStore, get_engine, init_db
from app.core.settings import Settings
from app.services.event_publisher import EventPublisher
from app.services.file_service import FileService
from app.services.ocr_engine import TesseractOcrEngine
from app.services.ocr_jobs import OcrJobService
from app.services.s3_file_service import S3FileService
from app.workers.dispatcher import JobDispatcher
from app.workers.job_runner import OcrJobRunner


@dataclass
class ServiceContainer:
    """Long-lived handles shared by every request and every worker thread."""

    job_service: OcrJobService
    dispatcher: JobDispatcher
    publisher: EventPublisher
    file_service: FileService
    engine: Engine | None = None

    def close(self) -> None:
        """Drain in-flight jobs, then release broker, HTTP and database resources."""
        self.dispatcher.shutdown(wait=True)
        self.publisher.close()
        self.file_service.close()
        if self.engine is not None:
            self.engine.dispose()


def build_container(settings: Settings) -> ServiceContainer:
    """Acquire all shared handles from settings."""
    engine = get_engine(settings.database_url)
    init_db(engine)
    store = JobStore.from_engine(engine)
    file_service = FileService(
        s3_service=S3FileService(settings),
        timeout=settings.image_fetch_timeout,
        max_bytes=settings.image_max_bytes,
    )
    publisher = EventPublisher.from_settings(settings)
    runner = OcrJobRunner(
        store=store,
        file_service=file_service,
        ocr_engine=TesseractOcrEngine(settings.ocr_languages, settings.tesseract_cmd),
        publisher=publisher,
    )
    dispatcher = JobDispatcher(runner.process, max_workers=settings.worker_max_workers)
    return ServiceContainer(
        job_service=OcrJobService(store, dispatcher.dispatch),
        dispatcher=dispatcher,
        publisher=publisher,
        file_service=file_service,
        engine=engine,
    )


def get_job_service(request: Request) -> OcrJobService:
    """Provide the shared OcrJobService for dependency injection."""
    return request.app.state.container.job_service


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the caller identity forwarded by the authenticating gateway."""
    if not x_user_id:
        raise HTTPException(401, "Missing X-User-Id header")
    return x_user_id

