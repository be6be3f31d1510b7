"""Background job orchestration for receipt OCR."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from app.core.db import JobStore
from app.core.errors import JobNotFoundError, failure_kind
from app.core.models import ExpenseData, JobStatus, OcrCompletedEvent, OcrResult
from app.core.utils import get_logger, utcnow
from app.parsers.expense_parser import parse_expense
from app.services.event_publisher import EventPublisher
from app.services.file_service import FileService
from app.services.ocr_engine import OcrEngine

logger = get_logger("receipt-ocr.worker")


def build_result_payload(ocr_result: OcrResult, expense: ExpenseData) -> dict[str, Any]:
    """Build the result JSON stored on a completed job."""
    return {
        "rawText": ocr_result.text,
        "confidence": ocr_result.confidence,
        "expenseData": expense.model_dump(mode="json", by_alias=True),
    }


class OcrJobRunner:
    """Drives one OCR job from QUEUED to COMPLETED or FAILED.

    ``process`` never raises: every failure after the job is picked up ends in a
    single FAILED write carrying the failure message. Runs triggered twice for
    the same job do not undo each other, because every status write only
    applies to the states it is allowed to leave.
    """

    def __init__(
        self,
        store: JobStore,
        file_service: FileService,
        ocr_engine: OcrEngine,
        publisher: EventPublisher,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the runner with its shared collaborators."""
        self.store = store
        self.file_service = file_service
        self.ocr_engine = ocr_engine
        self.publisher = publisher
        self.clock = clock

    def process(self, job_id: str) -> None:
        """Run OCR for a job, store the outcome and emit the completion event."""
        logger.info(f"Starting OCR processing for job {job_id}")
        completed = False
        try:
            self.store.mark_processing(job_id)
            job = self.store.get_job(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if JobStatus(job.status).is_terminal:
                logger.warning(f"Job {job_id} is already {job.status}; skipping duplicate run")
                return

            ocr_result = self.perform_ocr(job.file_url)
            logger.info(f"OCR completed with confidence: {ocr_result.confidence}%")

            expense = parse_expense(ocr_result.text, ocr_result.confidence, now=self.clock())
            logger.info(f"Parsed expense data: {expense.model_dump_json(by_alias=True)}")

            payload = build_result_payload(ocr_result, expense)
            if not self.store.mark_completed(job_id, payload, completed_at=self.clock()):
                logger.warning(f"Job {job_id} was finalized by another run; not emitting event")
                return
            completed = True

            self.publisher.publish_ocr_completed(
                OcrCompletedEvent(job_id=job_id, user_id=job.user_id, expense_data=expense, file_url=job.file_url)
            )
            logger.info(f"Job {job_id} completed successfully")
        except Exception as exc:
            logger.exception(f"Job {job_id} failed ({failure_kind(exc)}): {exc}")
            self._mark_failed(job_id, exc, overwrite_completed=completed)

    def perform_ocr(self, file_url: str) -> OcrResult:
        """Download the image and run the OCR engine on it."""
        logger.info(f"Downloading image from: {file_url}")
        image_bytes = self.file_service.get_file(file_url)
        return self.ocr_engine.recognize(image_bytes)

    def _mark_failed(self, job_id: str, exc: Exception, *, overwrite_completed: bool) -> None:
        message = str(exc) or type(exc).__name__
        try:
            updated = self.store.mark_failed(
                job_id, message, completed_at=self.clock(), overwrite_completed=overwrite_completed
            )
        except Exception:
            logger.exception(f"Could not record failure for job {job_id}")
            return
        if not updated:
            logger.warning(f"Job {job_id} was not marked failed: missing or already finalized")
