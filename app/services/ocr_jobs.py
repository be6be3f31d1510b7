"""Job submission and per-user job queries."""

import math
from collections.abc import Callable
from datetime import datetime

from app.core.db import JobStore, OcrJob
from app.core.errors import AuthorizationError, JobNotFoundError
from app.core.models import JobHistory, JobStatus, JobView, PageMeta
from app.core.utils import get_logger, isoformat_or_none, utcnow

logger = get_logger("receipt-ocr.jobs")


def to_job_view(job: OcrJob) -> JobView:
    """Transform a stored job into its public view."""
    return JobView(
        id=job.id,
        user_id=job.user_id,
        status=JobStatus(job.status),
        file_url=job.file_url,
        result_json=job.result_json,
        created_at=isoformat_or_none(job.created_at),
        completed_at=isoformat_or_none(job.completed_at),
    )


class OcrJobService:
    """Creates OCR jobs and answers status and history queries for their owners."""

    def __init__(
        self, store: JobStore, dispatch: Callable[[str], None], clock: Callable[[], datetime] = utcnow
    ) -> None:
        """Initialize the service with the job store and the dispatcher's schedule function."""
        self.store = store
        self.dispatch = dispatch
        self.clock = clock

    def submit(self, file_url: str, user_id: str) -> JobView:
        """Create a QUEUED job, schedule its processing and return it immediately.

        The returned view is the only thing the caller gets back; completion is
        observed through ``get_job``/``history``. A job that cannot be scheduled
        because the worker pool is shutting down is stored FAILED.
        """
        job = self.store.create_job(user_id=user_id, file_url=file_url, created_at=self.clock())
        try:
            self.dispatch(job.id)
        except RuntimeError as exc:
            logger.error(f"Could not schedule job {job.id}: {exc}")
            self.store.mark_failed(job.id, f"Job could not be scheduled: {exc}", completed_at=self.clock())
            job = self.store.get_job(job.id) or job
        return to_job_view(job)

    def get_job(self, job_id: str, user_id: str) -> JobView:
        """Return a job owned by ``user_id``."""
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.user_id != user_id:
            logger.warning(f"User {user_id} denied access to job {job_id}")
            raise AuthorizationError()
        return to_job_view(job)

    def history(self, user_id: str, status: JobStatus | None = None, page: int = 1, limit: int = 10) -> JobHistory:
        """Return one page of the user's jobs, newest first."""
        jobs, total = self.store.list_jobs(user_id, status=status, offset=(page - 1) * limit, limit=limit)
        return JobHistory(
            data=[to_job_view(job) for job in jobs],
            meta=PageMeta(
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit),
                timestamp=self.clock().isoformat(),
            ),
        )
