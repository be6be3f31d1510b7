"""Tests for job submission, ownership checks and history pagination."""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.errors import AuthorizationError, JobNotFoundError
from app.core.models import JobStatus
from app.services.ocr_jobs import OcrJobService
from app.workers.dispatcher import JobDispatcher

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def scheduled() -> list[str]:
    return []


@pytest.fixture
def service(store, scheduled) -> OcrJobService:
    return OcrJobService(store, scheduled.append, clock=lambda: NOW)


def test_submit_returns_queued_job_and_schedules_once(service, scheduled) -> None:
    """Submission returns the queued job at once and schedules exactly one task."""
    view = service.submit("https://example.com/r.jpg", "user-1")
    if view.status != JobStatus.QUEUED or view.result_json is not None or view.completed_at is not None:
        msg = f"Unexpected submitted job: {view}"
        raise AssertionError(msg)
    if not view.id:
        msg = "Expected a generated job id"
        raise AssertionError(msg)
    if scheduled != [view.id]:
        msg = f"Expected one scheduled task for {view.id}, got {scheduled}"
        raise AssertionError(msg)
    fetched = service.get_job(view.id, "user-1")
    if fetched != view:
        msg = f"Expected the job to be fetchable immediately, got {fetched}"
        raise AssertionError(msg)


def test_get_job_rejects_other_users(service) -> None:
    """A job owned by user A is not visible to user B, and the error leaks nothing."""
    view = service.submit("https://example.com/secret.jpg", "user-a")
    with pytest.raises(AuthorizationError) as excinfo:
        service.get_job(view.id, "user-b")
    if view.id in str(excinfo.value) or "secret" in str(excinfo.value):
        msg = f"Authorization error leaks job fields: {excinfo.value}"
        raise AssertionError(msg)


def test_get_job_not_found(service) -> None:
    """Unknown ids raise JobNotFoundError."""
    with pytest.raises(JobNotFoundError):
        service.get_job("missing", "user-1")


def test_history_pagination(store, service) -> None:
    """Page 2 of 25 jobs holds ranks 11-20 by descending creation time."""
    ids = [
        store.create_job("user-1", f"https://example.com/{i}.jpg", created_at=NOW + timedelta(minutes=i)).id
        for i in range(25)
    ]
    store.create_job("user-2", "https://example.com/other.jpg", created_at=NOW)

    page = service.history("user-1", page=2, limit=10)
    newest_first = list(reversed(ids))
    if [job.id for job in page.data] != newest_first[10:20]:
        msg = "Expected jobs ranked 11-20 by creation time"
        raise AssertionError(msg)
    meta = page.meta
    if (meta.total, meta.page, meta.limit, meta.total_pages) != (25, 2, 10, 3):
        msg = f"Unexpected pagination metadata: {meta}"
        raise AssertionError(msg)
    if meta.timestamp != NOW.isoformat():
        msg = f"Expected the service clock timestamp, got {meta.timestamp}"
        raise AssertionError(msg)


def test_history_status_filter_and_empty_page(store, service) -> None:
    """The status filter applies before pagination and an empty result has zero pages."""
    job = store.create_job("user-1", "https://example.com/a.jpg", created_at=NOW)
    store.mark_processing(job.id)
    store.mark_failed(job.id, "boom", NOW)
    store.create_job("user-1", "https://example.com/b.jpg", created_at=NOW)

    failed = service.history("user-1", status=JobStatus.FAILED)
    if [view.id for view in failed.data] != [job.id] or failed.data[0].completed_at is None:
        msg = f"Expected only the failed job with completedAt, got {failed.data}"
        raise AssertionError(msg)
    empty = service.history("user-3")
    if empty.data or empty.meta.total_pages != 0:
        msg = f"Expected an empty history, got {empty}"
        raise AssertionError(msg)


def test_submit_after_worker_shutdown_stores_failed_job(store) -> None:
    """A submission the stopped pool cannot take ends FAILED instead of staying QUEUED."""
    dispatcher = JobDispatcher(lambda job_id: None, max_workers=1)
    dispatcher.shutdown()
    service = OcrJobService(store, dispatcher.dispatch, clock=lambda: NOW)

    view = service.submit("https://example.com/late.jpg", "user-1")
    if view.status != JobStatus.FAILED or view.completed_at is None:
        msg = f"Expected a failed job with completedAt, got {view}"
        raise AssertionError(msg)
    stored = store.get_job(view.id)
    if stored.status != JobStatus.FAILED.value or "could not be scheduled" not in stored.error_message:
        msg = f"Unexpected stored job: {stored.status}, {stored.error_message!r}"
        raise AssertionError(msg)
