"""Fire-and-forget dispatch of OCR jobs onto a process-wide thread pool."""

import concurrent.futures
from collections.abc import Callable

from app.core.utils import get_logger

logger = get_logger("receipt-ocr.dispatcher")


class JobDispatcher:
    """Schedules ``process(job_id)`` calls without handing back a completion handle.

    Callers observe progress only by querying the job store. The pool is created
    once at start-up and drained by ``shutdown``.
    """

    def __init__(self, process: Callable[[str], None], max_workers: int = 4) -> None:
        """Initialize the dispatcher around the worker's process function."""
        self._process = process
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ocr-worker"
        )

    def dispatch(self, job_id: str) -> None:
        """Schedule one asynchronous processing task for the job."""
        logger.info(f"Emitting job {job_id} to processing queue")
        future = self._executor.submit(self._process, job_id)
        future.add_done_callback(lambda done: self._log_failure(job_id, done))

    @staticmethod
    def _log_failure(job_id: str, future: concurrent.futures.Future) -> None:
        if future.cancelled():
            logger.warning(f"Processing of job {job_id} was cancelled before it started")
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"Failed to process job {job_id}: {exc}", exc_info=exc)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and, by default, wait for in-flight ones."""
        self._executor.shutdown(wait=wait)
