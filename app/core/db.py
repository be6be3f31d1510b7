"""DB model and job store for the Receipt OCR service."""

import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, String, Text, create_engine, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.errors import PersistenceError
from app.core.models import ACTIVE_STATUSES, JobStatus
from app.core.utils import get_logger, utcnow

Base = declarative_base()

logger = get_logger("receipt-ocr.store")


class OcrJob(Base):
    """One receipt image tracked from submission to a terminal state."""

    __tablename__ = "ocr_jobs"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    file_url = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, index=True, default=JobStatus.QUEUED.value)
    result_json = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)


def get_engine(url: str) -> Engine:
    """Create a SQLAlchemy engine for the configured database URL."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """Create the job tables if they do not exist."""
    Base.metadata.create_all(engine)


def _status_values(statuses: Iterable[JobStatus]) -> list[str]:
    return [status.value for status in statuses]


class JobStore:
    """Durable keyed record of OCR jobs backed by SQLAlchemy.

    Every method runs in its own short-lived session, so one store can be shared
    by all worker threads. Status writes are conditional updates: they return
    whether a row actually changed so callers can tell a lost race from success.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize the store with a session factory bound to an engine."""
        self.Session = session_factory

    @classmethod
    def from_engine(cls, engine: Engine) -> "JobStore":
        """Build a store on top of an existing engine."""
        return cls(sessionmaker(bind=engine, autoflush=False, expire_on_commit=False))

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"Job store operation failed: {exc}") from exc
        finally:
            session.close()

    def create_job(self, user_id: str, file_url: str, created_at: datetime | None = None) -> OcrJob:
        """Insert a new QUEUED job and return it."""
        job = OcrJob(
            id=str(uuid.uuid4()),
            user_id=user_id,
            file_url=file_url,
            status=JobStatus.QUEUED.value,
            created_at=created_at or utcnow(),
        )
        with self._session() as session:
            session.add(job)
        logger.info(f"Created OCR job {job.id} for user {user_id}")
        return job

    def get_job(self, job_id: str) -> OcrJob | None:
        """Return the job with the given id, or None."""
        with self._session() as session:
            return session.get(OcrJob, job_id)

    def _transition(
        self, job_id: str, allowed_from: Iterable[JobStatus], values: dict[str, Any]
    ) -> bool:
        stmt = (
            update(OcrJob)
            .where(OcrJob.id == job_id, OcrJob.status.in_(_status_values(allowed_from)))
            .values(**values)
        )
        with self._session() as session:
            changed = session.execute(stmt).rowcount > 0
        return changed

    def mark_processing(self, job_id: str) -> bool:
        """Move a non-terminal job to PROCESSING."""
        return self._transition(job_id, ACTIVE_STATUSES, {"status": JobStatus.PROCESSING.value})

    def mark_completed(self, job_id: str, result_json: dict[str, Any], completed_at: datetime) -> bool:
        """Store the result of a PROCESSING job and make it COMPLETED."""
        return self._transition(
            job_id,
            {JobStatus.PROCESSING},
            {
                "status": JobStatus.COMPLETED.value,
                "result_json": result_json,
                "completed_at": completed_at,
            },
        )

    def mark_failed(
        self, job_id: str, error_message: str, completed_at: datetime, *, overwrite_completed: bool = False
    ) -> bool:
        """Make a non-terminal job FAILED.

        With ``overwrite_completed`` a COMPLETED job is also overwritten; the
        worker uses it only for the result it wrote itself in the same run.
        """
        allowed = set(ACTIVE_STATUSES)
        if overwrite_completed:
            allowed.add(JobStatus.COMPLETED)
        return self._transition(
            job_id,
            allowed,
            {
                "status": JobStatus.FAILED.value,
                "error_message": error_message,
                "completed_at": completed_at,
            },
        )

    def list_jobs(
        self, user_id: str, status: JobStatus | None = None, offset: int = 0, limit: int = 10
    ) -> tuple[list[OcrJob], int]:
        """Return one page of a user's jobs, newest first, and the total count."""
        conditions = [OcrJob.user_id == user_id]
        if status is not None:
            conditions.append(OcrJob.status == status.value)
        page_stmt = (
            select(OcrJob)
            .where(*conditions)
            .order_by(OcrJob.created_at.desc(), OcrJob.id.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(OcrJob).where(*conditions)
        with self._session() as session:
            jobs = list(session.scalars(page_stmt))
            total = session.scalar(count_stmt) or 0
        return jobs, total
