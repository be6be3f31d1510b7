"""Pydantic models for the Receipt OCR service.

This module defines the models shared by the worker, the event publisher and the API: the job status enum, the transient OCR result, the parsed expense data, the completion event and the job views returned to callers. Wire names are camelCase; Python attributes stay snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serializes field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobStatus(str, Enum):
    """Lifecycle states of an OCR job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition may leave this state."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
ACTIVE_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.PROCESSING})


class ExpenseCategory(str, Enum):
    """Expense categories recognised by the parser, in priority order."""

    FOOD = "food"
    TRANSPORT = "transport"
    SHOPPING = "shopping"
    HEALTH = "health"
    ENTERTAINMENT = "entertainment"


class OcrResult(BaseModel):
    """Raw output of one OCR engine call."""

    text: str
    confidence: float = Field(ge=0, le=100)


class ExpenseData(CamelModel):
    """Structured expense fields distilled from OCR text."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(ge=0, allow_inf_nan=False)
    description: str = Field(min_length=1)
    spent_at: datetime
    category: ExpenseCategory | None = None
    confidence: float

    @field_serializer("spent_at")
    def serialize_spent_at(self, value: datetime) -> str:
        """Render spentAt with an explicit UTC offset."""
        return value.isoformat()


class OcrCompletedEvent(CamelModel):
    """Event published once per successfully completed job."""

    job_id: str
    user_id: str
    expense_data: ExpenseData
    file_url: str

    def to_message(self) -> dict[str, Any]:
        """Serialize the event for the broker, omitting an unset category."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ScanRequest(CamelModel):
    """Request body for submitting a receipt image."""

    file_url: str = Field(min_length=1, description="URL of the receipt image (http(s):// or s3://)")


class JobView(CamelModel):
    """Public view of an OCR job."""

    id: str
    user_id: str
    status: JobStatus
    file_url: str
    result_json: dict[str, Any] | None = None
    created_at: str
    completed_at: str | None = None


class PageMeta(CamelModel):
    """Pagination metadata for the job history."""

    total: int
    page: int
    limit: int
    total_pages: int
    timestamp: str


class JobHistory(BaseModel):
    """Paginated job history."""

    data: list[JobView]
    meta: PageMeta
