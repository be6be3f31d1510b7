"""Core package: provides models, errors, the job store, settings, and shared utilities."""

from .db import JobStore  # noqa: F401
from .errors import OcrServiceError  # noqa: F401
from .models import ExpenseData, JobStatus  # noqa: F401
from .settings import Settings  # noqa: F401
from .utils import get_logger  # noqa: F401
