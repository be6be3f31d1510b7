"""Error taxonomy for OCR job processing and job queries.

Every error carries a ``kind`` tag so the worker can log which collaborator
failed before collapsing the failure into a single FAILED transition.
"""


class OcrServiceError(Exception):
    """Base class for all service errors."""

    kind = "unexpected"


class JobNotFoundError(OcrServiceError):
    """The referenced OCR job does not exist."""

    kind = "not_found"

    def __init__(self, job_id: str) -> None:
        """Build the error for a missing job id."""
        super().__init__(f"OCR job with ID {job_id} not found")
        self.job_id = job_id


class ExternalServiceError(OcrServiceError):
    """Image download or OCR engine invocation failed."""

    kind = "external_service"


class PersistenceError(OcrServiceError):
    """The job store rejected a read or write."""

    kind = "persistence"


class PublishError(OcrServiceError):
    """The event sink rejected the completion event."""

    kind = "publish"


class AuthorizationError(OcrServiceError):
    """The caller does not own the requested job."""

    kind = "authorization"

    def __init__(self) -> None:
        """Build the error with a message that leaks no job details."""
        super().__init__("You do not have access to this OCR job")


def failure_kind(exc: BaseException) -> str:
    """Return the taxonomy tag for any exception raised during processing."""
    return getattr(exc, "kind", OcrServiceError.kind)
