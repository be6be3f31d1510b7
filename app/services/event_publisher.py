"""Completion event publishing over a Celery broker."""

from celery import Celery

from app.core.errors import PublishError
from app.core.models import OcrCompletedEvent
from app.core.settings import Settings
from app.core.utils import get_logger

logger = get_logger("receipt-ocr.events")


def create_celery_app(settings: Settings) -> Celery:
    """Build the process-wide Celery app used as the event sink."""
    celery_app = Celery("receipt_ocr", broker=settings.broker_url)
    celery_app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_default_queue=settings.ocr_events_queue,
        task_publish_retry=False,
    )
    celery_app.conf.broker_connection_retry_on_startup = True
    return celery_app


class EventPublisher:
    """Publishes ``ocr.completed`` messages for downstream expense consumers.

    Delivery is fire-and-forget: the message is handed to the broker once, with
    no publish retry, and no result is awaited. Any broker error is raised as
    PublishError.
    """

    def __init__(self, celery_app: Celery, event_name: str = "ocr.completed", queue: str = "ocr_events") -> None:
        """Initialize the publisher with a shared Celery app."""
        self.celery_app = celery_app
        self.event_name = event_name
        self.queue = queue

    @classmethod
    def from_settings(cls, settings: Settings) -> "EventPublisher":
        """Build a publisher and its Celery app from settings."""
        return cls(create_celery_app(settings), settings.ocr_completed_event, settings.ocr_events_queue)

    def publish_ocr_completed(self, event: OcrCompletedEvent) -> None:
        """Send one completion event to the broker."""
        logger.info(f"Emitting {self.event_name} event for job {event.job_id}")
        try:
            self.celery_app.send_task(self.event_name, args=[event.to_message()], queue=self.queue, retry=False)
        except Exception as exc:
            raise PublishError(f"Failed to publish {self.event_name} for job {event.job_id}: {exc}") from exc

    def close(self) -> None:
        """Release broker connections held by the Celery app."""
        self.celery_app.close()
