"""Shared fixtures and fakes for the Receipt OCR tests."""

from pathlib import Path

import pytest

from app.core.db import JobStore, get_engine, init_db
from app.core.models import OcrResult
from app.services.ocr_engine import OcrEngine
from app.workers.job_runner import OcrJobRunner

RECEIPT_TEXT = "Tổng: 120.000đ\nQuán Cafe XYZ\n15/03/2024"


class FakeFileService:
    """Returns fixed image bytes or raises a preset error."""

    def __init__(self, data: bytes = b"fake-image", error: Exception | None = None) -> None:
        self.data = data
        self.error = error
        self.calls: list[str] = []

    def get_file(self, url: str) -> bytes:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.data

    def close(self) -> None:
        pass


class FakeOcrEngine(OcrEngine):
    """Returns a fixed OCR result, optionally waiting on a hook first."""

    def __init__(self, text: str = RECEIPT_TEXT, confidence: float = 87.25, error: Exception | None = None) -> None:
        self.text = text
        self.confidence = confidence
        self.error = error
        self.before_result = None

    def recognize(self, image_bytes: bytes) -> OcrResult:
        if self.before_result is not None:
            self.before_result()
        if self.error is not None:
            raise self.error
        return OcrResult(text=self.text, confidence=self.confidence)


class FakePublisher:
    """Records published events or raises a preset error."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.events = []
        self.closed = False

    def publish_ocr_completed(self, event) -> None:
        if self.error is not None:
            raise self.error
        self.events.append(event)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def store(tmp_path: Path) -> JobStore:
    engine = get_engine(f"sqlite:///{tmp_path / 'jobs.db'}")
    init_db(engine)
    yield JobStore.from_engine(engine)
    engine.dispose()


@pytest.fixture
def file_service() -> FakeFileService:
    return FakeFileService()


@pytest.fixture
def ocr_engine() -> FakeOcrEngine:
    return FakeOcrEngine()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def runner(store, file_service, ocr_engine, publisher) -> OcrJobRunner:
    return OcrJobRunner(store=store, file_service=file_service, ocr_engine=ocr_engine, publisher=publisher)
