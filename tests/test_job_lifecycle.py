"""Integration test for the job lifecycle: submit, poll status, read result."""

import time

from fastapi.testclient import TestClient

from app.api.dependencies import ServiceContainer
from app.core.errors import ExternalServiceError
from app.main import create_app
from app.services.ocr_jobs import OcrJobService
from app.workers.dispatcher import JobDispatcher
from app.workers.job_runner import OcrJobRunner
from conftest import FakeFileService, FakeOcrEngine, FakePublisher

HTTP_200_OK = 200
HTTP_202_ACCEPTED = 202
FILE_URL = "https://cdn.example.com/receipts/lifecycle.jpg"


def build_client(store, ocr_engine, publisher) -> tuple[TestClient, JobDispatcher]:
    file_service = FakeFileService()
    runner = OcrJobRunner(store=store, file_service=file_service, ocr_engine=ocr_engine, publisher=publisher)
    dispatcher = JobDispatcher(runner.process, max_workers=2)
    container = ServiceContainer(
        job_service=OcrJobService(store, dispatcher.dispatch),
        dispatcher=dispatcher,
        publisher=publisher,
        file_service=file_service,
    )
    return TestClient(create_app(container)), dispatcher


def poll_until_terminal(client: TestClient, job_id: str) -> dict:
    for _ in range(50):
        status_resp = client.get(f"/ocrs/{job_id}", headers={"X-User-Id": "user-1"})
        if status_resp.status_code != HTTP_200_OK:
            msg = f"Expected status {HTTP_200_OK}, got {status_resp.status_code}"
            raise AssertionError(msg)
        job = status_resp.json()
        if job["status"] in ("completed", "failed"):
            return job
        time.sleep(0.1)
    msg = f"Job {job_id} did not finish, last status {job['status']}"
    raise AssertionError(msg)


def test_job_lifecycle(store) -> None:
    """Test the full job lifecycle: submit, poll status, and read the parsed expense."""
    publisher = FakePublisher()
    client, dispatcher = build_client(store, FakeOcrEngine(), publisher)
    with client:
        response = client.post("/ocrs/scan", json={"fileUrl": FILE_URL}, headers={"X-User-Id": "user-1"})
        if response.status_code != HTTP_202_ACCEPTED:
            msg = f"Expected status {HTTP_202_ACCEPTED}, got {response.status_code}"
            raise AssertionError(msg)
        job_id = response.json()["id"]

        job = poll_until_terminal(client, job_id)
    dispatcher.shutdown()

    if job["status"] != "completed":
        msg = f"Expected status 'completed', got '{job['status']}'"
        raise AssertionError(msg)
    if job["completedAt"] is None:
        msg = "Expected completedAt on a completed job"
        raise AssertionError(msg)
    expense = job["resultJson"]["expenseData"]
    if (expense["amount"], expense["category"]) != (120000.0, "food"):
        msg = f"Unexpected expense data: {expense}"
        raise AssertionError(msg)
    if [event.job_id for event in publisher.events] != [job_id]:
        msg = f"Expected one event for {job_id}, got {publisher.events}"
        raise AssertionError(msg)


def test_failed_job_lifecycle(store) -> None:
    """A failing OCR engine ends the job FAILED, observable through the API."""
    publisher = FakePublisher()
    engine = FakeOcrEngine(error=ExternalServiceError("Failed to perform OCR: bad image"))
    client, dispatcher = build_client(store, engine, publisher)
    with client:
        job_id = client.post("/ocrs/scan", json={"fileUrl": FILE_URL}, headers={"X-User-Id": "user-1"}).json()["id"]
        job = poll_until_terminal(client, job_id)
    dispatcher.shutdown()

    if job["status"] != "failed" or job["completedAt"] is None or job["resultJson"] is not None:
        msg = f"Unexpected failed job view: {job}"
        raise AssertionError(msg)
    if publisher.events:
        msg = "Expected no event for a failed job"
        raise AssertionError(msg)
