"""Image download for OCR jobs.

FileService resolves a job's ``fileUrl`` to image bytes: ``http(s)://`` URLs are
streamed with httpx under one deadline and one byte cap for the whole download,
``s3://bucket/key`` URLs are read through S3FileService.
"""

import time
from collections.abc import Callable
from urllib.parse import urlparse

import httpx

from app.core.errors import ExternalServiceError
from app.core.utils import get_logger

from .s3_file_service import S3FileService

logger = get_logger("receipt-ocr.files")

DEFAULT_TIMEOUT_SECONDS = 30.0


class FileService:
    """Service that downloads receipt images from HTTP or S3."""

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        s3_service: S3FileService | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_bytes: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize FileService with a shared HTTP client and optional S3 backend."""
        self.http = http_client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.s3 = s3_service
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.clock = clock

    def get_file(self, url: str) -> bytes:
        """Download the image at ``url``, raising ExternalServiceError on any failure."""
        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            data = self._get_http(url)
        elif parsed.scheme == "s3":
            data = self._get_s3(parsed.netloc, parsed.path.lstrip("/"))
            self._check_size(url, len(data))
        else:
            raise ExternalServiceError(f"Unsupported image URL scheme: {url!r}")
        logger.info(f"Downloaded {len(data)} bytes from {url}")
        return data

    def _get_http(self, url: str) -> bytes:
        deadline = self.clock() + self.timeout
        chunks: list[bytes] = []
        received = 0
        try:
            with self.http.stream("GET", url, timeout=self.timeout) as response:
                response.raise_for_status()
                declared = response.headers.get("content-length")
                if declared and declared.isdigit():
                    self._check_size(url, int(declared))
                for chunk in response.iter_bytes():
                    received += len(chunk)
                    self._check_size(url, received)
                    if self.clock() > deadline:
                        raise ExternalServiceError(f"Timed out after {self.timeout:g}s downloading {url}")
                    chunks.append(chunk)
        except httpx.TimeoutException as exc:
            raise ExternalServiceError(f"Timed out after {self.timeout:g}s downloading {url}") from exc
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(f"Download of {url} failed with HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Download of {url} failed: {exc}") from exc
        return b"".join(chunks)

    def _check_size(self, url: str, size: int) -> None:
        if self.max_bytes is not None and size > self.max_bytes:
            raise ExternalServiceError(f"Image at {url} exceeds {self.max_bytes} bytes")

    def _get_s3(self, bucket: str, key: str) -> bytes:
        if self.s3 is None:
            raise ExternalServiceError("S3 image URLs are not configured")
        if not key:
            raise ExternalServiceError(f"S3 URL s3://{bucket}/ has no object key")
        return self.s3.download_fileobj(key, bucket=bucket or None)

    def close(self) -> None:
        """Release the HTTP connection pool."""
        self.http.close()
