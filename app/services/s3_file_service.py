"""S3FileService provides read access to receipt images stored in S3."""

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.errors import ExternalServiceError
from app.core.settings import Settings, get_settings


class S3FileService:
    """Service for S3 file operations used by the image fetcher."""

    def __init__(self, settings: Settings | None = None, client: object | None = None) -> None:
        """Initialize the S3 client from settings unless one is given."""
        settings = settings or get_settings()
        self.s3 = client or boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
        )
        self.bucket = settings.s3_bucket

    def download_fileobj(self, key: str, bucket: str | None = None) -> bytes:
        """Download an object by key, from the default bucket unless one is given."""
        try:
            obj = self.s3.get_object(Bucket=bucket or self.bucket, Key=str(key))
            return obj["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise ExternalServiceError(f"Failed to download s3://{bucket or self.bucket}/{key}: {exc}") from exc

