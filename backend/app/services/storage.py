"""MinIO storage for complaint attachments."""
import io
import logging
import re
import uuid
from datetime import timedelta

from minio import Minio
from minio.error import S3Error

from app.core.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

_client: Minio | None = None


def get_client() -> Minio:
    global _client
    if _client is None:
        _client = Minio(
            endpoint=settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_SECURE,
        )
    return _client


def ensure_bucket(bucket: str = settings.MINIO_BUCKET_NAME) -> None:
    """Create the attachments bucket if missing. Called on startup."""
    client = get_client()
    try:
        if not client.bucket_exists(bucket):
            client.make_bucket(bucket)
            logger.info("Created MinIO bucket: %s", bucket)
    except S3Error as exc:
        logger.error("Failed to ensure MinIO bucket %s: %s", bucket, exc)
        raise


def attachment_object_name(complaint_id: uuid.UUID, file_name: str) -> str:
    """complaints/<complaint_id>/<random>-<sanitised name>"""
    safe = _UNSAFE_CHARS.sub("_", file_name).strip("._") or "file"
    return f"complaints/{complaint_id}/{uuid.uuid4().hex[:8]}-{safe[:120]}"


def upload_bytes(object_name: str, data: bytes, content_type: str, bucket: str = settings.MINIO_BUCKET_NAME) -> str:
    get_client().put_object(
        bucket_name=bucket,
        object_name=object_name,
        data=io.BytesIO(data),
        length=len(data),
        content_type=content_type,
    )
    logger.info("Uploaded %s/%s (%d bytes)", bucket, object_name, len(data))
    return object_name


def get_presigned_url(object_name: str, expires_seconds: int = 3600, bucket: str = settings.MINIO_BUCKET_NAME) -> str:
    """Return a pre-signed GET URL valid for `expires_seconds`."""
    return get_client().presigned_get_object(
        bucket_name=bucket,
        object_name=object_name,
        expires=timedelta(seconds=expires_seconds),
    )


def delete_object(object_name: str, bucket: str = settings.MINIO_BUCKET_NAME) -> None:
    get_client().remove_object(bucket_name=bucket, object_name=object_name)
    logger.info("Deleted %s/%s", bucket, object_name)
