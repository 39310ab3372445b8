"""Media CDN storage service using an S3-compatible API"""
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from videotube.core.config import settings
from videotube.core.metrics import media_uploads_counter

logger = logging.getLogger("media")


def _encode_object_key_for_url(object_key: str) -> str:
    """URL-encode each path segment of an object key, keeping the slashes"""
    if not object_key:
        return ""
    return '/'.join(quote(segment, safe='') for segment in object_key.split('/'))


def build_object_key(folder: str, filename: str) -> str:
    """Unique object key under `folder`, keeping the original extension"""
    suffix = Path(filename or "").suffix.lower()
    return f"{folder.strip('/')}/{uuid.uuid4().hex}{suffix}"


class MediaStorage:
    """Service for pushing media files to the CDN bucket"""

    def __init__(self):
        """Initialize storage client with configuration from settings"""
        if not settings.STORAGE_ACCESS_KEY_ID or not settings.STORAGE_SECRET_ACCESS_KEY:
            raise ValueError("Storage configuration is missing. Set STORAGE_ACCESS_KEY_ID and STORAGE_SECRET_ACCESS_KEY environment variables.")

        if not settings.STORAGE_BUCKET_NAME:
            raise ValueError("STORAGE_BUCKET_NAME is not set. Set STORAGE_BUCKET_NAME environment variable.")

        self.bucket = settings.STORAGE_BUCKET_NAME
        self.public_base_url = settings.STORAGE_PUBLIC_URL.rstrip('/')

        self.s3_client = boto3.client(
            's3',
            endpoint_url=settings.STORAGE_ENDPOINT_URL or None,
            aws_access_key_id=settings.STORAGE_ACCESS_KEY_ID,
            aws_secret_access_key=settings.STORAGE_SECRET_ACCESS_KEY,
            region_name=settings.STORAGE_REGION,
            config=Config(signature_version='s3v4')
        )
        logger.info(f"MediaStorage initialized for bucket: {self.bucket}")

    def public_url(self, object_key: str) -> str:
        """Public CDN URL for an object key"""
        if not object_key:
            raise ValueError("object_key cannot be empty")
        encoded = _encode_object_key_for_url(object_key.lstrip('/'))
        if self.public_base_url:
            return f"{self.public_base_url}/{encoded}"
        return f"{settings.STORAGE_ENDPOINT_URL.rstrip('/')}/{self.bucket}/{encoded}"

    def upload_file(self, file_path: Path, folder: str, content_type: Optional[str] = None) -> Dict[str, str]:
        """Upload a staged file to the CDN and remove the local copy

        Args:
            file_path: Local staged file
            folder: Key prefix in the bucket (e.g. "videos", "avatars")
            content_type: MIME type stored with the object (guessed when omitted)

        Returns:
            {"url": public URL, "public_id": object key}

        Raises:
            RuntimeError: If the upload fails
        """
        file_path = Path(file_path)
        object_key = build_object_key(folder, file_path.name)
        content_type = content_type or mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"

        try:
            self.s3_client.upload_file(
                str(file_path),
                self.bucket,
                object_key,
                ExtraArgs={"ContentType": content_type}
            )
            media_uploads_counter.labels(kind=folder, status="success").inc()
            logger.info(f"Uploaded {file_path.name} to CDN as {object_key}")
            return {"url": self.public_url(object_key), "public_id": object_key}
        except (ClientError, BotoCoreError) as e:
            media_uploads_counter.labels(kind=folder, status="failed").inc()
            logger.error(f"Failed to upload {file_path} to CDN as {object_key}: {e}", exc_info=True)
            raise RuntimeError(f"Failed to upload media: {e}") from e
        finally:
            # Staged files never outlive the upload attempt
            file_path.unlink(missing_ok=True)

    def delete_file(self, public_id: str) -> bool:
        """Delete an object from the CDN

        Returns:
            True if deletion succeeded or object doesn't exist, False on error
        """
        if not public_id:
            return False

        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=public_id)
            logger.info(f"Deleted {public_id} from CDN")
            return True
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code == 'NoSuchKey':
                logger.debug(f"Object already deleted or doesn't exist: {public_id}")
                return True
            logger.error(f"Failed to delete {public_id} from CDN: {e}", exc_info=True)
            return False
        except BotoCoreError as e:
            logger.error(f"Unexpected error deleting {public_id} from CDN: {e}", exc_info=True)
            return False


# Global storage instance (lazy initialization)
_media_storage: Optional[MediaStorage] = None


def get_media_storage() -> MediaStorage:
    """Get or create the MediaStorage instance (lazy initialization)

    Raises:
        ValueError: If storage configuration is missing
    """
    global _media_storage
    if _media_storage is None:
        _media_storage = MediaStorage()
    return _media_storage
