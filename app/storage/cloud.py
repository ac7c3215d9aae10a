import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import unquote, urlparse

import requests
from google.api_core import exceptions as gcloud_exceptions
from google.auth import exceptions as auth_exceptions

from app.config.settings import SIGNED_URL_DAYS
from app.errors import PhotoStorageError, StorageUnavailableError
from app.storage.base import DeleteOutcome, StorageBackend, folder_for_type, generate_filename

logger = logging.getLogger(__name__)

CLOUD_HOSTS = ("storage.googleapis.com", "storage.cloud.google.com")

# Upload failures worth retrying later rather than reporting as a server error
UPLOAD_UNAVAILABLE_ERRORS = (
    gcloud_exceptions.ServiceUnavailable,
    gcloud_exceptions.DeadlineExceeded,
    gcloud_exceptions.TooManyRequests,
    gcloud_exceptions.RetryError,
    requests.exceptions.Timeout,
    requests.exceptions.ConnectionError,
    auth_exceptions.TransportError,
)


def object_key_from_url(url: str) -> Optional[str]:
    """Recover the object key from a signed or public storage URL.

    Handles `https://storage.googleapis.com/<bucket>/<key>?...` and the JSON
    API shape `.../b/<bucket>/o/<url-encoded key>`.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.hostname not in CLOUD_HOSTS:
        return None
    if "/o/" in parsed.path:
        key = unquote(parsed.path.split("/o/", 1)[1])
    else:
        key = unquote("/".join(parsed.path.split("/")[2:]))
    return key or None


class CloudStorageBackend(StorageBackend):
    """Photos in a Google Cloud Storage bucket under `uploads/<folder>/`."""

    name = "cloud"
    # Old objects may live under another key; they are left in place
    replaces_previous = False

    def __init__(self, bucket, timeout: float = 30.0, signed_url_days: int = SIGNED_URL_DAYS):
        self.bucket = bucket
        self.timeout = timeout
        self.signed_url_days = signed_url_days

    def public_url(self, key: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket.name}/{key}"

    def owns(self, reference):
        return bool(reference) and any(host in reference for host in CLOUD_HOSTS)

    def store(self, data, filename, content_type, report_type):
        key = f"uploads/{folder_for_type(report_type)}/{generate_filename(filename, default_ext='.jpg')}"
        blob = self.bucket.blob(key)
        try:
            blob.upload_from_string(data, content_type=content_type, timeout=self.timeout)
        except UPLOAD_UNAVAILABLE_ERRORS as e:
            logger.error(f"GCS unreachable while uploading {key}: {str(e)}")
            raise StorageUnavailableError(
                "The server is having trouble reaching photo storage. Please try again later."
            )
        except gcloud_exceptions.GoogleAPIError as e:
            logger.error(f"GCS upload error for {key}: {str(e)}")
            raise PhotoStorageError(f"Could not upload photo to cloud storage: {str(e)}")

        try:
            url = blob.generate_signed_url(
                expiration=timedelta(days=self.signed_url_days),
                method="GET",
            )
            logger.info(f"File uploaded to GCS with signed URL: {key}")
            return url
        except Exception as e:
            # Credentials without a private key cannot sign
            logger.error(f"Error generating signed URL for {key}: {str(e)}")
            url = self.public_url(key)
            logger.info(f"Falling back to public URL: {url}")
            return url

    def delete(self, reference):
        key = object_key_from_url(reference)
        if not key:
            logger.error(f"Could not extract an object key from {reference}")
            return DeleteOutcome(reference, deleted=False, error="Unrecognized cloud storage URL")
        try:
            logger.info(f"Attempting to delete GCS file: {key}")
            self.bucket.blob(key).delete(timeout=self.timeout)
            logger.info(f"Deleted file from GCS: {key}")
            return DeleteOutcome(reference, deleted=True)
        except gcloud_exceptions.NotFound:
            logger.warning(f"GCS file already gone: {key}")
            return DeleteOutcome(reference, deleted=False)
        except Exception as e:
            logger.error(f"Error deleting file from GCS: {str(e)}")
            return DeleteOutcome(reference, deleted=False, error=str(e))
