"""Supabase Storage client for publishing assets.

Uploads cover art through the Storage REST API and derives the public URL
the publishing automation reads.
"""

import logging
from typing import Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from src.errors import StorageError

logger = logging.getLogger(__name__)


def cover_art_object_key(episode_id: str, filename: str) -> str:
    """
    Build the storage key for an episode's cover art.

    The extension is taken from the uploaded file name; a name without a dot
    uses the whole name as the extension.

    >>> cover_art_object_key("abc", "art.PNG")
    'abc_cover_art.PNG'
    """
    extension = filename.rsplit(".", 1)[-1]
    return f"{episode_id}_cover_art.{extension}"


class StorageClient:
    """Uploads objects to a Supabase Storage bucket."""

    DEFAULT_TIMEOUT = 60
    CACHE_CONTROL_SECONDS = 3600

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "podcast_assets",
        retry_attempts: int = 3,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.retry_attempts = retry_attempts
        self.timeout = timeout
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        # Uploads use upsert, so retrying a POST is safe
        retry_strategy = Retry(
            total=self.retry_attempts,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "HEAD", "POST"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        if self.service_key:
            session.headers.update({
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
            })

        return session

    def public_url(self, object_key: str) -> str:
        return (
            f"{self.supabase_url}/storage/v1/object/public/"
            f"{self.bucket}/{quote(object_key)}"
        )

    def upload(
        self,
        object_key: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Upload (or replace) an object and return its public URL.

        Raises:
            StorageError: Storage is not configured or the upload failed.
        """
        if not self.supabase_url:
            raise StorageError("Storage URL is not configured")

        url = f"{self.supabase_url}/storage/v1/object/{self.bucket}/{quote(object_key)}"
        headers = {
            "x-upsert": "true",
            "cache-control": f"max-age={self.CACHE_CONTROL_SECONDS}",
            "Content-Type": content_type or "application/octet-stream",
        }

        try:
            response = self._session.post(
                url, data=content, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Upload of {object_key} to {self.bucket} failed: {e}")
            raise StorageError(f"Failed to upload {object_key}") from e

        logger.info(f"Uploaded {object_key} to bucket {self.bucket} ({len(content)} bytes)")
        return self.public_url(object_key)

    def upload_cover_art(
        self,
        episode_id: str,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        return self.upload(cover_art_object_key(episode_id, filename), content, content_type)

    def close(self) -> None:
        self._session.close()
