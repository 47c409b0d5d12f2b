"""Object-store access for snap images referenced by download URL."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import unquote

from snapkeeper.core.config import settings

logger = logging.getLogger("snapkeeper.services.blob_store")


class BlobReferenceError(ValueError):
    """Raised when a URL does not encode a recognizable object path."""


def blob_path_from_url(url: str, *, marker: str | None = None, query_delimiter: str | None = None) -> str:
    """Extract the URL-decoded object path between ``marker`` and the query string.

    ``https://host/v0/b/bucket/o/stories%2Fabc.jpg?alt=media&token=t`` yields
    ``stories/abc.jpg``.
    """
    marker = marker or settings.blob_path_marker
    query_delimiter = query_delimiter or settings.blob_query_delimiter
    if not url or marker not in url:
        raise BlobReferenceError(f"No {marker!r} segment in blob reference")
    encoded = url.split(marker, 1)[1].split(query_delimiter, 1)[0]
    path = unquote(encoded)
    if not path:
        raise BlobReferenceError("Blob reference has an empty object path")
    return path


class BlobStore:
    """Deletes objects from a Cloud Storage bucket, creating the client lazily."""

    def __init__(self, bucket_name: str | None = None, client: Any | None = None) -> None:
        self.bucket_name = bucket_name or settings.storage_bucket
        self._client = client
        self._bucket: Any | None = None

    def _get_bucket(self) -> Any:
        if self._bucket is None:
            if self._client is None:
                from google.cloud import storage

                self._client = storage.Client()
            if self.bucket_name:
                self._bucket = self._client.bucket(self.bucket_name)
            else:
                # Firebase projects expose their default bucket as <project>.appspot.com.
                self._bucket = self._client.bucket(f"{self._client.project}.appspot.com")
        return self._bucket

    async def delete(self, path: str) -> None:
        """Delete one object; missing objects raise the client's NotFound error."""
        bucket = self._get_bucket()
        await asyncio.to_thread(bucket.blob(path).delete)
        logger.debug("Deleted blob %s from %s", path, bucket.name)
