from __future__ import annotations

import logging

import httpx
from storage3.utils import StorageException
from supabase import Client, ClientOptions, create_client

from imgate.errors import NotFoundError, StorageError
from imgate.models.upload import StoredObject, Visibility
from imgate.storage.base import DEFAULT_CONTENT_TYPE, StorageBackend

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (StorageException, httpx.HTTPError)


class SupabaseStorage(StorageBackend):
    """Supabase Storage bucket. Uploads use upsert, so rewriting a key is not an error."""

    kind = "supabase"

    def __init__(
        self,
        url: str,
        service_key: str,
        bucket: str,
        visibility: Visibility = Visibility.PUBLIC,
        timeout: int = 30,
        client: Client | None = None,
    ) -> None:
        self.bucket = bucket
        self.visibility = Visibility(visibility)
        if client is None:
            client = create_client(url, service_key, options=ClientOptions(storage_client_timeout=timeout))
        self.client = client

    @property
    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def save(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> StoredObject:
        content_type = content_type or DEFAULT_CONTENT_TYPE
        try:
            self._bucket.upload(key, data, file_options={"content-type": content_type, "upsert": "true"})
        except _BACKEND_ERRORS as exc:
            raise StorageError(str(exc)) from exc
        logger.debug("Uploaded %s/%s (%d bytes)", self.bucket, key, len(data))
        return StoredObject(backend=self.kind, bucket=self.bucket, key=key, size=len(data), content_type=content_type)

    def delete(self, key: str) -> None:
        try:
            removed = self._bucket.remove([key])
        except _BACKEND_ERRORS as exc:
            raise StorageError(str(exc)) from exc
        if not removed:
            raise NotFoundError("File not found")

    def public_url(self, key: str, base_url: str) -> str:
        return self._bucket.get_public_url(key)

    def signed_get_url(self, key: str, expires_in: int) -> str:
        try:
            result = self._bucket.create_signed_url(key, expires_in)
        except _BACKEND_ERRORS as exc:
            raise StorageError(str(exc)) from exc
        # Older clients spell it signedURL, newer ones signedUrl.
        url = result.get("signedURL") or result.get("signedUrl")
        if not url:
            raise StorageError(f"Supabase returned no signed URL for {key}")
        return url
