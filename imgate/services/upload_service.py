from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from imgate.errors import ClientInputError, PayloadTooLargeError, StorageError
from imgate.keys import build_key, normalize_prefix, sanitize_filename
from imgate.models.upload import AccessURL, FileDescriptor, UploadedFile
from imgate.services.url_issuer import UrlIssuer
from imgate.signing import UrlSigner
from imgate.storage.base import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_MAX_FILES = 10


class UploadService:
    """Runs uploaded files through key building, storage and URL issuance.

    A service instance holds no per-request state, so one instance can serve
    every request. Files in a batch are processed one after the other in
    arrival order, and the first failure aborts the whole batch.
    """

    def __init__(
        self,
        storage: StorageBackend,
        issuer: UrlIssuer,
        signer: UrlSigner,
        prefix: str = "",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        max_files: int = DEFAULT_MAX_FILES,
        entropy: Callable[[], str] | None = None,
    ) -> None:
        self.storage = storage
        self.issuer = issuer
        self.signer = signer
        self.prefix = normalize_prefix(prefix)
        self.max_upload_bytes = max_upload_bytes
        self.max_files = max_files
        self.entropy = entropy

    def _build_key(self, filename: str) -> str:
        if self.entropy is None:
            return build_key(self.prefix, filename)
        return build_key(self.prefix, filename, entropy=self.entropy)

    def validate(self, files: Sequence[UploadedFile], field: str, max_files: int = 1) -> None:
        if not files:
            noun = "file" if max_files == 1 else "files"
            raise ClientInputError(f"No {noun} received. Use field name '{field}'.")
        if len(files) > max_files:
            raise ClientInputError(f"Too many files. Max {max_files} per request.")
        for upload in files:
            if upload.size > self.max_upload_bytes:
                max_mb = self.max_upload_bytes // (1024 * 1024)
                raise PayloadTooLargeError(f"File too large. Max {max_mb} MB.")

    def _process(self, upload: UploadedFile, base_url: str) -> FileDescriptor:
        key = self._build_key(upload.filename)
        stored = self.storage.save(key, upload.data, upload.content_type)
        get_url = self.issuer.issue_get_url(key, base_url)
        delete_url = self.issuer.issue_delete_url(key, base_url)
        logger.info("Stored %s (%d bytes) as %s/%s", upload.filename or "<unnamed>", stored.size, stored.bucket, key)
        return FileDescriptor(
            bucket=stored.bucket,
            key=key,
            url=get_url.url,
            delete_url=delete_url.url,
            visibility=self.storage.visibility,
            url_expires_in=get_url.expires_in,
            delete_url_expires_in=delete_url.expires_in,
            original_name=upload.filename,
            content_type=stored.content_type,
            size=stored.size,
        )

    def upload_one(self, files: Sequence[UploadedFile], base_url: str, field: str = "image") -> FileDescriptor:
        """Store the one file sent under field."""
        self.validate(files, field)
        return self._process(files[0], base_url)

    def upload_many(self, files: Sequence[UploadedFile], base_url: str, field: str = "images") -> list[FileDescriptor]:
        self.validate(files, field, max_files=self.max_files)
        descriptors = []
        for index, upload in enumerate(files):
            try:
                descriptors.append(self._process(upload, base_url))
            except StorageError:
                logger.warning(
                    "Aborting batch at file %d/%d (%s); %d already stored",
                    index + 1,
                    len(files),
                    upload.filename,
                    len(descriptors),
                )
                raise
        return descriptors

    @staticmethod
    def _require_key(key: str | None) -> str:
        if not key or not key.strip():
            raise ClientInputError("Missing 'key'.")
        key = key.strip()
        if key.startswith("/") or "\\" in key or ".." in key.split("/"):
            raise ClientInputError("Invalid key.")
        return key

    def mint_delete_url(self, key: str | None, base_url: str, expires_in: int | None = None) -> AccessURL:
        key = self._require_key(key)
        return self.issuer.issue_delete_url(key, base_url, expires_in)

    def delete_by_key(self, key: str | None) -> str:
        key = self._require_key(key)
        self.storage.delete(key)
        logger.info("Deleted %s from %s", key, self.storage.kind)
        return key

    def delete_signed(self, key: str | None, expires: int, signature: str) -> str:
        key = self._require_key(key)
        self.signer.verify("DELETE", key, expires, signature)
        return self.delete_by_key(key)

    def key_for_filename(self, filename: str) -> str:
        """Key of a file stored under the configured prefix, by its stored name."""
        name = sanitize_filename(filename)
        if self.prefix:
            return f"{self.prefix}/{name}"
        return name
