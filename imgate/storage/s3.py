from __future__ import annotations

import logging
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from imgate.errors import StorageError
from imgate.models.upload import StoredObject, Visibility
from imgate.storage.base import DEFAULT_CONTENT_TYPE, StorageBackend

logger = logging.getLogger(__name__)


class S3Storage(StorageBackend):
    """Any S3-compatible object store, addressed path-style."""

    kind = "s3"

    def __init__(
        self,
        bucket: str,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        endpoint_url: str = "",
        public_base_url: str = "",
        visibility: Visibility = Visibility.PUBLIC,
        timeout: int = 30,
    ) -> None:
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self.visibility = Visibility(visibility)

        client_kwargs: dict = {
            "service_name": "s3",
            "region_name": region,
            "aws_access_key_id": access_key_id,
            "aws_secret_access_key": secret_access_key,
            "config": Config(
                s3={"addressing_style": "path"},
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 1},
            ),
        }
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url

        self.client = boto3.client(**client_kwargs)

    def save(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> StoredObject:
        content_type = content_type or DEFAULT_CONTENT_TYPE
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc
        logger.debug("Put s3://%s/%s (%d bytes)", self.bucket, key, len(data))
        return StoredObject(backend=self.kind, bucket=self.bucket, key=key, size=len(data), content_type=content_type)

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc

    def public_url(self, key: str, base_url: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{quote(key)}"
        endpoint = self.endpoint_url or self.client.meta.endpoint_url
        return f"{endpoint.rstrip('/')}/{self.bucket}/{quote(key)}"

    def _presign(self, operation: str, key: str, expires_in: int) -> str:
        try:
            return self.client.generate_presigned_url(
                operation,
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc

    def signed_get_url(self, key: str, expires_in: int) -> str:
        return self._presign("get_object", key, expires_in)

    def signed_delete_url(self, key: str, expires_in: int) -> str | None:
        return self._presign("delete_object", key, expires_in)
