from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class UploadedFile(BaseModel):
    """A file buffered from a multipart request. Never persisted as-is."""

    filename: str = ""
    content_type: str = ""
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)


class StoredObject(BaseModel):
    backend: str
    bucket: str
    key: str
    size: int
    content_type: str


class AccessURL(BaseModel):
    url: str
    signed: bool = False
    expires_in: int | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileDescriptor(_CamelModel):
    bucket: str
    key: str
    url: str
    delete_url: str
    visibility: Visibility
    url_expires_in: int | None = None
    delete_url_expires_in: int
    original_name: str = ""
    content_type: str = ""
    size: int = 0


class DeleteUrlRequest(_CamelModel):
    key: str = ""
    expires_in: int | None = None


class DeleteRequest(BaseModel):
    key: str = ""


class DeleteUrlResponse(_CamelModel):
    key: str
    delete_url: str
    expires_in: int
