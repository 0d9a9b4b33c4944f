from abc import ABC, abstractmethod

from imgate.errors import StorageError
from imgate.models.upload import StoredObject, Visibility

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StorageBackend(ABC):
    kind: str = ""
    bucket: str = ""
    visibility: Visibility = Visibility.PUBLIC

    @abstractmethod
    def save(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> StoredObject:
        """Write data under key, overwriting any existing object."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the object stored under key."""
        ...

    @abstractmethod
    def public_url(self, key: str, base_url: str) -> str:
        """Build the permanent public URL for key. No network call."""
        ...

    def signed_get_url(self, key: str, expires_in: int) -> str:
        """Return a time-limited GET URL. Backends without signing stay public."""
        raise StorageError(f"{self.kind} storage does not issue signed GET URLs")

    def signed_delete_url(self, key: str, expires_in: int) -> str | None:
        """Return a native presigned DELETE URL, or None to use a gateway-signed one."""
        return None
