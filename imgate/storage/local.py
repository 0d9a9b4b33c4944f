import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import quote

from imgate.errors import ClientInputError, ConfigurationError, NotFoundError, StorageError
from imgate.models.upload import StoredObject, Visibility
from imgate.storage.base import DEFAULT_CONTENT_TYPE, StorageBackend

logger = logging.getLogger(__name__)

PUBLIC_PATH = "/assets/uploads"


def default_upload_dirs(configured: str = "") -> list[Path]:
    """Candidate upload directories in probe order."""
    candidates = []
    if configured:
        candidates.append(Path(configured))
    candidates.append(Path.cwd() / "assets" / "uploads")
    candidates.append(Path(tempfile.gettempdir()) / "imgate-uploads")
    return candidates


def resolve_upload_dir(candidates: Iterable[Path]) -> Path:
    """Return the first candidate that can be created and written to."""
    tried = []
    for candidate in candidates:
        tried.append(str(candidate))
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Upload dir %s is not usable: %s", candidate, exc)
            continue
        if os.access(candidate, os.W_OK):
            logger.info("Using upload dir %s", candidate)
            return candidate
        logger.warning("Upload dir %s is not writable", candidate)
    raise ConfigurationError(f"No writable upload directory found (tried: {', '.join(tried)})")


class LocalStorage(StorageBackend):
    """Files on the local disk, served by the app's static file mount.

    Storage is ephemeral: whatever the process can write to is lost on
    redeploy unless the directory is a mounted volume. In exchange this
    backend needs no external service.
    """

    kind = "local"
    visibility = Visibility.PUBLIC

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.bucket = str(self.base_dir)

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if not path.is_relative_to(self.base_dir.resolve()):
            raise ClientInputError("Invalid key.")
        return path

    def save(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> StoredObject:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc
        logger.debug("Saved %s (%d bytes) to %s", key, len(data), path)
        return StoredObject(
            backend=self.kind,
            bucket=self.bucket,
            key=key,
            size=len(data),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
        )

    def path_for(self, key: str) -> Path:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("File not found")
        return path

    def delete(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("File not found")
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError("File not found") from exc
        except OSError as exc:
            raise StorageError(f"Failed to delete {key}: {exc}") from exc
        logger.debug("Deleted %s", path)

    def public_url(self, key: str, base_url: str) -> str:
        return f"{base_url.rstrip('/')}{PUBLIC_PATH}/{quote(key)}"
