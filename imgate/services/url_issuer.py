from __future__ import annotations

import logging

from imgate.models.upload import AccessURL, Visibility
from imgate.signing import UrlSigner
from imgate.storage.base import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_GET_URL_TTL = 604800  # 7 days
DEFAULT_DELETE_URL_TTL = 600
MIN_DELETE_URL_TTL = 30
MAX_DELETE_URL_TTL = 3600


def clamp_delete_ttl(expires_in: int | None, default: int = DEFAULT_DELETE_URL_TTL) -> int:
    if expires_in is None:
        return default
    return max(MIN_DELETE_URL_TTL, min(MAX_DELETE_URL_TTL, int(expires_in)))


class UrlIssuer:
    """Issues retrieval and deletion URLs for keys held by one backend.

    Every call mints an independent URL; issuing a new one never affects
    URLs handed out earlier.
    """

    def __init__(
        self,
        storage: StorageBackend,
        signer: UrlSigner,
        get_url_ttl: int = DEFAULT_GET_URL_TTL,
        delete_url_ttl: int = DEFAULT_DELETE_URL_TTL,
    ) -> None:
        self.storage = storage
        self.signer = signer
        self.get_url_ttl = get_url_ttl
        self.delete_url_ttl = delete_url_ttl

    def issue_get_url(self, key: str, base_url: str) -> AccessURL:
        if self.storage.visibility == Visibility.PUBLIC:
            return AccessURL(url=self.storage.public_url(key, base_url))
        url = self.storage.signed_get_url(key, self.get_url_ttl)
        return AccessURL(url=url, signed=True, expires_in=self.get_url_ttl)

    def issue_delete_url(self, key: str, base_url: str, expires_in: int | None = None) -> AccessURL:
        ttl = clamp_delete_ttl(expires_in, self.delete_url_ttl)
        url = self.storage.signed_delete_url(key, ttl)
        if url is None:
            url = self.signer.build_delete_url(base_url, key, ttl)
        return AccessURL(url=url, signed=True, expires_in=ttl)
