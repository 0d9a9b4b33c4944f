"""HMAC-signed URLs for backends without native presigned DELETE support.

The signature covers the HTTP method, the storage key and the absolute expiry
timestamp, so a URL is only valid for the exact action it was minted for.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from urllib.parse import urlencode

from imgate.errors import SignatureError

SIGNED_DELETE_PATH = "/api/files/signed"


class UrlSigner:
    def __init__(self, secret: str) -> None:
        self._secret = secret.encode()

    def sign(self, method: str, key: str, expires_at: int) -> str:
        message = f"{method.upper()}\n{key}\n{expires_at}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def build_delete_url(self, base_url: str, key: str, expires_in: int, now: int | None = None) -> str:
        if now is None:
            now = int(time.time())
        expires_at = now + expires_in
        query = urlencode({"key": key, "expires": expires_at, "signature": self.sign("DELETE", key, expires_at)})
        return f"{base_url.rstrip('/')}{SIGNED_DELETE_PATH}?{query}"

    def verify(self, method: str, key: str, expires: int, signature: str, now: int | None = None) -> None:
        if now is None:
            now = int(time.time())
        expected = self.sign(method, key, expires)
        if not hmac.compare_digest(expected, signature or ""):
            raise SignatureError("Invalid signature")
        if expires < now:
            raise SignatureError("Signed URL has expired")
