"""Root conftest: local storage, signer and upload service wired to tmp_path."""

from __future__ import annotations

import itertools

import pytest

from imgate.services.upload_service import UploadService
from imgate.services.url_issuer import UrlIssuer
from imgate.signing import UrlSigner
from imgate.storage.local import LocalStorage

TEST_SECRET = "test-signing-secret"


@pytest.fixture()
def local_storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "uploads")


@pytest.fixture()
def signer() -> UrlSigner:
    return UrlSigner(TEST_SECRET)


@pytest.fixture()
def counter_entropy():
    """Deterministic entropy source: 'e0', 'e1', ..."""
    counter = itertools.count()
    return lambda: f"e{next(counter)}"


def _make_service(storage, signer, **overrides) -> UploadService:
    issuer = UrlIssuer(storage, signer)
    defaults = dict(prefix="uploads", max_upload_bytes=1024, max_files=10)
    defaults.update(overrides)
    return UploadService(storage, issuer, signer, **defaults)


@pytest.fixture()
def make_service(signer):
    def _factory(storage, **overrides):
        return _make_service(storage, signer, **overrides)

    return _factory


@pytest.fixture()
def upload_service(local_storage, signer, counter_entropy) -> UploadService:
    return _make_service(local_storage, signer, entropy=counter_entropy)
