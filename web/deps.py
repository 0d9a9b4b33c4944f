from __future__ import annotations

import logging

from fastapi import Request
from starlette.datastructures import UploadFile

from imgate.models.upload import UploadedFile
from imgate.services.upload_service import UploadService
from imgate.services.url_issuer import UrlIssuer
from imgate.settings import settings
from imgate.signing import UrlSigner
from imgate.storage.base import StorageBackend
from imgate.storage.factory import get_storage

logger = logging.getLogger(__name__)


def build_upload_service(storage: StorageBackend) -> UploadService:
    signer = UrlSigner(settings.get_signing_secret())
    issuer = UrlIssuer(
        storage,
        signer,
        get_url_ttl=settings.get_url_ttl,
        delete_url_ttl=settings.delete_url_ttl,
    )
    return UploadService(
        storage,
        issuer,
        signer,
        prefix=settings.storage_prefix,
        max_upload_bytes=settings.max_upload_bytes,
        max_files=settings.max_files,
    )


def get_upload_service(request: Request) -> UploadService:
    """Process-wide service, built on first use and shared by all requests."""
    service = getattr(request.app.state, "upload_service", None)
    if service is None:
        service = build_upload_service(get_storage())
        request.app.state.upload_service = service
    return service


def get_base_url(request: Request) -> str:
    """Base URL clients should use to reach this gateway.

    Honors X-Forwarded-Proto / X-Forwarded-Host so URLs stay correct behind
    a reverse proxy.
    """
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme or "http"
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto.split(',')[0].strip()}://{host.split(',')[0].strip()}"


async def read_uploads(request: Request, field: str) -> list[UploadedFile]:
    """Buffer every file sent under ``field``, in arrival order."""
    form = await request.form()
    files = []
    try:
        for upload in form.getlist(field):
            if not isinstance(upload, UploadFile):
                continue
            files.append(
                UploadedFile(
                    filename=upload.filename or "",
                    content_type=upload.content_type or "",
                    data=await upload.read(),
                )
            )
    finally:
        await form.close()
    return files
