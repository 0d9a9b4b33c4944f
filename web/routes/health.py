from __future__ import annotations

from fastapi import APIRouter, Request

from web.deps import get_upload_service

router = APIRouter()


@router.get("/")
async def index(request: Request):
    storage = get_upload_service(request).storage
    return {
        "name": "Image Upload Gateway",
        "ok": True,
        "storage": storage.kind,
        "uploads": "/assets/uploads" if storage.kind == "local" else None,
        "singleUploadEndpoint": "POST /api/upload-image (field 'image')",
        "multiUploadEndpoint": "POST /api/upload-images (field 'images')",
    }


@router.get("/api/health")
async def health(request: Request):
    return {"ok": True, "storage": get_upload_service(request).storage.kind}


@router.get("/api/ready")
async def ready():
    return {"ready": True}
