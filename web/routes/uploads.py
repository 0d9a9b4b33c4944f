from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from web.deps import get_base_url, get_upload_service, read_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/upload-image")
async def upload_image(request: Request):
    logger.info("POST /api/upload-image")
    service = get_upload_service(request)
    files = await read_uploads(request, "image")

    descriptor = await run_in_threadpool(service.upload_one, files, get_base_url(request), "image")
    return JSONResponse(
        {"message": "Uploaded", "file": descriptor.model_dump(by_alias=True, exclude_none=True, mode="json")},
        status_code=201,
    )


@router.post("/upload-images")
async def upload_images(request: Request):
    logger.info("POST /api/upload-images")
    service = get_upload_service(request)
    files = await read_uploads(request, "images")

    descriptors = await run_in_threadpool(service.upload_many, files, get_base_url(request), "images")
    logger.info("Uploaded %d files", len(descriptors))
    return JSONResponse(
        {
            "message": "Uploaded",
            "files": [d.model_dump(by_alias=True, exclude_none=True, mode="json") for d in descriptors],
        },
        status_code=201,
    )
