from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from imgate.errors import ClientInputError, NotFoundError, StorageError
from imgate.models.upload import DeleteRequest, DeleteUrlRequest, DeleteUrlResponse
from imgate.storage.local import PUBLIC_PATH, LocalStorage
from web.deps import get_base_url, get_upload_service

logger = logging.getLogger(__name__)

router = APIRouter()


async def _json_body(request: Request) -> dict:
    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except ValueError as exc:
        raise ClientInputError("Request body must be valid JSON.") from exc
    if not isinstance(data, dict):
        raise ClientInputError("Request body must be a JSON object.")
    return data


@router.post("/api/files/delete-url")
async def mint_delete_url(request: Request):
    logger.info("POST /api/files/delete-url")
    try:
        payload = DeleteUrlRequest.model_validate(await _json_body(request))
    except ValidationError as exc:
        raise ClientInputError("'key' must be a string and 'expiresIn' an integer number of seconds.") from exc

    service = get_upload_service(request)
    access = await run_in_threadpool(service.mint_delete_url, payload.key, get_base_url(request), payload.expires_in)
    response = DeleteUrlResponse(key=payload.key.strip(), delete_url=access.url, expires_in=access.expires_in)
    return JSONResponse(response.model_dump(by_alias=True))


@router.delete("/api/files")
async def delete_file(request: Request):
    logger.info("DELETE /api/files")
    try:
        payload = DeleteRequest.model_validate(await _json_body(request))
    except ValidationError as exc:
        raise ClientInputError("Missing 'key'.") from exc

    service = get_upload_service(request)
    key = await run_in_threadpool(service.delete_by_key, payload.key)
    return JSONResponse({"deleted": True, "key": key})


@router.delete("/api/files/signed")
async def delete_file_signed(request: Request, key: str = "", expires: int = 0, signature: str = ""):
    logger.info("DELETE /api/files/signed key=%s", key)
    service = get_upload_service(request)
    deleted = await run_in_threadpool(service.delete_signed, key, expires, signature)
    return JSONResponse({"deleted": True, "key": deleted})


@router.delete("/api/images/{filename}")
async def delete_image(request: Request, filename: str):
    logger.info("DELETE /api/images/%s", filename)
    service = get_upload_service(request)
    try:
        await run_in_threadpool(service.delete_by_key, service.key_for_filename(filename))
    except StorageError:
        logger.exception("Failed to delete image %s", filename)
        return JSONResponse({"success": False, "error": "Failed to delete image"}, status_code=500)
    return JSONResponse({"success": True, "message": "Image deleted successfully"})


@router.get(PUBLIC_PATH + "/{key:path}")
async def serve_upload(request: Request, key: str):
    storage = get_upload_service(request).storage
    if not isinstance(storage, LocalStorage):
        raise StarletteHTTPException(status_code=404)
    try:
        path = storage.path_for(key)
    except (ClientInputError, NotFoundError, StorageError):
        raise StarletteHTTPException(status_code=404) from None
    return FileResponse(path, headers={"Cache-Control": "public, max-age=3600"})
