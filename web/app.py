from __future__ import annotations

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from imgate.cors import OriginMatcher
from imgate.errors import ImgateError, NotFoundError, StorageError
from imgate.logging import configure_logging
from imgate.settings import settings
from imgate.storage.factory import get_storage
from web.cors import OriginCORSMiddleware
from web.deps import build_upload_service
from web.limits import MULTIPART_OVERHEAD, BodySizeLimitMiddleware
from web.routes.files import router as files_router
from web.routes.health import router as health_router
from web.routes.uploads import router as uploads_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Raising here aborts startup before the server starts listening.
    settings.validate_backend()
    if getattr(app.state, "upload_service", None) is None:
        app.state.upload_service = build_upload_service(get_storage())
    logger.info(
        "Application started: storage=%s max_file_mb=%d origins=%s",
        app.state.upload_service.storage.kind,
        settings.max_file_mb,
        settings.origin_list() or "*",
    )
    yield


app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)

app.add_middleware(
    BodySizeLimitMiddleware,
    limits={
        "/api/upload-image": settings.max_upload_bytes + MULTIPART_OVERHEAD,
        "/api/upload-images": settings.max_upload_bytes * settings.max_files + MULTIPART_OVERHEAD,
    },
    default_limit=settings.max_upload_bytes,
)
app.add_middleware(OriginCORSMiddleware, matcher=OriginMatcher(settings.origin_list()))

app.include_router(health_router)
app.include_router(uploads_router)
app.include_router(files_router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.info("Not found on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"success": False, "error": "File not found"}, status_code=404)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code)


@app.exception_handler(ImgateError)
async def gateway_error_handler(request: Request, exc: ImgateError):
    logger.warning("Rejected %s %s (%d): %s", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) for err in exc.errors())
    return JSONResponse({"error": f"Invalid request parameters: {fields}"}, status_code=400)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse({"error": "Not found"}, status_code=404)
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s:\n%s",
        request.method,
        request.url.path,
        traceback.format_exc(),
    )
    return JSONResponse({"error": "Internal Server Error"}, status_code=500)
