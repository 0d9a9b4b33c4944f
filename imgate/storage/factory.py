import logging
from functools import lru_cache

from imgate.settings import settings
from imgate.storage.base import StorageBackend

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    """Build the configured backend once; the instance is shared by all requests."""
    backend = settings.storage_backend.lower()

    if backend == "local":
        from imgate.storage.local import LocalStorage, default_upload_dirs, resolve_upload_dir

        base_dir = resolve_upload_dir(default_upload_dirs(settings.upload_dir))
        logger.info("Using storage backend: local dir=%s", base_dir)
        return LocalStorage(base_dir)

    if backend == "s3":
        from imgate.storage.s3 import S3Storage

        logger.info("Using storage backend: s3 bucket=%s endpoint=%s", settings.s3_bucket, settings.s3_endpoint_url)
        return S3Storage(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
            public_base_url=settings.s3_public_base_url,
            visibility=settings.visibility,
            timeout=settings.backend_timeout_seconds,
        )

    if backend == "supabase":
        from imgate.storage.supabase import SupabaseStorage

        logger.info("Using storage backend: supabase bucket=%s", settings.supabase_bucket)
        return SupabaseStorage(
            url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.supabase_bucket,
            visibility=settings.visibility,
            timeout=settings.backend_timeout_seconds,
        )

    raise ValueError(f"Unsupported storage backend: {backend}")
