import logging
import secrets

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from imgate.errors import ConfigurationError

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("local", "s3", "supabase")

_REQUIRED_BY_BACKEND = {
    "s3": ("s3_endpoint_url", "s3_bucket", "s3_access_key_id", "s3_secret_access_key"),
    "supabase": ("supabase_url", "supabase_service_key", "supabase_bucket"),
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="IMGATE_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = Field(default=3001, validation_alias=AliasChoices("IMGATE_PORT", "PORT"))

    allowed_origins: str = ""
    max_file_mb: int = 10
    max_files: int = 10

    storage_backend: str = "local"
    storage_prefix: str = "uploads"
    public_base_url: str = ""

    upload_dir: str = ""

    s3_endpoint_url: str = ""
    s3_region: str = "us-east-1"
    s3_bucket: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_public_base_url: str = ""

    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_bucket: str = ""

    visibility: str = "public"
    get_url_ttl: int = 604800  # 7 days in seconds
    delete_url_ttl: int = 600
    backend_timeout_seconds: int = 30

    signing_secret: str = ""

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def max_upload_bytes(self) -> int:
        return self.max_file_mb * 1024 * 1024

    def origin_list(self) -> list[str]:
        return [entry.strip() for entry in self.allowed_origins.split(",") if entry.strip()]

    def validate_backend(self) -> None:
        """Fail fast when the selected backend is unknown or misconfigured."""
        backend = self.storage_backend.lower()
        if backend not in STORAGE_BACKENDS:
            raise ConfigurationError(
                f"Unsupported storage backend: {self.storage_backend!r}. "
                f"Set IMGATE_STORAGE_BACKEND to one of: {', '.join(STORAGE_BACKENDS)}"
            )
        if self.visibility not in ("public", "private"):
            raise ConfigurationError("IMGATE_VISIBILITY must be 'public' or 'private'")

        missing = [
            f"IMGATE_{name.upper()}" for name in _REQUIRED_BY_BACKEND.get(backend, ()) if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(f"Missing required configuration for {backend} storage: {', '.join(missing)}")

    def get_signing_secret(self) -> str:
        if not self.signing_secret:
            logger.warning(
                "IMGATE_SIGNING_SECRET is not set; using a random secret. "
                "Signed delete URLs will not survive restarts."
            )
            self.signing_secret = secrets.token_urlsafe(32)
        return self.signing_secret


settings = Settings()
