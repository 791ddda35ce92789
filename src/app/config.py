from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


# ──────────────────────────────────────────────
# Settings (from environment variables / .env)
# ──────────────────────────────────────────────
class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # CORS settings
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000"
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "GET,POST,OPTIONS"
    cors_allow_headers: str = "*"

    # Upload settings
    upload_dir: Path = Path("users_profiles_images")
    upload_url_path: str = "users_profiles_images"
    upload_dir_mode: int = 0o755
    upload_file_mode: int = 0o644
    max_upload_size: int = 5 * 1024 * 1024  # 5 MB
    allowed_content_types: str = "image/jpeg,image/png,image/gif,image/jpg"
    max_name_attempts: int = 5

    # Sniff the image bytes with Pillow instead of trusting the declared type only
    verify_image_content: bool = False

    # Base for returned URLs; falls back to the request's own host when unset
    public_base_url: str | None = None

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def cors_methods_list(self) -> list[str]:
        """Parse CORS methods from comma-separated string."""
        if self.cors_allow_methods == "*":
            return ["*"]
        return [method.strip() for method in self.cors_allow_methods.split(",")]

    @property
    def cors_headers_list(self) -> list[str]:
        """Parse CORS headers from comma-separated string."""
        if self.cors_allow_headers == "*":
            return ["*"]
        return [header.strip() for header in self.cors_allow_headers.split(",")]

    @property
    def allowed_content_types_set(self) -> set[str]:
        """Parse allowed MIME types from comma-separated string."""
        return {
            content_type.strip().lower()
            for content_type in self.allowed_content_types.split(",")
            if content_type.strip()
        }

    @property
    def upload_url_prefix(self) -> str:
        """URL path under which stored files are served, e.g. ``/users_profiles_images``."""
        return "/" + self.upload_url_path.strip("/")


# Global settings instance
settings = Settings()
