from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    upload_endpoint_url: str = "http://localhost:8000/api/upload"
    upload_path_prefix: str = "uploads"
    upload_timeout_seconds: int = 60
    upload_progress_interval_seconds: float = 0.2
    max_upload_bytes: int = 50 * 1024 * 1024

    analysis_api_base_url: str = "http://localhost:8000"
    analysis_timeout_seconds: int = 120
    analysis_cache_ttl_seconds: int = 600

    preview_rows: int = 10
    header_detection_threshold: float = 0.5

    default_ascvd_category: Literal["white", "african-american", "other"] = "other"
    default_mesa_category: Literal["white", "african-american", "chinese", "hispanic"] = "white"
