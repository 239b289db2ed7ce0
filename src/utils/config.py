"""Configuration management for the document vault service.

Loads and validates YAML configuration with sensible defaults for
upload limits, image normalization, OCR, storage, auth, and caching.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class UploadConfig(BaseModel):
    """Limits enforced on incoming files before any processing."""

    max_file_bytes: int = MAX_UPLOAD_BYTES
    allowed_content_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "application/pdf"]
    )


class NormalizationConfig(BaseModel):
    """Configuration for image downsampling and re-encoding."""

    max_dimension: int = 2048
    jpeg_quality: int = 85
    scan_jpeg_quality: int = 95
    thumbnail_size: int = 256


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    enhance_enabled: bool = True
    clahe_clip_limit: float = 2.0
    clahe_tile_size: int = 8
    binarize_enabled: bool = False


class StorageConfig(BaseModel):
    """Object storage backend settings."""

    backend: str = "memory"
    root_dir: str = "data/vault"
    bucket: str = "document-vault"
    public_base_url: str = "http://localhost:8000/files"


class AuthConfig(BaseModel):
    """Bearer token verification settings."""

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    owner_claim: str = "uid"


class CacheConfig(BaseModel):
    """Settings for the in-memory scan result cache."""

    ttl_seconds: float = 300.0
    max_entries: int = 256


class AlertsConfig(BaseModel):
    """Expiry alert and share link windows."""

    default_days: int = 30
    share_ttl_days: int = 7


class AppConfig(BaseModel):
    """Top-level application configuration."""

    upload: UploadConfig = Field(default_factory=UploadConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    environment: str = "production"
    log_level: str = "INFO"

    @property
    def expose_error_detail(self) -> bool:
        """Whether error responses may carry the underlying message."""
        return self.environment != "production"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
