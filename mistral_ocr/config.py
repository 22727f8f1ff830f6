"""Default settings and provider constants"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Provider limits
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MiB
MAX_DOCUMENT_PAGES = 8
DEFAULT_EXPIRY_HOURS = 24
MIN_EXPIRY_HOURS = 1
MAX_EXPIRY_HOURS = 168
MIN_ENCODED_LENGTH = 10

DEFAULT_MODEL = "mistral-ocr-latest"
DEFAULT_BINARY_PROPERTY = "data"
DEFAULT_PAGES = "0-7"
DEFAULT_CREDENTIAL_ID = "mistralApi"

# Retry
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000

# Endpoints (relative to the base URL)
DEFAULT_BASE_URL = "https://api.mistral.ai"
UPLOAD_PATH = "/v1/files"
OCR_PATH = "/v1/ocr"
MODELS_PATH = "/v1/models"


def signed_url_path(file_id: str) -> str:
    return f"/v1/files/{file_id}/url"


def clamp_expiry_hours(value) -> int:
    """Clamp a requested expiry to the provider's accepted window."""
    try:
        hours = int(value)
    except (TypeError, ValueError):
        return DEFAULT_EXPIRY_HOURS
    return max(MIN_EXPIRY_HOURS, min(MAX_EXPIRY_HOURS, hours))


@dataclass(frozen=True)
class Settings:
    """Process settings read from the environment (and an optional .env file)."""

    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    database_url: str = "sqlite:///./jobs.db"
    upload_dir: str = "uploads"
    http_timeout: float = 300.0

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            api_key=os.getenv("MISTRAL_API_KEY"),
            base_url=os.getenv("MISTRAL_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            database_url=os.getenv("MISTRAL_OCR_DATABASE_URL", "sqlite:///./jobs.db"),
            upload_dir=os.getenv("MISTRAL_OCR_UPLOAD_DIR", "uploads"),
            http_timeout=float(os.getenv("MISTRAL_OCR_HTTP_TIMEOUT", "300")),
        )


__all__ = [
    "MAX_FILE_SIZE",
    "MAX_DOCUMENT_PAGES",
    "DEFAULT_EXPIRY_HOURS",
    "MIN_EXPIRY_HOURS",
    "MAX_EXPIRY_HOURS",
    "MIN_ENCODED_LENGTH",
    "DEFAULT_MODEL",
    "DEFAULT_BINARY_PROPERTY",
    "DEFAULT_PAGES",
    "DEFAULT_CREDENTIAL_ID",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_BASE_DELAY_MS",
    "DEFAULT_BASE_URL",
    "UPLOAD_PATH",
    "OCR_PATH",
    "MODELS_PATH",
    "signed_url_path",
    "clamp_expiry_hours",
    "Settings",
]
