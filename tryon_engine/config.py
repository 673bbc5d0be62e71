from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Literal

from pydantic import BaseModel, Field


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


class Settings(BaseModel):
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    output_format: Literal["jpeg", "png"] = "jpeg"
    jpeg_quality: float = Field(default=0.9, gt=0, le=1)
    lipstick_opacity: float = Field(default=1.0, ge=0, le=1)
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


def load_settings() -> Settings:
    """Build settings from ``TRYON_*`` environment variables."""
    overrides = {}
    origins = os.getenv("TRYON_ALLOWED_ORIGINS")
    if origins:
        overrides["allowed_origins"] = _split_origins(origins)
    for field, env in (
        ("output_format", "TRYON_OUTPUT_FORMAT"),
        ("jpeg_quality", "TRYON_JPEG_QUALITY"),
        ("lipstick_opacity", "TRYON_LIPSTICK_OPACITY"),
        ("max_upload_bytes", "TRYON_MAX_UPLOAD_BYTES"),
        ("log_level", "TRYON_LOG_LEVEL"),
        ("host", "TRYON_HOST"),
        ("port", "TRYON_PORT"),
    ):
        value = os.getenv(env)
        if value:
            overrides[field] = value.strip().lower() if field == "output_format" else value.strip()
    return Settings(**overrides)


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
