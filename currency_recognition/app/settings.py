"""Configuration for the currency recognition service."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application configuration sourced from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CURRENCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        protected_namespaces=(),
    )

    allowed_denominations: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["10", "20", "50", "100", "200", "500", "2000"],
        description="Denominations the confirmer will accept.",
    )
    confidence_threshold: float = Field(default=0.25, ge=0.0, le=1.0)
    confirmation_rounds: int = Field(default=3, ge=1)
    live_interval_seconds: float = Field(default=0.3, ge=0.0)
    announcement_cooldown_seconds: float = Field(default=5.0, ge=0.0)
    inference_backend: str = Field(default="http", pattern="^(http|yolo)$")
    inference_url: str = Field(default="https://detect.roboflow.com")
    inference_model_id: str = Field(default="currency-notes/1")
    inference_api_key: Optional[str] = None
    inference_timeout_seconds: float = Field(default=10.0, gt=0.0)
    model_path: Path = Field(default=Path("models/currency.pt"), description="YOLO weights path")
    camera_index: int = Field(default=0, ge=0)
    speech_enabled: bool = True
    speech_volume: float = Field(default=1.0, ge=0.0, le=1.0)
    speech_rate: Optional[int] = Field(default=None, gt=0)
    currency_name: str = Field(default="rupees")
    history_limit: int = Field(default=50, ge=1)
    log_format: str = Field(default="text", pattern="^(text|json)$")

    @field_validator("allowed_denominations", mode="before")
    @classmethod
    def _split_denominations(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    return json.loads(stripped)
                except json.JSONDecodeError as exc:
                    raise ValueError(f"Invalid denomination list: {value}") from exc
            return [item for item in stripped.split(",")]
        return value

    @field_validator("allowed_denominations")
    @classmethod
    def _clean_denominations(cls, value: List[str]) -> List[str]:
        cleaned = [str(item).strip() for item in value if str(item).strip()]
        if not cleaned:
            raise ValueError("At least one denomination must be allowed")
        return list(dict.fromkeys(cleaned))

    @field_validator("model_path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser()


def load_settings(**overrides: object) -> AppSettings:
    """Return application settings, applying optional overrides."""

    return AppSettings(**overrides)


def get_settings() -> AppSettings:
    return AppSettings()
