"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "lorevault.db"
DEFAULT_VOCABULARY_PATH = Path(__file__).resolve().with_name("vocabulary.yaml")

_FALSE_VALUES = {"0", "false", "no", "off"}


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    db_path: Path = Field(
        default=DEFAULT_DB_PATH, description="SQLite database file for vault records"
    )
    vocabulary_path: Path = Field(
        default=DEFAULT_VOCABULARY_PATH,
        description="YAML file declaring tag namespaces",
    )
    strict_namespaces: bool = Field(
        default=False,
        description="Report unknown tag namespaces as errors instead of warnings",
    )
    auto_update_indexes: bool = Field(
        default=True,
        description="Re-synthesize folder index pages after structural changes",
    )

    @field_validator("db_path", "vocabulary_path", mode="before")
    @classmethod
    def _normalize_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("Path settings cannot be empty")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("vocabulary_path")
    @classmethod
    def _vocabulary_exists(cls, value: Path) -> Path:
        if not value.is_file():
            raise ValueError(f"Tag vocabulary file not found: {value}")
        return value


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_flag(key: str, default: bool) -> bool:
    raw = _read_env(key)
    if raw is None:
        return default
    return raw.strip().lower() not in _FALSE_VALUES


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    load_dotenv()
    config = AppConfig(
        db_path=_read_env("LOREVAULT_DB_PATH", str(DEFAULT_DB_PATH)),
        vocabulary_path=_read_env("LOREVAULT_VOCABULARY_PATH", str(DEFAULT_VOCABULARY_PATH)),
        strict_namespaces=_read_flag("LOREVAULT_STRICT_NAMESPACES", False),
        auto_update_indexes=_read_flag("LOREVAULT_AUTO_UPDATE_INDEXES", True),
    )
    # Ensure the data directory exists for the database service.
    config.db_path.parent.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "PROJECT_ROOT",
    "DEFAULT_DB_PATH",
    "DEFAULT_VOCABULARY_PATH",
]
