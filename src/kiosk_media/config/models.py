from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CACHE_BUDGET_BYTES = 2 * 1024 * 1024 * 1024
DEFAULT_MEMORY_COUNT_LIMIT = 50
DEFAULT_MEMORY_COST_LIMIT_BYTES = 50 * 1024 * 1024


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    rotation: FileRotationSettings


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str
    file: FileLoggingSettings

    # Third-party loggers that are too chatty at the application level
    quiet_loggers: Sequence[str] = ("aiohttp.access", "aiohttp.client", "asyncio")
    library_level: str = "WARNING"


class WebDAVSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str
    username: str = ""
    password: str = ""
    paths: Sequence[str] = ("/",)

    timeout_seconds: float = 30.0
    connect_limit_per_host: int = 10
    download_chunk_bytes: int = 256 * 1024

    @field_validator("host")
    @classmethod
    def _host_must_be_http(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped.startswith(("http://", "https://")):
            raise ValueError(f"WebDAV host must start with http:// or https://, got: {value!r}")
        return stripped

    @field_validator("paths", mode="before")
    @classmethod
    def _split_env_paths(cls, value: object) -> object:
        # Environment overrides arrive as one comma-separated string.
        if isinstance(value, str):
            return tuple(p.strip() for p in value.split(",") if p.strip())
        return value


class CacheSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    directory: str = "data/cache/webdav"
    budget_path: str = "data/cache/budget.json"
    default_budget_bytes: int = Field(default=DEFAULT_CACHE_BUDGET_BYTES, gt=0)

    memory_count_limit: int = Field(default=DEFAULT_MEMORY_COUNT_LIMIT, gt=0)
    memory_cost_limit_bytes: int = Field(default=DEFAULT_MEMORY_COST_LIMIT_BYTES, gt=0)


class CrawlerSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Upper bound on simultaneous PROPFIND requests across one crawl
    max_concurrent_listings: int = Field(default=8, gt=0)
    max_depth: int = Field(default=32, ge=0)


class AppConfig(BaseModel):
    """
    Effective runtime configuration after applying all precedence rules.

    YAML values are read first, then `.env`, then `APP__SECTION__KEY` environment overrides.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    logging: LoggingSettings
    webdav: WebDAVSettings
    cache: CacheSettings = CacheSettings()
    crawler: CrawlerSettings = CrawlerSettings()


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    Implementations may use these to control where configuration is read from.
    """

    yaml_path: str = "data/config/config.yaml"
    env_prefix: str = "APP__"
    dotenv_path: Optional[str] = "data/.env"
