"""Configuration schema and loader."""

from kiosk_media.config.loader import YamlConfigLoader
from kiosk_media.config.models import (
    AppConfig,
    CacheSettings,
    ConfigLoadRequest,
    CrawlerSettings,
    LoggingSettings,
    WebDAVSettings,
)

__all__ = [
    "AppConfig",
    "CacheSettings",
    "ConfigLoadRequest",
    "CrawlerSettings",
    "LoggingSettings",
    "WebDAVSettings",
    "YamlConfigLoader",
]
