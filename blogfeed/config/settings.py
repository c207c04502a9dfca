"""
BlogFeed Configuration System
=============================

Configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator, AnyHttpUrl
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class CacheBackend(str, Enum):
    """Available cache store backends."""
    MEMORY = "memory"
    SQLITE = "sqlite"
    NONE = "none"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FeedSettings(BaseModel):
    """Upstream feed and record normalization settings."""
    url: AnyHttpUrl = Field(
        default="https://dreamthewilderness.substack.com/feed",
        description="Syndication feed mirrored by the blog endpoint",
    )
    canonical_url: AnyHttpUrl = Field(
        default="https://dreamthewilderness.substack.com",
        description="Public blog address offered when the feed is unavailable",
    )
    site_author: str = Field(default="Dream the Wilderness", min_length=1, description="Author used when an item names none")
    untitled_title: str = Field(default="Untitled", min_length=1, description="Title used when an item has none")
    placeholder_link: str = Field(default="#", min_length=1, description="Link used when an item has none")
    description_limit: int = Field(default=200, ge=1, le=5000, description="Maximum description length in characters")


class CacheSettings(BaseModel):
    """Feed cache configuration."""
    backend: CacheBackend = Field(default=CacheBackend.MEMORY, description="Cache store backend")
    key: str = Field(default="blog_feed_cache", min_length=1, description="Cache key for the feed entry")
    ttl_seconds: int = Field(default=600, ge=1, le=86400, description="Seconds a cached feed stays fresh")
    sqlite_path: str = Field(default="data/blogfeed_cache.db", description="SQLite cache file path")
    operation_timeout: float = Field(default=2.0, gt=0, le=30, description="Seconds allowed for one cache read or write")


class LimitsSettings(BaseModel):
    """Request time bounds."""
    request_timeout: float = Field(default=8.0, gt=0, le=120, description="Upstream fetch timeout in seconds")
    handler_timeout: float = Field(default=10.0, gt=0, le=300, description="Upper bound for one inbound request in seconds")

    @field_validator("handler_timeout")
    @classmethod
    def validate_handler_timeout(cls, v, info):
        """Handler bound must leave room for the upstream fetch."""
        request_timeout = info.data.get("request_timeout")
        if request_timeout is not None and v < request_timeout:
            raise ValueError("handler_timeout must be >= request_timeout")
        return v


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/blogfeed.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class ServerSettings(BaseModel):
    """HTTP boundary configuration."""
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    route: str = Field(default="/api/blog", description="Path serving the blog feed")
    allowed_origin: str = Field(default="*", description="Access-Control-Allow-Origin value")

    @field_validator("route")
    @classmethod
    def validate_route(cls, v):
        """Routes are absolute paths."""
        if not v.startswith("/"):
            raise ValueError("route must start with '/'")
        return v


class BlogFeedSettings(BaseSettings):
    """Main application settings."""

    feed: FeedSettings = Field(default_factory=FeedSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    app_name: str = Field(default="BlogFeed", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "BLOGFEED_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        if self.cache.backend == CacheBackend.SQLITE:
            try:
                Path(self.cache.sqlite_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid cache path: {e}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> BlogFeedSettings:
    """Load settings from environment variables and defaults.

    Environment variables override Pydantic Field defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        # Precedence: environment, then .env, then Field defaults
        settings = BlogFeedSettings()
        settings.validate_configuration()
        return settings

    except Exception as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        )


# Global settings instance
_settings: Optional[BlogFeedSettings] = None


def get_settings(reload: bool = False) -> BlogFeedSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
