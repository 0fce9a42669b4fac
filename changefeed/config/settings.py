"""
Changefeed Configuration System
===============================

Configuration management with environment variables and Pydantic models.
Environment variables (``CHANGEFEED_`` prefix, ``__`` for nesting) override
Field defaults. Services receive a settings object explicitly; the pipeline
transforms never read configuration.
"""

from typing import Optional
from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from .. import __version__
from ..utils.exceptions import ConfigurationError


DEVELOPER_FEED_URL = "https://shopify.dev/changelog/feed.xml"
PLATFORM_FEED_URL = "https://changelog.shopify.com/feed.xml"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ClassifierVariant(str, Enum):
    """Breaking-change classification strategies."""
    SIMPLE = "simple"
    URGENCY = "urgency"


class SourceSettings(BaseModel):
    """Which changelog feeds are enabled and where they live."""
    developer_enabled: bool = Field(default=True, description="Expose developer changelog tools")
    platform_enabled: bool = Field(default=True, description="Expose platform changelog tools")
    developer_url: str = Field(default=DEVELOPER_FEED_URL, description="Developer changelog RSS feed")
    platform_url: str = Field(default=PLATFORM_FEED_URL, description="Platform changelog RSS feed")

    @field_validator('developer_url', 'platform_url')
    @classmethod
    def validate_feed_url(cls, v):
        """Feed URLs must be absolute http(s) URLs."""
        parsed = urlparse(v)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValueError(f"Feed URL must be an absolute http(s) URL: {v}")
        return v


class FetchSettings(BaseModel):
    """Outbound HTTP configuration."""
    timeout_seconds: float = Field(default=10.0, gt=0, le=120, description="Per-request timeout")
    health_check_timeout: float = Field(default=5.0, gt=0, le=60, description="HEAD request timeout for health checks")
    user_agent: str = Field(default=f"changefeed/{__version__}", description="User-Agent header")
    accept: str = Field(
        default="application/rss+xml, application/xml, text/xml",
        description="Accept header sent with feed requests",
    )


class LimitsSettings(BaseModel):
    """Default result counts per tool."""
    recent: int = Field(default=10, ge=1, le=30, description="Recent updates default")
    search: int = Field(default=15, ge=1, le=30, description="Search results default")
    breaking_changes: int = Field(default=15, ge=1, le=30, description="Breaking changes default")
    category: int = Field(default=10, ge=1, le=30, description="Category updates default")
    max_allowed: int = Field(default=30, ge=1, le=100, description="Maximum entries ever returned")


class ClassificationSettings(BaseModel):
    """Breaking-change classifier configuration."""
    variant: ClassifierVariant = Field(default=ClassifierVariant.URGENCY, description="Classifier strategy")
    include_deprecations: bool = Field(default=True, description="Tag deprecation notices (urgency variant)")
    lookback_days: int = Field(default=90, ge=1, le=3650, description="Urgency variant date cutoff")


class AggregationSettings(BaseModel):
    """Cross-source search behaviour."""
    partial_results: bool = Field(
        default=False,
        description="Return results from sources that succeeded instead of failing the whole search",
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class ChangefeedSettings(BaseSettings):
    """Main application settings."""

    sources: SourceSettings = Field(default_factory=SourceSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    classification: ClassificationSettings = Field(default_factory=ClassificationSettings)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="changefeed", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "CHANGEFEED_",
        "extra": "ignore",
    }

    def get_effective_log_level(self) -> str:
        """Debug mode wins over the configured level."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> ChangefeedSettings:
    """Read ``.env`` and the environment into a validated settings object.

    Raises:
        ConfigurationError: Any field fails validation
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        return ChangefeedSettings()
    except Exception as e:
        raise ConfigurationError(f"Failed to initialize settings: {e}") from e


_settings: Optional[ChangefeedSettings] = None


def get_settings(reload: bool = False) -> ChangefeedSettings:
    """Process-wide settings, loaded on first use or when ``reload`` is set."""
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
