"""
Configuration for the writing companion.

Centralized configuration with:
- Environment variable support (.env loaded via python-dotenv)
- Defaults matching the hosted deployment
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass
class UnsplashConfig:
    """Upstream image search API configuration"""
    access_key: str = field(default_factory=lambda: os.getenv('UNSPLASH_ACCESS_KEY', ''))
    api_url: str = field(default_factory=lambda: os.getenv('UNSPLASH_API_URL', 'https://api.unsplash.com/search/photos'))
    per_page: int = field(default_factory=lambda: int(os.getenv('UNSPLASH_PER_PAGE', '6')))
    orientation: str = field(default_factory=lambda: os.getenv('UNSPLASH_ORIENTATION', 'portrait'))
    content_filter: str = field(default_factory=lambda: os.getenv('UNSPLASH_CONTENT_FILTER', 'high'))
    timeout_seconds: float = field(default_factory=lambda: float(os.getenv('UNSPLASH_TIMEOUT', '15')))
    # Referral marker appended to every photographer profile link
    utm_source: str = field(default_factory=lambda: os.getenv('UTM_SOURCE', 'zen-writing'))

    @property
    def is_configured(self) -> bool:
        return bool(self.access_key)


@dataclass
class ServerConfig:
    """Proxy server configuration"""
    port: int = field(default_factory=lambda: int(os.getenv('PORT', '3001')))
    cors_origins: list = field(default_factory=lambda: os.getenv('CORS_ORIGINS', '*').split(','))
    sentry_dsn: str = field(default_factory=lambda: os.getenv('SENTRY_DSN', ''))
    environment: str = field(default_factory=lambda: os.getenv('ENV', 'development'))


@dataclass
class WriterConfig:
    """Client pipeline configuration (debounce, caching, notifications)"""
    api_base_url: str = field(
        default_factory=lambda: os.getenv('WRITER_API_URL') or os.getenv('REACT_APP_API_URL', 'http://localhost:3001')
    )
    debounce_seconds: float = field(default_factory=lambda: int(os.getenv('SEARCH_DEBOUNCE_MS', '800')) / 1000.0)
    search_timeout_seconds: float = field(default_factory=lambda: float(os.getenv('SEARCH_TIMEOUT_SECONDS', '20')))
    search_cache_ttl_seconds: float = field(default_factory=lambda: float(os.getenv('SEARCH_CACHE_TTL_SECONDS', '300')))
    notification_timeout_seconds: float = field(default_factory=lambda: float(os.getenv('NOTIFICATION_TIMEOUT_SECONDS', '3')))
    focus_scale: float = field(default_factory=lambda: float(os.getenv('FOCUS_SCALE', '1.8')))


@dataclass
class Settings:
    unsplash: UnsplashConfig = field(default_factory=UnsplashConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    writer: WriterConfig = field(default_factory=WriterConfig)


@lru_cache()
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
