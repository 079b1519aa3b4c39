"""Configuration management for the Muthawwif site."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str = "sqlite:///data/db/site.db"
    echo: bool = False


class AuthConfig(BaseModel):
    """Hosted auth provider configuration."""

    url: str = "http://localhost:9999"
    anon_key: str = ""
    timeout: float = 10.0


class APIConfig(BaseModel):
    """API configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = "data/logs/site.log"


class SiteConfig(BaseModel):
    """Public site configuration."""

    name: str = "Muniful Ikhsan Alhafizi"
    tagline: str = "Muthawwif Profesional"
    default_whatsapp: str = "6282119097273"
    whatsapp_greeting: str = (
        "Assalamualaikum, saya ingin berkonsultasi tentang persiapan umrah/haji"
    )
    home_featured_products: int = 4
    home_latest_posts: int = 3
    home_testimonials: int = 6


class AnalyticsConfig(BaseModel):
    """Analytics configuration."""

    default_range_days: int = 30
    allowed_ranges: list[int] = Field(default_factory=lambda: [7, 30, 90, 365])
    top_products: int = 5
    recent_purchases: int = 10
    trend_months: int = 12


class ListingConfig(BaseModel):
    """Listing configuration."""

    blog_per_page: int = 9
    dashboard_recent: int = 5


class Config(BaseModel):
    """Main configuration model."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    listing: ListingConfig = Field(default_factory=ListingConfig)


class Settings(BaseSettings):
    """Environment-based settings."""

    # Database
    database_url: str = ""

    # Auth provider
    auth_url: str = ""
    auth_anon_key: str = ""

    # Logging
    log_level: str = ""

    # API
    api_host: str = ""
    api_port: int = 0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class ConfigManager:
    """Configuration manager for loading and merging config sources."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to YAML configuration file
        """
        load_dotenv()

        if config_path is None:
            config_path = Path(__file__).parent.parent.parent / "config" / "config.yaml"

        self.config_path = config_path
        self.yaml_config = self._load_yaml()

        self.env_settings = Settings()

        self.config = self._merge_config()

    def _load_yaml(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        if not self.config_path.exists():
            return {}

        with open(self.config_path, "r") as f:
            return yaml.safe_load(f) or {}

    def _merge_config(self) -> Config:
        """Merge YAML config with environment variables."""
        merged = self.yaml_config.copy()

        if self.env_settings.database_url:
            merged.setdefault("database", {})["url"] = self.env_settings.database_url

        if self.env_settings.auth_url:
            merged.setdefault("auth", {})["url"] = self.env_settings.auth_url

        if self.env_settings.auth_anon_key:
            merged.setdefault("auth", {})["anon_key"] = self.env_settings.auth_anon_key

        if self.env_settings.log_level:
            merged.setdefault("logging", {})["level"] = self.env_settings.log_level

        if self.env_settings.api_host:
            merged.setdefault("api", {})["host"] = self.env_settings.api_host

        if self.env_settings.api_port:
            merged.setdefault("api", {})["port"] = self.env_settings.api_port

        return Config(**merged)


# Global config instance
_config_manager: Optional[ConfigManager] = None


def get_config() -> Config:
    """Get global configuration instance."""
    return get_config_manager().config


def get_settings() -> Settings:
    """Get environment settings."""
    return get_config_manager().env_settings


def get_config_manager() -> ConfigManager:
    """Get configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
