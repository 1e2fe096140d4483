from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Shortlink Engine"
    app_version: str = "1.0.0"

    # Database
    database_url: str = "sqlite:///./shortlink.db"

    # Domain routing
    # Bare host without scheme or port, e.g. "qrurl.dev"
    root_domain: str = "localhost"

    # Shortcode allocation
    shortcode_length: int = 6
    max_retries: int = 5
    anonymous_expiry_days: int = 365

    # Rate limiting (anonymous creation, per source address per UTC day)
    rate_limit_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    rate_limit_max_per_day: int = 5
    rate_limit_ttl_seconds: int = 25 * 60 * 60

    # Click tracking
    click_hash_salt: str = "change-me-in-production"
    source_ip_header: str = "cf-connecting-ip"  # Set by the edge, not forgeable by clients
    country_header: str = "cf-ipcountry"

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
