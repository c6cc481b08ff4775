"""
Configuration management.
Simple .env based config, overridable through environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


# Development fallback; rejected at startup when running in production
DEFAULT_SESSION_SECRET = "bolt-default-secret-key-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    environment: str = "development"  # "production" enables Secure cookies

    # Security
    session_secret: str = DEFAULT_SESSION_SECRET
    session_cookie_name: str = "bolt_session"
    session_max_age: int = 60 * 60 * 24 * 30  # 30 days
    bcrypt_rounds: int = 10

    # Database
    database_path: str = "./data/bolt.db"

    # Logging
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def uses_default_secret(self) -> bool:
        return self.session_secret == DEFAULT_SESSION_SECRET


# Global settings instance
settings = Settings()
