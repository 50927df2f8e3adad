import json
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database settings
    DATABASE_URL: str = "postgresql://localhost:5432/castops"

    # Auth settings
    AUTH_JWKS_URL: str = "http://localhost:9999/auth/v1/.well-known/jwks.json"
    AUTH_AUDIENCE: str = "authenticated"
    ADMIN_ROLE: str = "admin"

    # Slack settings (required for order notifications)
    SLACK_BOT_TOKEN: str | None = None
    SLACK_CHANNEL_INTERNAL: str | None = None
    SLACK_MENTION_GROUP_ID: str | None = None

    # Google Calendar settings (holds are skipped when absent)
    GOOGLE_SERVICE_ACCOUNT_KEY: str | None = None
    GOOGLE_CALENDAR_ID: str | None = None
    CALENDAR_TIMEZONE: str = "Asia/Tokyo"

    # Notion settings (tracker sync is skipped when absent)
    NOTION_TOKEN: str | None = None
    NOTION_VERSION: str = "2022-06-28"

    # Proxy settings for request context
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def slack_configured(self) -> bool:
        """Slack bot token and target channel are both present."""
        return bool(self.SLACK_BOT_TOKEN and self.SLACK_CHANNEL_INTERNAL)

    def calendar_configured(self) -> bool:
        """Service account key and target calendar are both present."""
        return bool(self.GOOGLE_SERVICE_ACCOUNT_KEY and self.GOOGLE_CALENDAR_ID)

    def notion_configured(self) -> bool:
        return bool(self.NOTION_TOKEN)

    def service_account_info(self) -> dict | None:
        """
        Parse the service account JSON key.

        Returns None when the key is absent or not valid JSON so callers can
        treat the calendar integration as disabled.
        """
        if not self.GOOGLE_SERVICE_ACCOUNT_KEY:
            return None
        try:
            return json.loads(self.GOOGLE_SERVICE_ACCOUNT_KEY.strip())
        except ValueError:
            return None

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 1,
                    "max_size": 4,
                    "timeout": 15.0,
                }
            )

        return config


settings = Settings()
