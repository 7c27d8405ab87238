"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # ======================
    # Timezone
    # ======================
    TIMEZONE: str = "Asia/Kolkata"

    # ======================
    # Analytics
    # ======================
    ANALYTICS_CONFIG_PATH: str = "config/analytics.yml"

    # ======================
    # Quote refresh
    # ======================
    REFRESH_ENABLED: bool = False
    REFRESH_INTERVAL_SECONDS: int = 3
    YF_SYMBOL_SUFFIX: str = ".NS"

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )


settings = Settings()
