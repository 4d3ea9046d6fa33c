from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    BUSINESS_TIMEZONE: str = "Asia/Jerusalem"

    DAY_START_HOUR: int = 8
    DAY_END_HOUR: int = 20
    INTERVAL_MINUTES: int = 15
    PIXELS_PER_MINUTE_SCALE: int = 3
    MIN_ROW_HEIGHT_PX: float = 24.0

    SNAPSHOT_LIMIT: int = 8
    REFRESH_AFTER_MUTATION: bool = True

    BOOKING_API_BASE_URL: str | None = None
    BOOKING_API_KEY: str | None = None
    BOOKING_API_TIMEOUT_SECONDS: float = 10.0


settings = Settings()
