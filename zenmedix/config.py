"""Settings read from the environment and ``.env``."""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    ZenMedix API settings.

    Only ``JWT_SECRET_KEY`` is required; everything else has a default suited
    to a local setup with PocketBase on port 8090 and Redis on 6379.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="ZenMedix API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Record store
    record_store_url: str = Field(default="http://localhost:8090", alias="RECORD_STORE_URL")
    record_store_timeout: float = Field(default=10.0, alias="RECORD_STORE_TIMEOUT")
    # Acts for the reminder job and the webhook, which have no user session
    record_store_service_token: str | None = Field(
        default=None, alias="RECORD_STORE_SERVICE_TOKEN"
    )

    # Local storage
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str | None = Field(default=None, alias="REDIS_USERNAME")
    redis_password: str | None = Field(default=None, alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")
    storage_namespace: str = Field(default="zenmedix", alias="STORAGE_NAMESPACE")

    # Sessions and login throttling
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_timeout_minutes: int = Field(default=15, gt=0, alias="SESSION_TIMEOUT_MINUTES")
    session_max_age_hours: int = Field(default=12, gt=0, alias="SESSION_MAX_AGE_HOURS")
    max_login_attempts: int = Field(default=3, gt=0, alias="MAX_LOGIN_ATTEMPTS")
    lockout_duration_minutes: int = Field(default=5, gt=0, alias="LOCKOUT_DURATION_MINUTES")

    appointment_cache_ttl: int = Field(default=60, alias="APPOINTMENT_CACHE_TTL")

    # WhatsApp reminders
    ycloud_api_base: str = Field(
        default="https://api.ycloud.com/v2/whatsapp/messages",
        alias="YCLOUD_API_BASE",
    )
    default_timezone: str = Field(default="America/Mexico_City", alias="DEFAULT_TIMEZONE")

    # CORS, comma separated
    cors_origins_str: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @field_validator("default_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject timezone names the zoneinfo database does not know."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
