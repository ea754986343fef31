from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # API client settings
    API_BASE_URL: str = "http://localhost:8000/api"
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    REFRESH_TIMEOUT_SECONDS: float = 10.0
    SESSION_FILE: str = str(Path.home() / ".rental_hub" / "session.json")

    # JWT settings
    ACCESS_TOKEN_SECRET: str | None = None
    REFRESH_TOKEN_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_TTL_MINUTES: int = 15
    REFRESH_TOKEN_TTL_DAYS: int = 7
    REFRESH_COOKIE_NAME: str = "refreshToken"

    # Web security settings
    CORS_ALLOWED_ORIGINS: str = "http://localhost:5173"
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    # Realtime settings
    PRESENCE_OUTBOX_SIZE: int = 100

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def is_production(self) -> bool:
        return self.environment == "production"

    def cors_origins(self) -> list[str]:
        """Comma separated CORS_ALLOWED_ORIGINS as a list."""
        return [origin.strip() for origin in self.CORS_ALLOWED_ORIGINS.split(",") if origin.strip()]

    def refresh_cookie_secure(self) -> bool:
        # Browsers drop Secure cookies on plain http during local development
        return self.is_production()


settings = Settings()
