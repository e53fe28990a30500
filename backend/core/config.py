from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    APP_NAME: str = "PodcastParty Auth API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Security settings
    JWT_SECRET: str = ""
    JWT_REFRESH_SECRET: str = ""
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    BCRYPT_ROUNDS: int = 10

    # CORS settings (comma separated)
    CORS_WHITELIST: str = "http://localhost:5173,http://localhost:3000"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT: str = "100/15 minutes"

    # MongoDB
    MONGO_URI: Optional[str] = None
    MONGO_DB: str = "podcastparty"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TTL_DAYS: int = 7
    LOG_TO_FILE: bool = True

    @model_validator(mode="after")
    def _check_secrets(self):
        if not self.JWT_SECRET:
            raise ValueError("JWT_SECRET environment variable is required")
        if not self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_REFRESH_SECRET environment variable is required")
        if self.JWT_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
        return self

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_WHITELIST.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


class AuthConfig(BaseModel):
    """Everything the auth component needs, handed over at construction."""

    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 30
    bcrypt_rounds: int = 10

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        return cls(
            access_secret=settings.JWT_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            algorithm=settings.ALGORITHM,
            access_token_expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            refresh_token_expire_days=settings.REFRESH_TOKEN_EXPIRE_DAYS,
            bcrypt_rounds=settings.BCRYPT_ROUNDS,
        )


def get_settings() -> Settings:
    """Build settings from the environment / .env file."""
    return Settings()
