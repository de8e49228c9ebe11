"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version
    VERSION: str = "0.1.0"

    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./caretrack.db"

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 12

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (base of invite links)
    FRONTEND_URL: str = "http://localhost:3000"

    # Invite email delivery (Resend)
    RESEND_API_KEY: str = ""
    INVITE_FROM_EMAIL: str = "Parkinson Care <onboarding@resend.dev>"

    # Insight generator (Gemini)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    INSIGHT_TIMEOUT_SECONDS: float = 60.0

    # Metrics
    SIDE_EFFECT_TOP_N: int = 5

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 120
    RATE_LIMIT_INVITES: int = 10
    RATE_LIMIT_INSIGHTS: int = 5
    RATE_LIMIT_REPORTS: int = 10

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets


settings = Settings()
