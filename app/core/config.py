"""Application configuration."""

from os import getenv

from pydantic import BaseModel, model_validator


class TokenSettings(BaseModel):
    """Signing configuration handed to the token authority."""

    secret_key: str
    algorithm: str = "HS256"
    issuer: str
    audience: str
    access_token_minutes: int = 60
    refresh_token_days: int = 7

    @model_validator(mode="after")
    def _check_lifetimes(self) -> "TokenSettings":
        if len(self.secret_key) < 32:
            raise ValueError("JWT secret key must be at least 32 characters long")
        if self.access_token_minutes <= 0 or self.refresh_token_days <= 0:
            raise ValueError("Token lifetimes must be positive")
        if self.access_token_minutes >= self.refresh_token_days * 24 * 60:
            raise ValueError("Access token lifetime must be shorter than refresh token lifetime")
        return self


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Fleet Admin API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    log_level: str = getenv("LOG_LEVEL", "INFO")
    database_url: str = getenv("DATABASE_URL", "sqlite:///./fleet_admin.db")
    audit_database_url: str = getenv("AUDIT_DATABASE_URL", "sqlite:///./fleet_audit.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_issuer: str = getenv("JWT_ISSUER", "fleet-admin-api")
    jwt_audience: str = getenv("JWT_AUDIENCE", "fleet-admin-clients")
    jwt_access_token_minutes: int = int(getenv("JWT_ACCESS_TOKEN_MINUTES", "60"))
    jwt_refresh_token_days: int = int(getenv("JWT_REFRESH_TOKEN_DAYS", "7"))
    refresh_token_retention_days: int = int(getenv("REFRESH_TOKEN_RETENTION_DAYS", "30"))
    seed_admin_email: str = getenv("SEED_ADMIN_EMAIL", "admin@mail.com")
    seed_admin_password: str = getenv("SEED_ADMIN_PASSWORD", "P@ssw0rd")

    def token_settings(self) -> TokenSettings:
        """Build the explicit signing configuration for the token authority."""
        return TokenSettings(
            secret_key=self.jwt_secret_key,
            algorithm=self.jwt_algorithm,
            issuer=self.jwt_issuer,
            audience=self.jwt_audience,
            access_token_minutes=self.jwt_access_token_minutes,
            refresh_token_days=self.jwt_refresh_token_days,
        )


settings: Settings = Settings()
