"""
Profile Sync Core - Configuration Management

Centralized configuration for environment variables, CORS, and deployment settings.
This module ensures:
- No hardcoded secrets
- External integrations (billing, CRM, email) are configured from the environment
- Environment-specific settings (dev/staging/prod)
"""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==================== ENVIRONMENT ====================
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (auto-enabled in development)"
    )

    # ==================== DATABASE ====================
    DATABASE_URL: str = Field(
        default="postgresql+asyncpg://localhost:5432/profiles",
        description="PostgreSQL connection URL (asyncpg driver)"
    )
    DATABASE_SSL: bool = Field(
        default=False,
        description="Require SSL for the database connection"
    )

    # ==================== AUTHENTICATION ====================
    JWT_SECRET_KEY: str = Field(
        default="",
        description="Secret key used to verify bearer tokens"
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_AUDIENCE: str = Field(
        default="",
        description="Expected 'aud' claim (verification skipped when empty)"
    )
    JWT_ISSUER: str = Field(
        default="",
        description="Expected 'iss' claim (verification skipped when empty)"
    )
    INTERNAL_API_KEY: str = Field(
        default="",
        description="API key for the account-creation authority callbacks"
    )

    # ==================== CORS ====================
    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of allowed origins"
    )

    # ==================== INTEGRATIONS ====================
    BILLING_API_URL: str = Field(default="https://api.stripe.com")
    BILLING_API_KEY: str = Field(default="")
    CRM_API_URL: str = Field(
        default="",
        description="CRM REST base URL, e.g. https://instance.my.salesforce.com/services/data/v58.0"
    )
    CRM_ACCESS_TOKEN: str = Field(default="")
    EXTERNAL_API_TIMEOUT: float = Field(
        default=15.0,
        description="Timeout in seconds for billing/CRM calls"
    )

    # ==================== EMAIL ====================
    EMAIL_API_KEY: str = Field(default="")
    EMAIL_FROM_ADDRESS: str = Field(default="")
    CONFIRM_EMAIL_URL: str = Field(default="http://localhost:4200/confirm-email")
    FORGOT_PASSWORD_URL: str = Field(default="http://localhost:4200/forgot-password")

    # ==================== OBSERVABILITY ====================
    SENTRY_DSN: str = Field(default="")
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )
    TRACE_REQUESTS: bool = Field(
        default=False,
        description="Log method and path of every request"
    )

    # ==================== SERVER ====================
    SERVER_HOST: str = Field(default="127.0.0.1")
    SERVER_PORT: int = Field(default=8001)
    API_TITLE: str = Field(default="Profile Sync API")
    API_VERSION: str = Field(default="1.0.0")

    # ==================== COMPUTED PROPERTIES ====================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def debug_enabled(self) -> bool:
        """Enable debug in development or when explicitly set"""
        return self.DEBUG or self.is_development

    @property
    def cors_origins_list(self) -> List[str]:
        if self.CORS_ORIGINS and self.CORS_ORIGINS != "*":
            origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        else:
            origins = []

        if not self.is_production:
            origins.extend([
                "http://localhost:4200",
                "http://localhost:3000",
                "http://127.0.0.1:4200",
            ])

        return sorted(set(origins))

    @property
    def billing_configured(self) -> bool:
        return bool(self.BILLING_API_URL and self.BILLING_API_KEY)

    @property
    def crm_configured(self) -> bool:
        return bool(self.CRM_API_URL and self.CRM_ACCESS_TOKEN)

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration for production deployment.
        Returns list of validation errors.
        """
        errors = []

        if not self.JWT_SECRET_KEY:
            errors.append("JWT_SECRET_KEY is required")
        elif len(self.JWT_SECRET_KEY) < 32:
            errors.append("JWT_SECRET_KEY should be at least 32 characters")

        if self.is_production:
            if self.CORS_ORIGINS == "*":
                errors.append("CORS_ORIGINS cannot be '*' in production")

            if "localhost" in self.DATABASE_URL.lower():
                errors.append("DATABASE_URL cannot point to localhost in production")

            if not self.INTERNAL_API_KEY:
                errors.append("INTERNAL_API_KEY is required in production")

            if self.DEBUG:
                errors.append("DEBUG should be False in production")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once and cached for the application lifetime.
    """
    settings = Settings()

    if settings.is_production:
        errors = settings.validate_production_config()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ValueError(f"Production configuration invalid: {', '.join(errors)}")

    return settings


# ==================== CORS CONFIGURATION ====================

def get_cors_config() -> dict:
    """Get CORS middleware configuration."""
    settings = get_settings()

    return {
        "allow_origins": settings.cors_origins_list,
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "PUT"],
        "allow_headers": [
            "Authorization",
            "Content-Type",
            "X-Request-ID",
        ],
        "expose_headers": ["X-Request-ID"],
        "max_age": 600,
    }


# ==================== ENVIRONMENT VALIDATION ====================

def validate_environment() -> dict:
    """
    Validate all required environment variables.

    Returns a status dict with validation results.
    """
    settings = get_settings()

    status = {
        "valid": True,
        "environment": settings.ENVIRONMENT,
        "errors": [],
        "warnings": [],
        "variables": {}
    }

    required_vars = [
        ("DATABASE_URL", settings.DATABASE_URL),
        ("JWT_SECRET_KEY", settings.JWT_SECRET_KEY),
    ]

    for name, value in required_vars:
        if not value:
            status["errors"].append(f"{name} is not set")
            status["valid"] = False
        else:
            status["variables"][name] = "set"

    optional_vars = [
        ("BILLING_API_KEY", settings.BILLING_API_KEY, "Billing address sync disabled"),
        ("CRM_ACCESS_TOKEN", settings.CRM_ACCESS_TOKEN, "CRM address sync disabled"),
        ("EMAIL_API_KEY", settings.EMAIL_API_KEY, "Account emails disabled"),
        ("SENTRY_DSN", settings.SENTRY_DSN, "Error tracking disabled"),
    ]

    for name, value, warning in optional_vars:
        if not value:
            status["warnings"].append(warning)
            status["variables"][name] = "not set"
        else:
            status["variables"][name] = "set"

    errors = settings.validate_production_config()
    if errors:
        status["errors"].extend(errors)
        status["valid"] = False

    return status
