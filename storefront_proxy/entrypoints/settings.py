from urllib.parse import urlparse

from pydantic import Field, ValidationInfo, field_validator
from pydantic import ValidationError as SettingsValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from storefront_proxy.domain.errors import ConfigurationError


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    SHOPIFY_STORE_DOMAIN: str = Field(min_length=1)
    SHOPIFY_API_VERSION: str = "2025-01"
    SHOPIFY_STOREFRONT_TOKEN: str = Field(min_length=1)
    SHOPIFY_ADMIN_API_TOKEN: str = Field(min_length=1)

    JWT_SECRET: str = Field(min_length=1)
    SESSION_TOKEN_TTL_DAYS: int = 7

    RESEND_API_KEY: str | None = None
    FROM_EMAIL: str = "no-reply@example.com"
    VERIFY_EMAIL_URL: str = "/.netlify/functions/verify-email"
    VERIFY_REDIRECT_URL: str = "/verify-success.html"

    # Comma-separated, e.g. "https://shop.example.com,http://localhost:3000"
    ALLOWED_ORIGINS: str = ""

    REVIEWS_PRODUCT_ID: str = "gid://shopify/Product/15059429687620"
    REVIEWS_METAFIELD_NAMESPACE: str = "custom"
    REVIEWS_METAFIELD_KEY: str = "reviews"
    ENABLE_REVIEW_SEEDING: bool = False

    READ_RETRY_ATTEMPTS: int = 3
    READ_RETRY_WAIT: float = 0.3

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @field_validator("VERIFY_EMAIL_URL")
    @classmethod
    def _absolute_when_delivering(cls, value: str, info: ValidationInfo) -> str:
        # the link ends up in a real inbox once Resend is configured
        url = urlparse(value)
        if info.data.get("RESEND_API_KEY") and (url.scheme not in ("http", "https") or not url.netloc):
            raise ValueError("must be an absolute http(s) URL when RESEND_API_KEY is set")
        return value

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


def load_config(**overrides) -> Config:
    """Build the configuration once at startup.

    Raises:
        ConfigurationError: a required variable is missing or invalid.
    """
    try:
        return Config(**overrides)
    except SettingsValidationError as exc:
        names = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ConfigurationError(
            f"Missing or invalid configuration: {', '.join(names)}", variables=names
        ) from exc
