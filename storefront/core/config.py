"""Application configuration management using Pydantic Settings."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="storefront-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Supabase signing key JWK (JSON string) for JWT token verification")
    supabase_jwt_audience: str = Field(default="authenticated", description="Expected aud claim on Supabase access tokens")

    # Razorpay
    razorpay_key_id: str = Field(default="", description="Razorpay key id (also handed to the checkout widget)")
    razorpay_key_secret: str = Field(default="", description="Razorpay key secret, signs payment callbacks")
    razorpay_webhook_secret: str = Field(default="", description="Razorpay webhook signing secret")

    # Pricing
    currency: str = Field(default="INR", description="ISO currency code for gateway orders")
    tax_rate: Decimal = Field(default=Decimal("0.05"), description="Tax rate applied to the subtotal")
    free_delivery_threshold: int = Field(default=400, description="Subtotal at which delivery becomes free")
    delivery_fee: int = Field(default=50, description="Delivery fee below the free delivery threshold")

    # Orders
    order_history_limit: int = Field(default=50, description="Max orders returned by order history")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_razorpay_test_mode(self) -> bool:
        """Check if using Razorpay test keys."""
        return self.razorpay_key_id.startswith("rzp_test_")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
