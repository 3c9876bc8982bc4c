"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://storefront:storefront_dev_password@db:5432/storefront"

    # Storage backends: "memory" or "database"
    storage_backend: str = "memory"
    cart_storage_dir: str = ".carts"
    # JSON product rows loaded into the in-memory catalog at startup
    catalog_seed_path: str = ""

    # Pricing
    currency: str = "INR"
    free_shipping_threshold: Decimal = Decimal("500")
    flat_shipping_fee: Decimal = Decimal("50")
    tax_rate: Decimal = Decimal("0.18")

    # Payment gateway: "razorpay" or "simulated"
    payment_gateway: str = "simulated"
    razorpay_api_url: str = "https://api.razorpay.com/v1"
    razorpay_key_id: str = "rzp_test_key"
    razorpay_key_secret: str = "dev-razorpay-secret-change-in-production"

    # Shipping: "shiprocket" or "memory"
    shipment_backend: str = "memory"
    shiprocket_api_url: str = "https://apiv2.shiprocket.in/v1/external"
    shiprocket_email: str = ""
    shiprocket_password: str = ""
    shiprocket_token_validity_days: int = 9
    shiprocket_pickup_location: str = "Primary"

    # OTP
    otp_function_url: str = "http://localhost:3000"
    otp_country_code: str = "+91"

    # Authentication
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = "dev-anon-key"

    # HTTP clients
    http_timeout_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
