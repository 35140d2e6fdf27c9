from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./rifaria.db"
    upload_dir: str = "./uploads"

    # No fallbacks for secrets: startup fails if these are unset.
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    pix_api_url: str = "https://api.abacatepay.com/v1"
    pix_api_key: str
    pix_webhook_secret: str
    pix_charge_expires_in: int = 1200
    pix_customer_email_domain: str = "bilhete.rifa"
    gateway_timeout_seconds: float = 10.0

    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""
    currency: str = "brl"

    public_base_url: str = "http://localhost:8000"
    cors_origins: list[str] = ["http://localhost:3000"]
    allowed_hosts: list[str] = []

    auth_rate_limit: str = "5/minute"
    reservation_hold_minutes: int = 0
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
