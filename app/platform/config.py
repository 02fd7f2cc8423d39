from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Muza Life Storefront"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["https://localhost:3000"]

    # ── Database ────────────────────────────────
    DATABASE_URL: str
    DB_TIMEOUT_SECONDS: int = 10

    # Shared store for verification codes and authorized orders.
    # Leave empty to keep them in process memory (single instance only).
    REDIS_URL: Optional[str] = None

    # ── Email Configuration ─────────────────────
    MAIL_HOST: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = "your-email-id"
    MAIL_PASSWORD: str = "your-password"
    MAIL_ENCRYPTION: str = "tls"
    MAIL_FROM_ADDRESS: str = "example@localhost"
    MAIL_FROM_NAME: str = "Muza Life"

    EMAIL_RELAY_URL: str = ""
    EMAIL_RELAY_API_KEY: str = ""
    EMAIL_RELAY_TIMEOUT: int = 30

    # ── JWT / Auth ──────────────────────────────
    JWT_SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    ALGORITHM: str = "HS256"

    # ── OAuth providers ─────────────────────────
    GOOGLE_USERINFO_URL: str = "https://www.googleapis.com/oauth2/v3/userinfo"
    FACEBOOK_APP_ID: str = ""
    FACEBOOK_APP_SECRET: str = ""
    FACEBOOK_GRAPH_URL: str = "https://graph.facebook.com"
    OUTBOUND_HTTP_TIMEOUT_SECONDS: float = 10.0

    # ── Payments (LiqPay) ───────────────────────
    LIQPAY_PUBLIC_KEY: str = ""
    LIQPAY_PRIVATE_KEY: str = ""
    LIQPAY_CHECKOUT_URL: str = "https://www.liqpay.ua/api/3/checkout"
    LIQPAY_SANDBOX: bool = True
    PAYMENT_CURRENCY: str = "UAH"
    VERIFICATION_CODE_TTL_MINUTES: int = 10
    VERIFICATION_ENTRY_RETENTION_HOURS: int = 24
    AUTHORIZED_ORDER_TTL_HOURS: int = 48

    FRONTEND_URL: str = "https://localhost:3000"
    BACKEND_URL: str = "https://localhost:5001"

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
