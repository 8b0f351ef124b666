import os

from pydantic import BaseModel


class Settings(BaseModel):
    BOT_TOKEN: str = os.getenv("BOT_TOKEN", "").strip()
    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", "8000"))
    APP_BASE_URL: str = os.getenv("APP_BASE_URL", "http://localhost:8000")
    BACKEND_URL: str = os.getenv("BACKEND_URL", "http://localhost:5000")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./suvix.db")
    PAYMENTS_PROVIDER: str = os.getenv("PAYMENTS_PROVIDER", "razorpay")
    RAZORPAY_CHECKOUT_URL: str = os.getenv(
        "RAZORPAY_CHECKOUT_URL", "https://checkout.razorpay.com/v1/checkout.js"
    )
    BRAND_NAME: str = os.getenv("BRAND_NAME", "SuviX")
    THEME_COLOR: str = os.getenv("THEME_COLOR", "#10B981")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "30"))
    RATING_SUCCESS_DELAY: float = float(os.getenv("RATING_SUCCESS_DELAY", "1.5"))
    PAYMENT_SUCCESS_DELAY: float = float(os.getenv("PAYMENT_SUCCESS_DELAY", "1.5"))
    NOTIFICATIONS_LIMIT: int = int(os.getenv("NOTIFICATIONS_LIMIT", "100"))
    DEFAULT_LOCALE: str = os.getenv("DEFAULT_LOCALE", "en")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
