# tramar/core/config.py
from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- API Info ---
    API_TITLE: str = "Tramar PC Builder API"
    API_DESCRIPTION: str = "Storefront backend: catalog, cart, checkout and Stripe payments."
    API_VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # --- Server Configuration ---
    PORT: int = 5000
    HOST: str = "0.0.0.0"
    ENVIRONMENT: str = "development"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # --- Database ---
    DATABASE_URL: str = "sqlite:///./tramar.db"

    # --- Authentication ---
    ENCODING_SECRET_KEY: str = "dev-secret-change-me"
    ENCODING_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # --- Pricing ---
    TAX_RATE: Decimal = Decimal("0.15")
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("100.00")  # strictly above this ships free
    SHIPPING_FEE: Decimal = Decimal("10.00")

    # --- Order limits ---
    MAX_QUANTITY_PER_ITEM: int = 100
    MAX_ITEMS_PER_ORDER: int = 50

    # --- Stripe ---
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_WEBHOOK_TOLERANCE: int = 300  # seconds
    STRIPE_CURRENCY: str = "usd"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
