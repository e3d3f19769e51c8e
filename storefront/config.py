# storefront/config.py
import logging
import os
from decimal import Decimal

# Use DATABASE_URL env var when available (makes containerized runs configurable)
# Fallback to a sensible default pointing to the compose Postgres service.
DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    "postgresql+asyncpg://postgres:postgres@db:5432/storefront_db",
)
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"

# 🔑 JWT
SECRET_KEY = os.getenv("JWT_SECRET", "supersecretkey")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
TOKEN_COOKIE = "token"

# 💳 Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
CURRENCY = os.getenv("CURRENCY", "usd")

# Frontend origin: CORS and payment redirect targets
CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:3000")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

# 💰 Pricing
FREE_SHIPPING_THRESHOLD = Decimal("100")
FLAT_SHIPPING_PRICE = Decimal("10")
TAX_RATE = Decimal("0.08")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def allowed_origins() -> list[str]:
    origins = ["http://localhost:3000"]
    if CLIENT_URL and CLIENT_URL not in origins:
        origins.append(CLIENT_URL)
    return origins


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
