import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tinkstudio.db")
# Heroku/Render style URLs are rejected by SQLAlchemy 2.x
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = "HS256"
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "10080"))  # 7 days

# Single admin account (dashboard login)
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

# Public site used to build claim / landing / verify links
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5174").rstrip("/")

# Gift cards
CLAIM_TOKEN_TTL_MINUTES = int(os.getenv("CLAIM_TOKEN_TTL_MINUTES", "10080"))
GIFT_CARD_VALIDITY_MONTHS = int(os.getenv("GIFT_CARD_VALIDITY_MONTHS", "12"))
GIFT_CARD_DEFAULT_CURRENCY = os.getenv("GIFT_CARD_DEFAULT_CURRENCY", "EUR")

# Scheduling
STUDIO_TIMEZONE = os.getenv("STUDIO_TIMEZONE", "Europe/Rome")
BUSINESS_HOURS_START = int(os.getenv("BUSINESS_HOURS_START", "9"))
BUSINESS_HOURS_END = int(os.getenv("BUSINESS_HOURS_END", "21"))
MIN_APPOINTMENT_MINUTES = int(os.getenv("MIN_APPOINTMENT_MINUTES", "15"))
MAX_APPOINTMENT_MINUTES = int(os.getenv("MAX_APPOINTMENT_MINUTES", "720"))
AVAILABILITY_SLOT_MINUTES = int(os.getenv("AVAILABILITY_SLOT_MINUTES", "30"))

# Public claim routes rate limit (100 requests per 15 minutes per IP)
CLAIM_RATE_LIMIT = int(os.getenv("CLAIM_RATE_LIMIT", "100"))
CLAIM_RATE_WINDOW_SECONDS = int(os.getenv("CLAIM_RATE_WINDOW_SECONDS", "900"))

# HTTP layer
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:5174,http://localhost:3000,"
    "https://tinkstudio.it,https://www.tinkstudio.it",
).split(",")
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"
