import os
from typing import List, Optional
from dotenv import load_dotenv

from smartstay.models.errors import ConfigurationError

load_dotenv()

# API Configuration
API_TITLE = "SmartStay AI Gateway"
SERVICE_NAME = "smartstay"

# LiteAPI Configuration
LITEAPI_DEFAULT_BASE_URL = "https://api.liteapi.travel/v3.0"
LITEAPI_AUTH_SCHEMES = ("apikey", "bearer", "hmac", "none")
NON_REFUNDABLE_MARKER = "NON_REFUNDABLE"
PRICE_CHANGE_THRESHOLD_PERCENT = 5

# Gemini Configuration
GEMINI_DEFAULT_MODEL = "gemini-1.5-flash"
GEMINI_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_FALLBACK_MODELS = ["gemini-2.5-flash", "gemini-1.5-flash"]
GEMINI_DEFAULT_PERSONA = (
    "You are SmartStay AI, a helpful travel planner and hotel booking assistant."
)

# Rate search defaults (client side)
RATE_BATCH_SIZE = 50
DEFAULT_CURRENCY = "INR"
DEFAULT_GUEST_NATIONALITY = "IN"


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default).strip()
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


class Settings:
    """Settings read from the environment at construction time.

    Every request builds its own instance so that a changed ``.env`` or
    environment variable is picked up without restarting the server.
    """

    def __init__(self):
        # LiteAPI
        self.LITEAPI_BASE_URL: str = os.getenv("LITEAPI_BASE_URL", LITEAPI_DEFAULT_BASE_URL)
        self.LITEAPI_KEY: str = os.getenv("LITEAPI_KEY", "")
        self.LITEAPI_AUTH_HEADER_NAME: str = os.getenv("LITEAPI_AUTH_HEADER_NAME", "X-API-Key")
        self.LITEAPI_AUTH_SCHEME: str = os.getenv("LITEAPI_AUTH_SCHEME", "apikey").strip().lower()
        self.LITEAPI_TIMEOUT_MS: int = _env_number("LITEAPI_TIMEOUT_MS", "20000", int)
        self.LITEAPI_HMAC_SECRET: str = os.getenv("LITEAPI_HMAC_SECRET", "")
        self.LITEAPI_DEFAULT_COUNTRY: str = os.getenv("LITEAPI_DEFAULT_COUNTRY", "US")

        # Gemini
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY", "")
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", GEMINI_DEFAULT_MODEL)
        self.GEMINI_BASE_URL: str = os.getenv("GEMINI_BASE_URL", GEMINI_DEFAULT_BASE_URL)
        self.GEMINI_TIMEOUT_S: float = _env_number("GEMINI_TIMEOUT_S", "30", float)

        # Server
        self.CLIENT_ORIGIN: str = os.getenv("CLIENT_ORIGIN", "http://localhost:8501")
        self.PORT: int = _env_number("PORT", "5000", int)

    @property
    def liteapi_timeout_seconds(self) -> float:
        return self.LITEAPI_TIMEOUT_MS / 1000.0

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CLIENT_ORIGIN.split(",") if origin.strip()]

    @property
    def gemini_key_suffix(self) -> Optional[str]:
        return mask_key(self.GEMINI_API_KEY)

    @property
    def liteapi_key_suffix(self) -> Optional[str]:
        return mask_key(self.LITEAPI_KEY)


def mask_key(key: str) -> Optional[str]:
    """Only the last four characters of a secret are ever exposed."""
    if not key:
        return None
    return key[-4:]


def get_settings() -> Settings:
    return Settings()
