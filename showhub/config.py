import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load a local .env file if present.
load_dotenv()


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Document store (MongoDB)
    # -----------------
    DB_URI: str = (
        os.environ.get("DB_URI")
        or os.environ.get("MONGODB_URI")
        or "mongodb://localhost:27017"
    )
    DB_NAME: str = os.environ.get("DB_NAME", "techs-show-hub")
    # Fail fast instead of pymongo's 30s default when the store is down.
    DB_TIMEOUT_MS: int = int(os.environ.get("DB_TIMEOUT_MS", "5000"))

    # -----------------
    # Server
    # -----------------
    API_HOST: str = os.environ.get("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.environ.get("PORT") or os.environ.get("API_PORT") or "5000")

    # -----------------
    # Auth (JWT)
    # -----------------
    # There is no built-in default. Tokens cannot be issued until this is set.
    # Rotating it invalidates every outstanding token.
    AUTH_JWT_SECRET: str = (
        os.environ.get("AUTH_JWT_SECRET")
        or os.environ.get("ACCESS_TOKEN_SECRET")
        or ""
    )
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "60"))

    # Promote this email to Admin on startup (creates the user if needed).
    BOOTSTRAP_ADMIN_EMAIL: str = (os.environ.get("BOOTSTRAP_ADMIN_EMAIL") or "").strip().lower()

    # -----------------
    # CORS
    # -----------------
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    )

    # -----------------
    # Catalog
    # -----------------
    # Products a fresh member may post; subscribing raises it.
    DEFAULT_PRODUCT_LIMIT: int = int(os.environ.get("DEFAULT_PRODUCT_LIMIT", "1"))
    SUBSCRIBER_PRODUCT_LIMIT: int = int(os.environ.get("SUBSCRIBER_PRODUCT_LIMIT", "100"))

    DEFAULT_PAGE_SIZE: int = int(os.environ.get("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE: int = int(os.environ.get("MAX_PAGE_SIZE", "100"))
    TRENDING_LIMIT: int = int(os.environ.get("TRENDING_LIMIT", "6"))

    # -----------------
    # Billing (Stripe)
    # -----------------
    STRIPE_SECRET_KEY: str | None = os.environ.get("STRIPE_SECRET_KEY")
    PAYMENT_CURRENCY: str = os.environ.get("PAYMENT_CURRENCY", "usd")

    # Print every authorization denial (useful while wiring a frontend).
    AUTH_DEBUG_DENIALS: bool = _env_bool("AUTH_DEBUG_DENIALS", False) is True


def load_config() -> Config:
    return Config()
