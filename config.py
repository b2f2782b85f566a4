import os
import logging
from dataclasses import dataclass, field
from typing import List


def _env(name: str, default: str = ""):
    return field(default_factory=lambda: os.getenv(name, default))


def _flag(name: str, default: str):
    return field(default_factory=lambda: os.getenv(name, default).lower() in {"1", "true", "yes"})


@dataclass
class Settings:
    """Application settings, read from the environment when instantiated."""

    db_user: str = _env("DB_USER")
    db_pass: str = _env("DB_PASS")
    db_host: str = _env("DB_HOST", "project00.3ikpony.mongodb.net")
    database_url: str = _env("DATABASE_URL")
    database_name: str = _env("DATABASE_NAME", "styleDecorDB")

    access_token_secret: str = _env("ACCESS_TOKEN_SECRET")
    token_expire_days: int = field(default_factory=lambda: int(os.getenv("TOKEN_EXPIRE_DAYS", "7")))
    # "jwt" or "firebase"
    auth_provider: str = _env("AUTH_PROVIDER", "jwt")
    firebase_credentials: str = _env("FIREBASE_CREDENTIALS", "privateKey.json")
    enforce_roles: bool = _flag("ENFORCE_ROLES", "false")

    stripe_secret_key: str = _env("STRIPE_SECRET_KEY")
    payment_currency: str = _env("PAYMENT_CURRENCY", "bdt")

    cors_origins: str = _env("CORS_ORIGINS", "*")
    log_level: str = _env("LOG_LEVEL", "INFO")
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "5000")))

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once.

    Attaches a console handler. Does nothing if the root logger already
    has handlers, which happens under test runners and when
    ``create_app`` is called twice.
    """
    logger = logging.getLogger()
    if logger.handlers:
        return

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
