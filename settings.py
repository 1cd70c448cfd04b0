"""
Configuration for the storefront API.

Values come from environment variables (a local .env file is loaded first).
Build one Settings object at startup and hand it to create_app().
"""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime settings for the API."""

    database_url: str = "sqlite:///./storefront.db"

    # Session tokens
    jwt_secret: str = "devsecret"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    session_cookie: str = "session_token"

    # bcrypt cost factor; tests drop this to the minimum (4)
    bcrypt_rounds: int = 12

    environment: str = "development"
    seed_products: bool = True
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from the process environment."""
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL") or cls.database_url,
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_expire_days=int(os.getenv("JWT_EXPIRE_DAYS", cls.jwt_expire_days)),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", cls.bcrypt_rounds)),
            environment=os.getenv("ENVIRONMENT", cls.environment),
            seed_products=_env_bool("SEED_PRODUCTS", cls.seed_products),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
