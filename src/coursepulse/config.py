"""Environment-driven settings."""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    db_path: str = "coursepulse.duckdb"
    auth_secret: str = "change-me"
    jwt_alg: str = "HS256"
    meta_pixel_id: Optional[str] = None
    meta_access_token: Optional[str] = None
    meta_api_version: Optional[str] = "v18.0"
    site_url: Optional[str] = None
    posthog_api_key: Optional[str] = None
    posthog_host: str = "https://us.i.posthog.com"
    forwarder_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=os.getenv("COURSEPULSE_DB_PATH", "coursepulse.duckdb"),
            auth_secret=os.getenv("AUTH_SECRET", "change-me"),
            jwt_alg=os.getenv("JWT_ALG", "HS256"),
            meta_pixel_id=_optional("META_PIXEL_ID"),
            meta_access_token=_optional("META_CAPI_ACCESS_TOKEN"),
            meta_api_version=os.getenv("META_API_VERSION", "v18.0").strip() or None,
            site_url=_optional("SITE_URL"),
            posthog_api_key=_optional("POSTHOG_API_KEY"),
            posthog_host=os.getenv("POSTHOG_HOST", "https://us.i.posthog.com"),
            forwarder_timeout=float(os.getenv("FORWARDER_TIMEOUT_SECONDS", "5")),
        )


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Settings for the running process, read once from the environment."""
    return Settings.from_env()
