"""Environment-driven settings for the relay and its clients."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from plantcare.models import ResolverOptions

DEFAULT_DISEASE_SPACE = "https://mai-22-plant-disease-detection.hf.space"
DEFAULT_CROP_SPACE = "https://mai-22-crop-recommendation-deployment.hf.space"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,https://flora-teal-one.vercel.app"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """Relay configuration."""
    disease_space_url: str = DEFAULT_DISEASE_SPACE
    disease_endpoint: str = f"{DEFAULT_DISEASE_SPACE}/predict"
    disease_history_endpoint: str = f"{DEFAULT_DISEASE_SPACE}/history"
    crop_base_url: str = DEFAULT_CROP_SPACE
    timeout_ms: int = 30000
    max_retries: int = 2
    initial_delay_ms: int = 500
    auth_token: Optional[str] = None
    cors_origins: List[str] = field(
        default_factory=lambda: DEFAULT_CORS_ORIGINS.split(",")
    )
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        space = os.getenv("PLANTCARE_DISEASE_SPACE_URL", DEFAULT_DISEASE_SPACE).rstrip("/")
        origins = os.getenv("PLANTCARE_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        return cls(
            disease_space_url=space,
            disease_endpoint=os.getenv("PLANTCARE_DISEASE_ENDPOINT", f"{space}/predict"),
            disease_history_endpoint=os.getenv(
                "PLANTCARE_DISEASE_HISTORY_ENDPOINT", f"{space}/history"
            ),
            crop_base_url=os.getenv("PLANTCARE_CROP_BASE_URL", DEFAULT_CROP_SPACE).rstrip("/"),
            timeout_ms=_int_env("PLANTCARE_TIMEOUT_MS", 30000),
            max_retries=_int_env("PLANTCARE_MAX_RETRIES", 2),
            initial_delay_ms=_int_env("PLANTCARE_INITIAL_DELAY_MS", 500),
            auth_token=os.getenv("PLANTCARE_AUTH_TOKEN") or None,
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_int_env("PORT", 5000),
        )

    def resolver_options(self, auth_token: Optional[str] = None) -> ResolverOptions:
        """Resolver options for one call, carrying the caller's token."""
        return ResolverOptions(
            max_retries_per_attempt=self.max_retries,
            timeout_ms=self.timeout_ms,
            initial_delay_ms=self.initial_delay_ms,
            auth_token=auth_token,
        )
