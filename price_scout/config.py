"""Runtime settings, read from PRICE_SCOUT_* environment variables."""
import os
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

ENV_PREFIX = "PRICE_SCOUT_"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
}


class ScoutSettings(BaseModel):
    """Tunables for fetching, rendering, and batching. Times are in seconds."""

    headless: bool = True
    log_level: str = "INFO"
    user_agent: str = DEFAULT_USER_AGENT

    # Orchestrator
    batch_size: int = 3
    batch_pause: float = 0.1

    # Retrying fetcher
    max_retries: int = 3
    base_timeout: float = 20.0
    timeout_increment: float = 15.0
    retry_jitter_min: float = 2.0
    retry_jitter_max: float = 5.0

    # Challenge renderer
    max_surfaces: int = 2
    js_completion_delay: float = 3.5
    render_timeout: float = 30.0
    max_records: int = 15
    max_price: float = 200.0
    min_title_length: int = 5

    @field_validator(
        "batch_size", "max_retries", "max_surfaces", "max_records", "min_title_length",
    )
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("base_timeout", "render_timeout", "max_price")
    @classmethod
    def _positive_float(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator(
        "batch_pause", "timeout_increment", "retry_jitter_min", "retry_jitter_max",
        "js_completion_delay",
    )
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @model_validator(mode="after")
    def _jitter_range(self) -> "ScoutSettings":
        if self.retry_jitter_min > self.retry_jitter_max:
            raise ValueError("retry_jitter_min must not exceed retry_jitter_max")
        return self

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ScoutSettings":
        """Build settings from the environment; unset variables keep defaults."""
        env = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is not None:
                values[name] = raw
        return cls(**values)
