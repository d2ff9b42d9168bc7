"""
Configuration helpers and defaults.

Relay behavior is fixed; the values live here so tests can shorten the deadline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_TIMEOUT_MS = 30_000
CRAWLER_USER_AGENT = "Mozilla/5.0 (compatible; SiteCrawlerBot/1.0)"


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v is not None else default


@dataclass(frozen=True)
class Settings:
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    user_agent: str = CRAWLER_USER_AGENT
    log_level: str = "INFO"

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


def load_settings() -> Settings:
    """Load settings; only the log level comes from the environment."""

    return Settings(log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper())
