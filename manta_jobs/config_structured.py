"""
Structured configuration for the Manta job client using typed dataclasses.

This is the AUTHORITATIVE source of truth for all configuration values.
``config.py`` imports from here and exposes flat constants.

Each subsystem gets its own dataclass.  Values come from the environment
(``MANTA_*`` variables) when ``get_config()`` builds the singleton, or from
an explicit mapping via ``MantaJobsConfig.from_env(environ)`` when a caller
(e.g. a test) wants a scoped configuration.

Usage:
    from manta_jobs.config_structured import get_config
    cfg = get_config()
    cfg.connection.url       # Manta endpoint
    cfg.poll.max_attempts    # JobPoller attempt cap
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

DEFAULT_MANTA_URL = "https://us-central.manta.mnx.io"


def _env_bool(value: Optional[str]) -> bool:
    """Parse a truthy environment value."""
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class ConnectionConfig:
    """Endpoint and credential settings for the Manta service."""

    url: str = DEFAULT_MANTA_URL
    account: str = ""
    subuser: Optional[str] = None
    key_id: Optional[str] = None
    key_path: Optional[str] = None
    insecure: bool = False
    private_key: Optional[str] = field(default=None, repr=False)
    key_passphrase: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        self.url = str(self.url).strip().rstrip("/") or DEFAULT_MANTA_URL
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"MANTA_URL must be an http(s) URL, got {self.url!r}")
        self.account = str(self.account or "").strip()
        if self.subuser is not None:
            self.subuser = str(self.subuser).strip() or None


@dataclass
class RetryConfig:
    """HTTP retry settings for idempotent requests."""

    max_retries: int = 3
    backoff_seconds: float = 0.5
    timeout_seconds: float = 30.0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")


@dataclass
class RateLimitConfig:
    """Token-bucket settings for outgoing requests."""

    requests_per_second: float = 10.0
    burst: int = 5


@dataclass
class PollConfig:
    """Job completion polling cadence.

    A fixed interval with an attempt cap: completion latency is decided by
    the server, so the client only bounds how long it is willing to watch.
    """

    max_attempts: int = 20
    interval_seconds: float = 2.0

    def __post_init__(self):
        if not isinstance(self.max_attempts, int) or self.max_attempts < 1:
            raise ValueError(f"poll max_attempts must be a positive integer, got {self.max_attempts}")
        if self.interval_seconds < 0:
            raise ValueError(f"poll interval must be >= 0, got {self.interval_seconds}")


@dataclass
class MantaJobsConfig:
    """Top-level configuration aggregating all subsystems."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    poll: PollConfig = field(default_factory=PollConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MantaJobsConfig":
        """Build a config from ``MANTA_*`` variables in *environ* (default ``os.environ``)."""
        env = os.environ if environ is None else environ
        connection = ConnectionConfig(
            url=env.get("MANTA_URL", DEFAULT_MANTA_URL),
            account=env.get("MANTA_USER", ""),
            subuser=env.get("MANTA_SUBUSER"),
            key_id=env.get("MANTA_KEY_ID"),
            key_path=env.get("MANTA_KEY_PATH"),
            insecure=_env_bool(env.get("MANTA_TLS_INSECURE")),
            private_key=env.get("MANTA_PRIVATE_KEY"),
            key_passphrase=env.get("MANTA_KEY_PASSPHRASE"),
        )
        poll = PollConfig()
        if env.get("MANTA_POLL_MAX_ATTEMPTS"):
            poll = PollConfig(
                max_attempts=int(env["MANTA_POLL_MAX_ATTEMPTS"]),
                interval_seconds=poll.interval_seconds,
            )
        if env.get("MANTA_POLL_INTERVAL"):
            poll = PollConfig(
                max_attempts=poll.max_attempts,
                interval_seconds=float(env["MANTA_POLL_INTERVAL"]),
            )
        return cls(connection=connection, poll=poll)


# ── Module-level singleton ──────────────────────────────────────────

_CONFIG: Optional[MantaJobsConfig] = None


def get_config() -> MantaJobsConfig:
    """Return the singleton MantaJobsConfig instance.

    On first call, builds the config from the process environment.
    Subsequent calls return the same instance so all callers share one
    source of truth.
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = MantaJobsConfig.from_env()
    return _CONFIG


def reset_config() -> None:
    """Drop the cached singleton so the next ``get_config()`` re-reads the environment."""
    global _CONFIG
    _CONFIG = None
