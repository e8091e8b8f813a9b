"""
Central configuration for the Manta job client.

Flat-constant interface.  Values are derived from the structured config
singleton in ``config_structured.py`` so there is a single source of truth.

Config Status Legend
====================
  ACTIVE      - Imported and used by running code.
  PLACEHOLDER - Defined for future use; not yet wired end-to-end.

Search for ``# STATUS:`` to locate all annotations.
"""
from typing import Tuple

from .config_structured import get_config as _get_config

_cfg = _get_config()

# ── Connection ─────────────────────────────────────────────────────────
MANTA_URL = _cfg.connection.url                   # STATUS: ACTIVE - validate_config() scheme check
MANTA_ACCOUNT = _cfg.connection.account           # STATUS: ACTIVE - validate_config() account check
MANTA_KEY_PATH = _cfg.connection.key_path         # STATUS: ACTIVE - validate_config() key file check
MANTA_HAS_PRIVATE_KEY = bool(_cfg.connection.private_key)  # STATUS: ACTIVE - validate_config(); PEM from MANTA_PRIVATE_KEY
MANTA_TLS_INSECURE = _cfg.connection.insecure     # STATUS: ACTIVE - validate_config() TLS warning

# ── Transport ──────────────────────────────────────────────────────────
MANTA_RATE_LIMIT_RPS = _cfg.rate_limit.requests_per_second  # STATUS: ACTIVE - validate_config() rate check

# ── Jobs ───────────────────────────────────────────────────────────────
JOB_POLL_MAX_ATTEMPTS = _cfg.poll.max_attempts    # STATUS: ACTIVE - manta/poller.py attempt cap
JOB_POLL_INTERVAL_SECONDS = _cfg.poll.interval_seconds  # STATUS: ACTIVE - manta/poller.py fixed spacing
JOB_ACTIVE_STATES: Tuple[str, ...] = ("queued", "running")  # STATUS: ACTIVE - states the poller keeps waiting on
JOB_SEALED_ERROR_CODES: Tuple[str, ...] = ("InvalidJobStateError",)  # STATUS: ACTIVE - server codes meaning input is closed
JOB_TASK_ERROR_CODE = "UserTaskError"             # STATUS: ACTIVE - manta/models.py ErrorRecord.is_task_error
JOB_NAME_PREFIX = "manta-jobs"                    # STATUS: ACTIVE - run_manta_job.py default job name prefix


def validate_config() -> list:
    """Check config for common misconfigurations.

    Returns a list of dicts: [{"level": "WARNING"|"ERROR", "message": str}].
    """
    import os

    issues = []

    if not MANTA_ACCOUNT:
        issues.append({
            "level": "ERROR",
            "message": "MANTA_USER is not set; every job and object path is rooted at the account.",
        })

    if not MANTA_KEY_PATH and not MANTA_HAS_PRIVATE_KEY:
        issues.append({
            "level": "ERROR",
            "message": (
                "Neither MANTA_KEY_PATH nor MANTA_PRIVATE_KEY is set; "
                "requests cannot be signed."
            ),
        })
    elif MANTA_KEY_PATH and not os.path.exists(MANTA_KEY_PATH):
        issues.append({
            "level": "ERROR",
            "message": f"MANTA_KEY_PATH={MANTA_KEY_PATH} does not exist.",
        })

    if MANTA_TLS_INSECURE:
        issues.append({
            "level": "WARNING",
            "message": "MANTA_TLS_INSECURE=True disables certificate verification.",
        })

    if MANTA_URL.startswith("http://"):
        issues.append({
            "level": "WARNING",
            "message": f"MANTA_URL={MANTA_URL} is not HTTPS; signed requests travel in clear text.",
        })

    budget = JOB_POLL_MAX_ATTEMPTS * JOB_POLL_INTERVAL_SECONDS
    if budget < 5.0:
        issues.append({
            "level": "WARNING",
            "message": (
                f"Poll budget is {budget:.1f}s (JOB_POLL_MAX_ATTEMPTS x JOB_POLL_INTERVAL_SECONDS); "
                "most jobs will report PollTimeoutError before finishing."
            ),
        })

    if MANTA_RATE_LIMIT_RPS <= 0:
        issues.append({
            "level": "ERROR",
            "message": f"MANTA_RATE_LIMIT_RPS must be positive, got {MANTA_RATE_LIMIT_RPS}.",
        })

    return issues
