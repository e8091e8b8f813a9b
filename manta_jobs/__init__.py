"""
Client for Manta object storage and its map/reduce compute jobs.
"""

from .manta import (
    JobSealedError,
    MantaClient,
    MantaError,
    MantaJobClient,
    Phase,
    PhaseType,
    PollCancelledError,
    PollTimeoutError,
    RemoteRequestError,
    ResultCategory,
    ResultSource,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "MantaClient",
    "MantaJobClient",
    "Phase",
    "PhaseType",
    "ResultCategory",
    "ResultSource",
    "MantaError",
    "ValidationError",
    "RemoteRequestError",
    "JobSealedError",
    "PollTimeoutError",
    "PollCancelledError",
]
