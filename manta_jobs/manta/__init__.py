"""
Manta job vertical: signed transport, object store, and the job lifecycle client.
"""

from .client import MantaClient, MantaSigner, RateLimitPolicy, RequestLimiter, RetryPolicy
from .errors import (
    JobSealedError,
    MantaError,
    PollCancelledError,
    PollTimeoutError,
    RemoteRequestError,
    ValidationError,
)
from .jobs import MantaJobClient
from .models import (
    ErrorRecord,
    Job,
    JobRunResult,
    JobStats,
    JobStatus,
    MantaResponse,
    Phase,
    PhaseType,
    TerminalState,
)
from .orchestrator import JobOrchestrator
from .poller import JobPoller
from .results import ResultResolver
from .router import JobRouter, ResultCategory, ResultSource, RouteDecision
from .submitter import JobSubmitter

__all__ = [
    "MantaClient",
    "MantaSigner",
    "MantaJobClient",
    "RetryPolicy",
    "RateLimitPolicy",
    "RequestLimiter",
    "JobRouter",
    "RouteDecision",
    "ResultCategory",
    "ResultSource",
    "JobSubmitter",
    "JobPoller",
    "ResultResolver",
    "JobOrchestrator",
    "Phase",
    "PhaseType",
    "Job",
    "JobStats",
    "JobStatus",
    "JobRunResult",
    "TerminalState",
    "ErrorRecord",
    "MantaResponse",
    "MantaError",
    "ValidationError",
    "RemoteRequestError",
    "JobSealedError",
    "PollTimeoutError",
    "PollCancelledError",
]
