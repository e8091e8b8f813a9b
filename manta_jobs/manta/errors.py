"""Exception taxonomy for the Manta job client."""
from __future__ import annotations

import json
from typing import Optional


class MantaError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(MantaError, ValueError):
    """Malformed phases or arguments, detected before any request is sent."""


class RemoteRequestError(MantaError):
    """The service answered with a non-success status (or could not be reached).

    ``status`` is ``None`` when no HTTP response was received at all.
    ``code`` and ``message`` are parsed from Manta's JSON error body when present;
    ``body`` always holds the raw text.
    """

    def __init__(
        self,
        status: Optional[int],
        body: str = "",
        method: str = "",
        path: str = "",
        request_id: str = "",
    ):
        self.status = status
        self.body = body or ""
        self.method = method
        self.path = path
        self.request_id = request_id
        self.code: Optional[str] = None
        self.message: Optional[str] = None
        try:
            parsed = json.loads(self.body) if self.body else None
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            if parsed.get("code"):
                self.code = str(parsed["code"])
            if parsed.get("message"):
                self.message = str(parsed["message"])
        detail = self.code or "request_failed"
        if self.message:
            detail = f"{detail}: {self.message}"
        elif self.body and not self.code:
            detail = f"{detail}: {self.body[:200]}"
        super().__init__(f"{method} {path} status={status} {detail}".strip())


class JobSealedError(MantaError):
    """Inputs were added to a job whose input set has already been ended.

    ``remote`` is the server's rejection when the condition was detected by
    the service rather than by local state.
    """

    def __init__(self, job_id: str, remote: Optional[RemoteRequestError] = None):
        self.job_id = job_id
        self.remote = remote
        source = "server rejected inputs" if remote is not None else "input already ended"
        super().__init__(f"job {job_id} is sealed ({source})")


class PollTimeoutError(MantaError, TimeoutError):
    """Polling gave up while the job was still active.

    This says nothing about whether the job failed: it is still running
    server-side and its ``last_state`` is the last value observed.
    """

    def __init__(self, job_id: str, attempts: int, last_state: Optional[str]):
        self.job_id = job_id
        self.attempts = attempts
        self.last_state = last_state
        super().__init__(
            f"job {job_id} still {last_state!r} after {attempts} poll attempt(s)"
        )


class PollCancelledError(MantaError):
    """The caller's cancellation signal stopped a poll loop; the job itself is untouched."""

    def __init__(self, job_id: str, attempts: int, last_state: Optional[str]):
        self.job_id = job_id
        self.attempts = attempts
        self.last_state = last_state
        super().__init__(f"polling of job {job_id} cancelled after {attempts} attempt(s)")
