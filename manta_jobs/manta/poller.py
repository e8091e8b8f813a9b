"""Watch a Manta job until it leaves the active states."""
from __future__ import annotations

import logging
import threading
from typing import Optional

from ..config import JOB_ACTIVE_STATES, JOB_POLL_INTERVAL_SECONDS, JOB_POLL_MAX_ATTEMPTS
from ..utils.logging import log_job_event
from .client import MantaClient
from .errors import PollCancelledError, PollTimeoutError, ValidationError
from .models import JobStatus, TerminalState
from .router import ResultSource


class JobPoller:
    """Fixed-interval, attempt-capped observer of a job's server-side state.

    The poller never changes the job.  It queries the live status, and while
    the state is one of ``active_states`` it waits ``interval`` seconds on the
    caller's cancellation event before asking again.
    """

    def __init__(
        self,
        client: MantaClient,
        max_attempts: int = JOB_POLL_MAX_ATTEMPTS,
        interval: float = JOB_POLL_INTERVAL_SECONDS,
        active_states=JOB_ACTIVE_STATES,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.max_attempts = max_attempts
        self.interval = interval
        self.active_states = frozenset(active_states)
        self.logger = logger or logging.getLogger(__name__)

    def get_status(self, job_id: str, source: ResultSource = ResultSource.LIVE) -> JobStatus:
        """Fetch the job record from the live status or the archived job.json."""
        resp = self.client.get_json(self.client.router.status_path(job_id, source))
        return JobStatus.from_payload(resp.data, job_id=job_id)

    def get_state(self, job_id: str) -> str:
        return self.get_status(job_id).state

    def is_active(self, state: Optional[str]) -> bool:
        return state in self.active_states

    def wait_until_terminal(
        self,
        job_id: str,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TerminalState:
        """Poll until the job is no longer active.

        Raises
        ------
        PollTimeoutError
            ``max_attempts`` queries all saw an active state.
        PollCancelledError
            ``cancel_event`` was set; the loop stops without touching the job.
        """
        attempts_cap = self.max_attempts if max_attempts is None else max_attempts
        wait_for = self.interval if interval is None else interval
        if not isinstance(attempts_cap, int) or attempts_cap < 1:
            raise ValidationError(f"max_attempts must be a positive integer, got {attempts_cap!r}")
        if wait_for < 0:
            raise ValidationError(f"interval must be >= 0, got {wait_for!r}")
        cancel = cancel_event or threading.Event()

        last_state: Optional[str] = None
        for attempt in range(1, attempts_cap + 1):
            if cancel.is_set():
                raise PollCancelledError(job_id, attempt - 1, last_state)
            status = self.get_status(job_id)
            last_state = status.state
            self.logger.debug("job %s poll %d/%d state=%s", job_id, attempt, attempts_cap, last_state)
            if not self.is_active(last_state):
                log_job_event(
                    self.logger, "terminal", job_id,
                    state=last_state, cancelled=status.cancelled, attempts=attempt,
                )
                return TerminalState(
                    job_id=job_id,
                    state=last_state,
                    cancelled=status.cancelled,
                    attempts=attempt,
                    status=status,
                )
            if attempt < attempts_cap and cancel.wait(wait_for):
                raise PollCancelledError(job_id, attempt, last_state)

        log_job_event(
            self.logger, "poll_timeout", job_id, level=logging.WARNING,
            state=last_state, attempts=attempts_cap,
        )
        raise PollTimeoutError(job_id, attempts_cap, last_state)
