"""
End-to-end job flows: create -> attach inputs -> end input -> wait -> resolve.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Optional, Sequence

from ..utils.logging import log_job_event
from .errors import PollCancelledError, RemoteRequestError
from .models import Job, JobRunResult
from .poller import JobPoller
from .results import ResultResolver
from .router import ResultCategory, ResultSource
from .submitter import JobSubmitter

DEFAULT_CATEGORIES = (ResultCategory.OUTPUTS, ResultCategory.ERRORS, ResultCategory.FAILURES)
DEFAULT_SOURCES = (ResultSource.LIVE, ResultSource.ARCHIVED)


class JobOrchestrator:
    """Composes submitter, poller and resolver; owns nothing but the job id in flight.

    Any failure after creation cancels the job before the error propagates,
    so an aborted run does not leave a job running server-side.  A caller
    cancelling the wait is the exception: only the local loop stops.
    """

    def __init__(
        self,
        submitter: JobSubmitter,
        poller: JobPoller,
        resolver: ResultResolver,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.submitter = submitter
        self.poller = poller
        self.resolver = resolver
        self.logger = logger or logging.getLogger(__name__)

    def _cleanup_cancel(self, job_id: str) -> None:
        """Best-effort cancel while another error is already propagating."""
        try:
            self.submitter.cancel(job_id)
        except RemoteRequestError as exc:
            log_job_event(
                self.logger, "cleanup_cancel_failed", job_id, level=logging.WARNING,
                status=exc.status, code=exc.code,
            )

    def create_and_cancel(self, phases: Sequence[Any], name: str = "") -> Job:
        """Create a job and cancel it without running it (smoke flow)."""
        job = self.submitter.create(phases, name)
        self.submitter.cancel(job.job_id)
        return job

    def run(
        self,
        phases: Sequence[Any],
        name: str,
        inputs: Iterable[str],
        categories: Sequence[ResultCategory] = DEFAULT_CATEGORIES,
        sources: Sequence[ResultSource] = DEFAULT_SOURCES,
        materialize: bool = False,
        cancel_event: Optional[threading.Event] = None,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
    ) -> JobRunResult:
        """Run a job to completion and collect its results.

        With ``materialize=True`` every path category is also read into
        strings (``JobRunResult.contents``); error records never are.
        Inputs are validated before the job is created.
        """
        paths = self.submitter.prepare_inputs(inputs)
        job = self.submitter.create(phases, name)
        try:
            self.submitter.add_inputs(job.job_id, paths)
            self.submitter.end_input(job.job_id)
            terminal = self.poller.wait_until_terminal(
                job.job_id,
                max_attempts=max_attempts,
                interval=interval,
                cancel_event=cancel_event,
            )
            result = JobRunResult(job=job, terminal=terminal)
            for category in categories:
                category = ResultCategory(category)
                for source in sources:
                    source = ResultSource(source)
                    refs = self.resolver.resolve(job.job_id, category, source)
                    result.references[(category, source)] = refs
                    if materialize and category is not ResultCategory.ERRORS:
                        result.contents[(category, source)] = [
                            self.resolver.read_as_string(ref) for ref in refs
                        ]
        except PollCancelledError:
            raise
        except BaseException:
            self._cleanup_cancel(job.job_id)
            raise
        return result
