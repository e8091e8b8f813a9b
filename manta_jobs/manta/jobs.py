"""
Job-client surface: one method per job operation, wired to the core components.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, Optional, Sequence

from .client import MantaClient
from .models import Job, JobStatus, MantaResponse, TerminalState
from .orchestrator import JobOrchestrator
from .poller import JobPoller
from .results import ResultResolver
from .router import ResultCategory, ResultSource
from .submitter import JobSubmitter


class MantaJobClient:
    """
    Caller-facing job API.

    Every result-returning method answers with a ``MantaResponse`` whose
    ``headers`` and ``data`` are always set; list endpoints give ``data == []``
    when there is nothing to report.
    """

    def __init__(
        self,
        client: Optional[MantaClient] = None,
        poller: Optional[JobPoller] = None,
        logger: Optional[logging.Logger] = None,
        **client_kwargs: Any,
    ) -> None:
        """Initialize MantaJobClient; extra keyword arguments build the MantaClient."""
        self.client = client or MantaClient(logger=logger, **client_kwargs)
        self.logger = logger or logging.getLogger(__name__)
        self.submitter = JobSubmitter(self.client, logger=self.logger)
        self.poller = poller or JobPoller(self.client, logger=self.logger)
        self.resolver = ResultResolver(self.client, logger=self.logger)
        self.orchestrator = JobOrchestrator(
            self.submitter, self.poller, self.resolver, logger=self.logger,
        )

    # ── Lifecycle ────────────────────────────────────────────────────

    def create_job(self, phases: Sequence[Any], name: str = "") -> Job:
        return self.submitter.create(phases, name)

    def add_job_inputs(self, job_id: str, inputs: Iterable[str]) -> MantaResponse:
        return self.submitter.add_inputs(job_id, inputs)

    def end_job_input(self, job_id: str) -> MantaResponse:
        return self.submitter.end_input(job_id)

    def cancel_job(self, job_id: str) -> MantaResponse:
        return self.submitter.cancel(job_id)

    def get_job(self, job_id: str, source: ResultSource = ResultSource.LIVE) -> JobStatus:
        """Full job record from the live status or, once archived, job.json."""
        return self.poller.get_status(job_id, source)

    def get_job_state(self, job_id: str) -> str:
        return self.poller.get_state(job_id)

    def wait_for_job(
        self,
        job_id: str,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TerminalState:
        return self.poller.wait_until_terminal(
            job_id, max_attempts=max_attempts, interval=interval, cancel_event=cancel_event,
        )

    def list_jobs(
        self,
        state: Optional[str] = None,
        name: Optional[str] = None,
        limit: int = 1000,
    ) -> MantaResponse:
        """List the account's jobs (all pages); ``data`` is empty for none."""
        params: Dict[str, object] = {}
        if state:
            params["state"] = state
        if name:
            params["name"] = name
        first = self.client.get_json_lines(
            self.client.router.jobs_root, params=dict(params, limit=int(limit)),
        )
        rows = first.data
        if len(rows) >= limit:
            rows = list(self.client.paginate(self.client.router.jobs_root, params=params, limit=limit))
        return MantaResponse(headers=first.headers, data=rows, status=first.status)

    # ── Results ──────────────────────────────────────────────────────

    def get_job_results(
        self,
        job_id: str,
        category: ResultCategory,
        source: ResultSource,
    ) -> MantaResponse:
        return self.resolver.fetch(job_id, category, source)

    def get_job_input(self, job_id: str, source: ResultSource = ResultSource.LIVE) -> MantaResponse:
        return self.resolver.fetch(job_id, ResultCategory.INPUTS, source)

    def get_job_live_outputs(self, job_id: str) -> MantaResponse:
        return self.resolver.fetch(job_id, ResultCategory.OUTPUTS, ResultSource.LIVE)

    def get_job_outputs(self, job_id: str) -> MantaResponse:
        return self.resolver.fetch(job_id, ResultCategory.OUTPUTS, ResultSource.ARCHIVED)

    def get_live_job_failures(self, job_id: str) -> MantaResponse:
        return self.resolver.fetch(job_id, ResultCategory.FAILURES, ResultSource.LIVE)

    def get_job_failures(self, job_id: str) -> MantaResponse:
        return self.resolver.fetch(job_id, ResultCategory.FAILURES, ResultSource.ARCHIVED)

    def get_live_job_errors(self, job_id: str) -> MantaResponse:
        return self.resolver.fetch(job_id, ResultCategory.ERRORS, ResultSource.LIVE)

    def get_job_errors(self, job_id: str) -> MantaResponse:
        return self.resolver.fetch(job_id, ResultCategory.ERRORS, ResultSource.ARCHIVED)

    # ── Object store pass-throughs ───────────────────────────────────

    def put_object(self, content, path: str, **kwargs: Any) -> MantaResponse:
        return self.client.put_object(content, path, **kwargs)

    def get_object_as_string(self, path: str) -> MantaResponse:
        return self.client.get_object_as_string(path)

    def exists(self, path: str) -> bool:
        return self.client.exists(path)

    def put_directory(self, path: str, make_parents: bool = False) -> MantaResponse:
        return self.client.put_directory(path, make_parents=make_parents)

    def delete_directory(self, path: str, recursive: bool = False) -> MantaResponse:
        return self.client.delete_directory(path, recursive=recursive)
