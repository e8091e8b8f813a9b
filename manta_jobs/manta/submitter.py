"""Create, feed, seal and cancel Manta jobs."""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Iterable, List, Optional, Sequence

from ..config import JOB_SEALED_ERROR_CODES
from ..utils.logging import log_job_event
from .client import MantaClient
from .errors import JobSealedError, RemoteRequestError, ValidationError
from .models import Job, MantaResponse, validate_phases


class JobSubmitter:
    """Issues the job-mutating requests and remembers which jobs it has sealed.

    The sealed set is the only local state; it lets ``add_inputs`` fail fast
    for jobs this submitter ended, while jobs ended elsewhere are caught by
    the server's rejection.
    """

    def __init__(self, client: MantaClient, logger: Optional[logging.Logger] = None) -> None:
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self._sealed: set = set()
        self._lock = threading.Lock()

    def is_sealed(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._sealed

    def create(self, phases: Sequence[Any], name: str = "") -> Job:
        """Create a job from an ordered phase list.

        Raises
        ------
        ValidationError
            If *phases* is empty or a phase is malformed (no request is sent).
        RemoteRequestError
            If the service rejects the request.
        """
        checked = validate_phases(phases)
        if name is not None and not isinstance(name, str):
            raise ValidationError(f"job name must be a string, got {type(name).__name__}")
        body = json.dumps({
            "name": name or "",
            "phases": [p.to_dict() for p in checked],
        })
        resp = self.client.post(
            self.client.router.jobs_root,
            body=body.encode("utf-8"),
            content_type="application/json",
        )
        location = resp.headers.get("Location") or resp.headers.get("location") or ""
        if not location:
            raise RemoteRequestError(
                resp.status,
                "create job response carried no Location header",
                method="POST",
                path=self.client.router.jobs_root,
            )
        job = Job(
            job_id=self.client.router.job_id_from_location(location),
            name=name or "",
            phases=checked,
            location=location,
            headers=resp.headers,
        )
        log_job_event(self.logger, "created", job.job_id, name=job.name, phases=len(checked))
        return job

    def prepare_inputs(self, inputs: Iterable[str]) -> List[str]:
        """Validate an input batch and make every path account-rooted.

        Order and duplicates are kept.  Raises ``ValidationError`` for a bare
        string, an empty batch or a blank path.
        """
        if isinstance(inputs, (str, bytes)):
            raise ValidationError("inputs must be a sequence of object paths, not a single string")
        paths = [self.client.expand_path(p) for p in inputs]
        if not paths:
            raise ValidationError("add_inputs needs at least one object path")
        return paths

    def add_inputs(self, job_id: str, inputs: Iterable[str]) -> MantaResponse:
        """Append object paths to the job's input queue.

        Paths are sent in the given order, duplicates included.
        """
        if self.is_sealed(job_id):
            raise JobSealedError(job_id)
        paths = self.prepare_inputs(inputs)
        try:
            resp = self.client.post(
                self.client.router.live_input_path(job_id),
                body="\n".join(paths).encode("utf-8"),
                content_type="text/plain",
            )
        except RemoteRequestError as exc:
            if exc.code in JOB_SEALED_ERROR_CODES:
                with self._lock:
                    self._sealed.add(job_id)
                raise JobSealedError(job_id, remote=exc) from exc
            raise
        self.logger.debug("job %s: attached %d input(s)", job_id, len(paths))
        return resp

    def end_input(self, job_id: str) -> MantaResponse:
        """Seal the input set; a second call is left to the server to reject."""
        resp = self.client.post(self.client.router.end_input_path(job_id))
        with self._lock:
            self._sealed.add(job_id)
        log_job_event(self.logger, "input_ended", job_id)
        return resp

    def cancel(self, job_id: str) -> MantaResponse:
        """Ask the service to cancel the job, whatever state it is in."""
        resp = self.client.post(self.client.router.cancel_path(job_id))
        log_job_event(self.logger, "cancelled", job_id)
        return resp
