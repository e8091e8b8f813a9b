"""
Routing helpers for live vs archived Manta job endpoints.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Tuple

from .errors import ValidationError


class ResultSource(str, enum.Enum):
    """Which view of a job's results to read."""
    LIVE = "live"
    ARCHIVED = "archived"


class ResultCategory(str, enum.Enum):
    """Result set kinds a job exposes."""
    OUTPUTS = "outputs"
    ERRORS = "errors"
    FAILURES = "failures"
    INPUTS = "inputs"


# Payload encodings of the result endpoints.
LINES = "lines"
JSON_LINES = "json_lines"


@dataclass
class RouteDecision:
    """Resolved endpoint for one (job, category, source) triple."""
    path: str
    source: ResultSource
    category: ResultCategory
    encoding: str

    @property
    def use_archive(self) -> bool:
        return self.source is ResultSource.ARCHIVED


_RESULT_ROUTES: Dict[Tuple[ResultCategory, ResultSource], Tuple[str, str]] = {
    (ResultCategory.OUTPUTS, ResultSource.LIVE): ("live/out", LINES),
    (ResultCategory.OUTPUTS, ResultSource.ARCHIVED): ("out.txt", LINES),
    (ResultCategory.FAILURES, ResultSource.LIVE): ("live/fail", LINES),
    (ResultCategory.FAILURES, ResultSource.ARCHIVED): ("fail.txt", LINES),
    (ResultCategory.ERRORS, ResultSource.LIVE): ("live/err", JSON_LINES),
    (ResultCategory.ERRORS, ResultSource.ARCHIVED): ("err.txt", JSON_LINES),
    (ResultCategory.INPUTS, ResultSource.LIVE): ("live/in", LINES),
    (ResultCategory.INPUTS, ResultSource.ARCHIVED): ("in.txt", LINES),
}


class JobRouter:
    """
    Builds account-rooted job paths and chooses live vs archived endpoints.
    """

    def __init__(self, account: str, jobs_dir: str = "jobs"):
        """Initialize JobRouter."""
        self.account = str(account).strip().strip("/")
        self.jobs_dir = str(jobs_dir).strip("/") or "jobs"

    @property
    def jobs_root(self) -> str:
        return f"/{self.account}/{self.jobs_dir}"

    @staticmethod
    def _clean_job_id(job_id: str) -> str:
        """Internal helper for clean job id."""
        raw = str(job_id or "").strip().strip("/")
        if not raw or "/" in raw:
            raise ValidationError(f"invalid job id {job_id!r}")
        return raw

    def job_path(self, job_id: str, *parts: str) -> str:
        base = f"{self.jobs_root}/{self._clean_job_id(job_id)}"
        if not parts:
            return base
        return base + "/" + "/".join(p.strip("/") for p in parts)

    def live_input_path(self, job_id: str) -> str:
        return self.job_path(job_id, "live/in")

    def end_input_path(self, job_id: str) -> str:
        return self.job_path(job_id, "live/in/end")

    def cancel_path(self, job_id: str) -> str:
        return self.job_path(job_id, "live/cancel")

    def status_path(self, job_id: str, source: ResultSource = ResultSource.LIVE) -> str:
        if ResultSource(source) is ResultSource.ARCHIVED:
            return self.job_path(job_id, "job.json")
        return self.job_path(job_id, "live/status")

    @staticmethod
    def job_id_from_location(location: str) -> str:
        """The job id is the last segment of the Location header."""
        cleaned = str(location or "").strip().rstrip("/")
        job_id = cleaned.rsplit("/", 1)[-1] if cleaned else ""
        if not job_id:
            raise ValidationError(f"cannot derive a job id from location {location!r}")
        return job_id

    def resolve(
        self,
        job_id: str,
        category: ResultCategory,
        source: ResultSource,
    ) -> RouteDecision:
        """resolve."""
        category = ResultCategory(category)
        source = ResultSource(source)
        suffix, encoding = _RESULT_ROUTES[(category, source)]
        return RouteDecision(
            path=self.job_path(job_id, suffix),
            source=source,
            category=category,
            encoding=encoding,
        )
