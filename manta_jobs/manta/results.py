"""
Resolve a job's outputs, failures, errors and inputs from the live or archived view.

Both views are read the same way; the only difference is the endpoint the
router picks.  Live results are best-effort and may be incomplete while the
job runs; archived results exist only once the job is terminal.  The two are
never merged, reordered or deduplicated here.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from .client import MantaClient
from .errors import ValidationError
from .models import ErrorRecord, MantaResponse
from .router import JSON_LINES, ResultCategory, ResultSource


class ResultResolver:
    """Turns (job id, category, source) into references or error records."""

    def __init__(self, client: MantaClient, logger: Optional[logging.Logger] = None) -> None:
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    def fetch(
        self,
        job_id: str,
        category: ResultCategory,
        source: ResultSource,
    ) -> MantaResponse:
        """Query one result endpoint and keep its headers.

        ``data`` is a list of object paths, or of ``ErrorRecord`` for errors.
        An empty list is a legitimate answer.
        """
        decision = self.client.router.resolve(job_id, category, source)
        if decision.encoding == JSON_LINES:
            resp = self.client.get_json_lines(decision.path)
            resp.data = [ErrorRecord.from_payload(row) for row in resp.data]
        else:
            resp = self.client.get_lines(decision.path)
        self.logger.debug(
            "job %s %s/%s: %d reference(s)",
            job_id, decision.category.value, decision.source.value, len(resp.data),
        )
        return resp

    def resolve(
        self,
        job_id: str,
        category: ResultCategory,
        source: ResultSource,
    ) -> List[Any]:
        """resolve."""
        return self.fetch(job_id, category, source).data

    def resolve_live(self, job_id: str, category: ResultCategory) -> List[Any]:
        return self.resolve(job_id, category, ResultSource.LIVE)

    def resolve_archived(self, job_id: str, category: ResultCategory) -> List[Any]:
        """Archived view; only authoritative once the job is terminal."""
        return self.resolve(job_id, category, ResultSource.ARCHIVED)

    def read_as_string(self, reference: str) -> str:
        """Dereference an object path into its text content."""
        if isinstance(reference, ErrorRecord):
            raise ValidationError("error records are structured data and are not stored objects")
        return self.client.get_object_as_string(reference).data

    def materialize(
        self,
        job_id: str,
        category: ResultCategory,
        source: ResultSource,
    ) -> List[str]:
        """Resolve a path category and read every referenced object, in order."""
        if ResultCategory(category) is ResultCategory.ERRORS:
            raise ValidationError("errors are returned as records; use resolve() instead")
        return [self.read_as_string(ref) for ref in self.resolve(job_id, category, source)]
