"""Tests for the JSON log formatter and job lifecycle events."""

import json
import logging

from manta_jobs.utils.logging import StructuredFormatter, get_logger, log_job_event


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_formatter_emits_one_json_line_with_metrics():
    record = logging.LogRecord("manta_jobs.test", logging.INFO, __file__, 1, "job %s created", ("j1",), None)
    record.metrics = {"event": "created", "job_id": "j1"}
    entry = json.loads(StructuredFormatter().format(record))
    assert entry["level"] == "INFO"
    assert entry["message"] == "job j1 created"
    assert entry["metrics"] == {"event": "created", "job_id": "j1"}
    assert "timestamp" in entry


def test_get_logger_does_not_duplicate_handlers():
    logger = get_logger("manta_jobs.test.dup", level="DEBUG")
    again = get_logger("manta_jobs.test.dup", level="DEBUG")
    assert logger is again
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, StructuredFormatter)


def test_log_job_event_carries_fields():
    logger = logging.getLogger("manta_jobs.test.events")
    logger.setLevel(logging.DEBUG)
    capture = _Capture()
    logger.addHandler(capture)
    try:
        log_job_event(logger, "poll_timeout", "j9", level=logging.WARNING, state="running", attempts=3)
    finally:
        logger.removeHandler(capture)
    (record,) = capture.records
    assert record.levelno == logging.WARNING
    assert record.metrics == {"event": "poll_timeout", "job_id": "j9", "state": "running", "attempts": 3}
