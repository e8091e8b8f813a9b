#!/usr/bin/env python3
"""
Run a Manta map/reduce job end to end and print a JSON report.

Example:
    manta-job --map "grep bb" --reduce "sort | uniq" --input ~~/stor/data.txt --materialize
"""
import argparse
import json
import logging
import sys
import uuid
from typing import List, Optional, Tuple

from manta_jobs.config import (
    JOB_NAME_PREFIX,
    JOB_POLL_INTERVAL_SECONDS,
    JOB_POLL_MAX_ATTEMPTS,
    validate_config,
)
from manta_jobs.manta.errors import MantaError, PollTimeoutError
from manta_jobs.manta.jobs import MantaJobClient
from manta_jobs.manta.router import ResultCategory, ResultSource
from manta_jobs.utils.logging import get_logger

logger = logging.getLogger(__name__)

EXIT_DONE = 0
EXIT_TIMEOUT = 1
EXIT_ERROR = 2


def _phase_arg(value: str) -> Tuple[str, str]:
    """Parse ``TYPE:COMMAND`` (e.g. ``map:grep bb``)."""
    kind, sep, command = value.partition(":")
    if not sep or not command.strip():
        raise argparse.ArgumentTypeError(f"expected TYPE:COMMAND, got {value!r}")
    return kind.strip(), command


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a Manta compute job")
    parser.add_argument("--phase", dest="phases", action="append", type=_phase_arg, default=[],
                        help="TYPE:COMMAND, repeatable; order is preserved")
    parser.add_argument("--map", dest="phases", action="append", type=lambda c: ("map", c),
                        help="Append a map phase")
    parser.add_argument("--reduce", dest="phases", action="append", type=lambda c: ("reduce", c),
                        help="Append a reduce phase")
    parser.add_argument("--input", dest="inputs", action="append", default=[],
                        help="Object path to feed the job, repeatable")
    parser.add_argument("--name", type=str, default=None)
    parser.add_argument("--max-attempts", type=int, default=JOB_POLL_MAX_ATTEMPTS)
    parser.add_argument("--interval", type=float, default=JOB_POLL_INTERVAL_SECONDS)
    parser.add_argument("--materialize", action="store_true",
                        help="Read output and failure objects into the report")
    parser.add_argument("--cancel-only", action="store_true",
                        help="Create the job and cancel it immediately")
    parser.add_argument("--json-logs", action="store_true")
    parser.add_argument("--log-level", type=str, default="INFO")
    return parser


def _report_run(result, materialize: bool) -> dict:
    report = {
        "job_id": result.job.job_id,
        "name": result.job.name,
        "state": result.terminal.state,
        "cancelled": result.terminal.cancelled,
        "attempts": result.terminal.attempts,
    }
    for (category, source), refs in result.references.items():
        key = f"{category.value}_{source.value}"
        if category is ResultCategory.ERRORS:
            report[key] = [r.to_dict() for r in refs]
        else:
            report[key] = list(refs)
        if materialize and (category, source) in result.contents:
            report[f"{key}_content"] = result.contents[(category, source)]
    return report


def main(argv: Optional[List[str]] = None) -> int:
    """Create the job, feed inputs, wait, and report results (or just create+cancel)."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.json_logs:
        get_logger("manta_jobs", level=args.log_level)
    else:
        logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    for issue in validate_config():
        logger.log(logging.ERROR if issue["level"] == "ERROR" else logging.WARNING, issue["message"])

    if not args.phases:
        parser.error("at least one --phase/--map/--reduce is required")
    if not args.cancel_only and not args.inputs:
        parser.error("--input is required unless --cancel-only is given")

    phases = [{"type": kind, "exec": command} for kind, command in args.phases]
    name = args.name or f"{JOB_NAME_PREFIX}-{uuid.uuid4()}"
    client = MantaJobClient()

    try:
        if args.cancel_only:
            job = client.orchestrator.create_and_cancel(phases, name)
            report = {"job_id": job.job_id, "name": job.name, "location": job.location, "cancelled": True}
        else:
            result = client.orchestrator.run(
                phases,
                name,
                args.inputs,
                sources=(ResultSource.LIVE, ResultSource.ARCHIVED),
                materialize=args.materialize,
                max_attempts=args.max_attempts,
                interval=args.interval,
            )
            report = _report_run(result, args.materialize)
    except PollTimeoutError as exc:
        print(json.dumps({"error": "timeout", "job_id": exc.job_id, "last_state": exc.last_state,
                          "attempts": exc.attempts}, indent=2))
        return EXIT_TIMEOUT
    except MantaError as exc:
        print(json.dumps({"error": type(exc).__name__, "message": str(exc)}, indent=2))
        return EXIT_ERROR

    print(json.dumps(report, indent=2, default=str))
    return EXIT_DONE if report.get("state", "done") == "done" else EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
