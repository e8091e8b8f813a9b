"""Tests for the manta-job command line entry point.

The job client is swapped for one wired to the in-memory service, so the
whole create -> wait -> report path runs without a network.
"""

import json
from unittest.mock import patch

import pytest

from fake_manta import SAMPLE_DATA, FakeManta, make_client
from manta_jobs import run_manta_job
from manta_jobs.manta.jobs import MantaJobClient
from manta_jobs.manta.poller import JobPoller


@pytest.fixture
def cli_fake():
    fake = FakeManta()
    client = make_client(fake)
    client.put_directory("/testuser/stor/data")
    client.put_object(SAMPLE_DATA, "/testuser/stor/data/sample.txt")

    def factory(*args, **kwargs):
        return MantaJobClient(client=client, poller=JobPoller(client, interval=0.0))

    with patch("manta_jobs.run_manta_job.MantaJobClient", side_effect=factory):
        yield fake


def _report(capsys):
    return json.loads(capsys.readouterr().out)


class TestParser:

    def test_phase_flags_keep_order(self):
        args = run_manta_job.build_parser().parse_args(
            ["--map", "grep bb", "--phase", "reduce:sort | uniq", "--reduce", "wc -l"]
        )
        assert args.phases == [("map", "grep bb"), ("reduce", "sort | uniq"), ("reduce", "wc -l")]

    def test_malformed_phase_rejected(self):
        with pytest.raises(SystemExit):
            run_manta_job.build_parser().parse_args(["--phase", "grep bb"])

    def test_inputs_required_unless_cancel_only(self, cli_fake):
        with pytest.raises(SystemExit):
            run_manta_job.main(["--map", "cat"])

    def test_phase_required(self, cli_fake):
        with pytest.raises(SystemExit):
            run_manta_job.main(["--input", "~~/stor/data/sample.txt"])


class TestMain:

    def test_run_reports_outputs(self, cli_fake, capsys):
        code = run_manta_job.main([
            "--map", "grep bb", "--reduce", "sort | uniq",
            "--input", "~~/stor/data/sample.txt", "--materialize", "--name", "cli-run", "--interval", "0",
        ])
        assert code == run_manta_job.EXIT_DONE
        report = _report(capsys)
        assert report["name"] == "cli-run"
        assert report["state"] == "done"
        assert report["outputs_archived_content"] == ["bb 1\nbb 2\nbb 3\n"]
        assert report["outputs_live_content"] == ["bb 1\nbb 2\nbb 3\n"]
        assert report["errors_archived"] == []

    def test_task_errors_reported_verbatim(self, cli_fake, capsys):
        code = run_manta_job.main([
            "--map", "grep foo", "--input", "/testuser/stor/data/sample.txt", "--interval", "0",
        ])
        assert code == run_manta_job.EXIT_DONE
        report = _report(capsys)
        assert report["failures_archived"] == ["/testuser/stor/data/sample.txt"]
        assert report["errors_archived"][0]["code"] == "UserTaskError"

    def test_cancel_only(self, cli_fake, capsys):
        code = run_manta_job.main(["--map", "wc -l", "--cancel-only"])
        assert code == run_manta_job.EXIT_DONE
        report = _report(capsys)
        assert report["cancelled"] is True
        assert cli_fake.jobs[report["job_id"]].cancelled

    def test_default_name_prefix(self, cli_fake, capsys):
        run_manta_job.main(["--map", "wc -l", "--cancel-only"])
        assert _report(capsys)["name"].startswith("manta-jobs-")

    def test_timeout_exit_code(self, cli_fake, capsys):
        cli_fake.stuck = True
        code = run_manta_job.main([
            "--map", "cat", "--input", "/testuser/stor/data/sample.txt",
            "--max-attempts", "2", "--interval", "0",
        ])
        assert code == run_manta_job.EXIT_TIMEOUT
        report = _report(capsys)
        assert report["error"] == "timeout"
        assert report["last_state"] == "running"

    def test_remote_error_exit_code(self, cli_fake, capsys):
        cli_fake.inject(500, body='{"code":"InternalError","message":"boom"}', method="POST")
        code = run_manta_job.main(["--map", "cat", "--input", "/testuser/stor/data/sample.txt"])
        assert code == run_manta_job.EXIT_ERROR
        report = _report(capsys)
        assert report["error"] == "RemoteRequestError"
        assert "InternalError" in report["message"]

    def test_blank_input_rejected_before_job_created(self, cli_fake, capsys):
        code = run_manta_job.main(["--map", "cat", "--input", ""])
        assert code == run_manta_job.EXIT_ERROR
        report = _report(capsys)
        assert report["error"] == "ValidationError"
        assert cli_fake.jobs == {}
        assert cli_fake.calls_for("POST") == []
