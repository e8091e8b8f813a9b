"""Shared test fixtures for the manta_jobs test suite.

Every fixture is function-scoped: each test gets its own fake service,
client and scratch directory.
"""
from __future__ import annotations

import uuid

import pytest

from fake_manta import ACCOUNT, SAMPLE_DATA, FakeManta, make_client
from manta_jobs.manta.jobs import MantaJobClient
from manta_jobs.manta.poller import JobPoller


@pytest.fixture
def fake_manta():
    """A fresh in-memory Manta service."""
    return FakeManta(account=ACCOUNT, polls_until_done=2)


@pytest.fixture
def manta_client(fake_manta):
    return make_client(fake_manta)


@pytest.fixture
def job_client(manta_client):
    """Job client whose poller does not sleep between attempts."""
    return MantaJobClient(
        client=manta_client,
        poller=JobPoller(manta_client, max_attempts=20, interval=0.0),
    )


@pytest.fixture
def test_dir(manta_client):
    """Per-test scratch directory, removed afterwards."""
    path = f"/{ACCOUNT}/stor/python-test/{uuid.uuid4()}"
    manta_client.put_directory(path, make_parents=True)
    yield path
    manta_client.delete_directory(path, recursive=True)


@pytest.fixture
def sample_object(manta_client, test_dir):
    """Path of an object holding SAMPLE_DATA."""
    path = f"{test_dir}/{uuid.uuid4()}"
    manta_client.put_object(SAMPLE_DATA, path)
    return path
