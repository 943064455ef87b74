"""
Pytest fixtures for job worker tests.

Provides scripted subprocess runners, mocked queue clients and job factories
so the poll/execute/report cycle can be exercised without ffmpeg or network.
"""

from pathlib import Path
from typing import Optional
from unittest import mock

import pytest

from worker.enums import ExchangeKind
from worker.http_client import ExchangeResult, JobQueueClient
from worker.models import Job, decode_payload
from worker.pipeline import JobExecutor
from worker.process_runner import ProcessOutcome
from worker.reporter import StatusReporter
from worker.session import WorkerSession


class FakeRunner:
    """
    Scripted stand-in for run_process.

    Each call consumes the next scripted result: an int exit code, a
    ProcessOutcome, or an exception to raise. Calls past the script succeed.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def __call__(self, executable, args):
        self.calls.append((executable, list(args)))
        if not self.results:
            return ProcessOutcome(0, "")
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, int):
            return ProcessOutcome(result, f"stage output, exit {result}")
        return result


def ok_exchange(body: dict, status_code: int = 200) -> ExchangeResult:
    return ExchangeResult(ExchangeKind.OK, status_code=status_code, body=body)


@pytest.fixture
def fake_runner():
    """The FakeRunner class, so tests can script their own instances."""
    return FakeRunner


@pytest.fixture
def exchange():
    """Factory for successful ExchangeResult objects."""
    return ok_exchange


@pytest.fixture
def make_job():
    """Factory for Job objects."""

    def _make_job(job_id: str = "42", payload: Optional[object] = None, **kwargs) -> Job:
        return Job(id=job_id, payload=decode_payload(payload), **kwargs)

    return _make_job


@pytest.fixture
def queue_client():
    """JobQueueClient with claim/report replaced by AsyncMocks."""
    client = JobQueueClient("http://queue.test/next-job?secret=s3cret", "http://queue.test/update-job-status")
    client.claim_job = mock.AsyncMock(return_value=ok_exchange({"ok": True, "has_job": False, "job": None}))
    client.report_status = mock.AsyncMock(return_value=ok_exchange({"ok": True}))
    client.close = mock.AsyncMock()
    return client


@pytest.fixture
def session() -> WorkerSession:
    return WorkerSession("test-worker")


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def executor_factory(work_dir):
    """Build a JobExecutor around a scripted runner."""

    def _factory(runner, **kwargs) -> JobExecutor:
        return JobExecutor("ffmpeg", work_dir, runner=runner, **kwargs)

    return _factory


@pytest.fixture
def reporter(queue_client, session) -> StatusReporter:
    return StatusReporter(queue_client, session.worker_id, worker_version="abc1234")
