"""
Tests for worker/job_worker.py startup wiring and the fatal-configuration exit.
"""

from unittest import mock

import pytest

from worker import job_worker
from worker.enums import TickOutcome
from worker.session import WorkerSession


class TestStartup:
    """Missing configuration is the only fatal error."""

    @pytest.mark.asyncio
    async def test_missing_url_exits_with_code_1(self):
        with mock.patch("config.JOBQUEUE_WEBAPP_URL", ""):
            with pytest.raises(SystemExit) as exc_info:
                await job_worker.worker_loop(WorkerSession("w"))
        assert exc_info.value.code == 1

    @pytest.mark.asyncio
    async def test_run_once_missing_url_exits(self):
        with mock.patch("config.JOBQUEUE_WEBAPP_URL", ""):
            with pytest.raises(SystemExit):
                await job_worker.run_once(WorkerSession("w"))


class TestBuildPoller:
    def test_endpoints_derived_from_webapp_url(self, tmp_path):
        session = WorkerSession("render-1")
        with mock.patch("config.JOBQUEUE_WORKER_SECRET", "s3cret"), mock.patch(
            "config.WORK_DIR", tmp_path
        ), mock.patch("config.resolve_ffmpeg_path", return_value="/usr/bin/ffmpeg"):
            poller = job_worker.build_poller(session, "https://queue.example.com/exec/next-job")

        assert poller.client.next_job_url == "https://queue.example.com/exec/next-job?secret=s3cret"
        assert poller.client.job_status_url == "https://queue.example.com/exec/update-job-status"
        assert poller.executor.ffmpeg_path == "/usr/bin/ffmpeg"
        assert poller.executor.work_dir == tmp_path
        assert poller.reporter.worker_id == "render-1"
        assert poller.session is session


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_single_tick_and_close(self, tmp_path):
        with mock.patch("config.JOBQUEUE_WEBAPP_URL", "https://q/next-job"), mock.patch(
            "config.WORK_DIR", tmp_path / "work"
        ), mock.patch(
            "worker.poller.Poller.tick", new=mock.AsyncMock(return_value=TickOutcome.IDLE)
        ) as tick, mock.patch(
            "worker.http_client.JobQueueClient.close", new=mock.AsyncMock()
        ) as close:
            outcome = await job_worker.run_once(WorkerSession("w"))

        assert outcome == TickOutcome.IDLE
        tick.assert_awaited_once()
        close.assert_awaited_once()
        assert (tmp_path / "work").is_dir()

    @pytest.mark.asyncio
    async def test_worker_loop_runs_until_shutdown(self, tmp_path):
        session = WorkerSession("w")

        async def fake_run(self, interval):
            session.request_shutdown()

        with mock.patch("config.JOBQUEUE_WEBAPP_URL", "https://q/next-job"), mock.patch(
            "config.WORK_DIR", tmp_path
        ), mock.patch("worker.poller.Poller.run", new=fake_run), mock.patch(
            "worker.http_client.JobQueueClient.close", new=mock.AsyncMock()
        ) as close:
            await job_worker.worker_loop(session)

        assert session.shutdown_requested
        close.assert_awaited_once()
