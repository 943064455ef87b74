"""
Tests for worker/reporter.py status delivery.
"""

import logging
from pathlib import Path

import httpx
import pytest

from worker.enums import ExchangeKind, JobStatus, PipelineStage
from worker.http_client import ExchangeResult
from worker.models import PipelineResult


class TestBuildPayload:
    """Report bodies always carry job id and worker identity."""

    def test_done_payload(self, reporter):
        payload = reporter.build_payload("42", JobStatus.DONE, "all good", "/work/42/output.mp4")

        assert payload == {
            "trace_id": "42",
            "status": "DONE",
            "step": "done",
            "ok": True,
            "worker_id": "test-worker",
            "worker_version": "abc1234",
            "note": "all good",
            "result_url": "/work/42/output.mp4",
        }

    def test_error_payload_truncates_detail(self, reporter):
        reporter.max_error_length = 20
        payload = reporter.build_payload("42", JobStatus.ERROR, "x" * 100)

        assert payload["ok"] is False
        assert payload["status"] == "ERROR"
        assert payload["error"] == "x" * 17 + "..."
        assert "note" not in payload

    def test_hold_payload(self, reporter):
        payload = reporter.build_payload("42", JobStatus.HOLD, "waiting for assets")

        assert payload["status"] == "HOLD"
        assert payload["step"] == "hold"
        assert payload["ok"] is False
        assert payload["error"] == "waiting for assets"


class TestReport:
    """Delivery is best effort: one attempt, failures logged, never raised."""

    @pytest.mark.asyncio
    async def test_acknowledged_report(self, reporter, queue_client, caplog):
        with caplog.at_level(logging.INFO):
            delivered = await reporter.report("42", JobStatus.DONE, result_location="/out.mp4")

        assert delivered is True
        queue_client.report_status.assert_awaited_once()
        assert "report DONE job=42" in caplog.text

    @pytest.mark.asyncio
    async def test_error_outcome_logged_distinctly(self, reporter, caplog):
        with caplog.at_level(logging.WARNING):
            await reporter.report("42", JobStatus.ERROR, detail="render stage failed")

        assert "report ERROR job=42" in caplog.text
        assert "render stage failed" in caplog.text

    @pytest.mark.asyncio
    async def test_transport_failure_returns_false(self, reporter, queue_client, caplog):
        queue_client.report_status.return_value = ExchangeResult(
            ExchangeKind.TRANSPORT_ERROR, error="ConnectError: refused"
        )

        with caplog.at_level(logging.ERROR):
            delivered = await reporter.report("42", JobStatus.DONE)

        assert delivered is False
        assert queue_client.report_status.await_count == 1
        assert "report failed job=42 status=DONE: ConnectError: refused" in caplog.text

    @pytest.mark.asyncio
    async def test_rejected_update_returns_false(self, reporter, queue_client, exchange, caplog):
        queue_client.report_status.return_value = exchange({"ok": False, "error": "unknown trace_id"})

        with caplog.at_level(logging.ERROR):
            delivered = await reporter.report("42", JobStatus.ERROR, detail="boom")

        assert delivered is False
        assert "queue rejected update: unknown trace_id" in caplog.text

    @pytest.mark.asyncio
    async def test_client_exception_is_swallowed(self, reporter, queue_client, caplog):
        queue_client.report_status.side_effect = httpx.ReadTimeout("timed out")

        with caplog.at_level(logging.ERROR):
            delivered = await reporter.report("42", JobStatus.DONE)

        assert delivered is False
        assert "report failed job=42" in caplog.text


class TestReportResult:
    """Pipeline results map onto DONE/ERROR."""

    @pytest.mark.asyncio
    async def test_success_maps_to_done(self, reporter, queue_client, make_job):
        result = PipelineResult.success(output_path=Path("/work/1/output.mp4"))
        await reporter.report_result(make_job("1"), result)

        payload = queue_client.report_status.await_args.args[0]
        assert payload["status"] == "DONE"
        assert payload["result_url"] == str(Path("/work/1/output.mp4"))

    @pytest.mark.asyncio
    async def test_failure_maps_to_error(self, reporter, queue_client, make_job):
        result = PipelineResult.failure(PipelineStage.PROBE, "probe stage could not start: executable not found")
        await reporter.report_result(make_job("1"), result)

        payload = queue_client.report_status.await_args.args[0]
        assert payload["status"] == "ERROR"
        assert payload["error"] == "probe stage could not start: executable not found"
        assert "result_url" not in payload
