"""
Single-flight polling of the job queue.

Each tick claims at most one job, runs it through the pipeline and reports
the outcome. Ticks are started on a fixed period whether or not the previous
one finished; a tick that finds the session busy does nothing, so a slow job
suppresses polling instead of queuing parallel work.
"""

import asyncio
import logging
from typing import Set

from worker.enums import PayloadKind, TickOutcome
from worker.http_client import JobQueueClient
from worker.models import Job, PipelineResult
from worker.pipeline import JobExecutor
from worker.reporter import StatusReporter
from worker.session import WorkerSession

logger = logging.getLogger(__name__)


class Poller:
    """Drives the claim -> execute -> report cycle for one worker session."""

    def __init__(
        self,
        client: JobQueueClient,
        executor: JobExecutor,
        reporter: StatusReporter,
        session: WorkerSession,
    ):
        self.client = client
        self.executor = executor
        self.reporter = reporter
        self.session = session
        self.jobs_processed = 0
        self.jobs_failed = 0
        self._tasks: Set[asyncio.Task] = set()

    async def tick(self) -> TickOutcome:
        """
        Run one poll cycle unless another one is in flight.

        Never raises; the single-flight guard is released on every path.
        """
        with self.session.single_flight() as acquired:
            if not acquired:
                in_flight = self.session.current_job_id
                if in_flight is None:
                    logger.info("poll skipped: claim in progress")
                else:
                    logger.info(f"poll skipped: job {in_flight} still in flight")
                return TickOutcome.SKIPPED
            try:
                return await self._cycle()
            except Exception:
                logger.exception("poll cycle crashed")
                return TickOutcome.CRASHED

    async def _cycle(self) -> TickOutcome:
        result = await self.client.claim_job()
        if not result.is_ok:
            logger.error(f"claim failed ({result.kind.value}): {result.error}")
            return TickOutcome.CLAIM_FAILED

        body = result.body
        if body.get("ok") is False:
            logger.error(f"claim failed: {body.get('error') or 'queue returned ok:false'}")
            return TickOutcome.CLAIM_FAILED

        record = body.get("job")
        if not record or ("has_job" in body and not body["has_job"]):
            logger.info("idle: no job available")
            return TickOutcome.IDLE

        try:
            job = Job.from_record(record)
        except ValueError as e:
            logger.error(f"claim failed: malformed job record: {e}")
            return TickOutcome.CLAIM_FAILED

        self.session.current_job_id = job.id
        logger.info(f"Claimed job {job.id} (step={job.step}, type={job.type})")
        if job.payload.kind == PayloadKind.RAW:
            logger.warning(f"Job {job.id}: payload is not a JSON object, continuing without it")

        try:
            outcome = await self.executor.execute(job)
        except Exception as e:
            logger.exception(f"Job {job.id}: executor raised")
            outcome = PipelineResult.failure(None, f"executor crashed: {type(e).__name__}: {e}")

        if outcome.ok:
            self.jobs_processed += 1
        else:
            self.jobs_failed += 1

        try:
            await self.reporter.report_result(job, outcome)
        except Exception as e:
            logger.error(f"report failed job={job.id}: {type(e).__name__}: {e}")

        logger.info(f"Finished job {job.id}: {outcome.status.value}")
        return TickOutcome.PROCESSED

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self.tick())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self, interval: float) -> None:
        """
        Poll immediately, then start a new tick every `interval` seconds
        until shutdown is requested. Waits for the in-flight tick before
        returning so a claimed job is always reported.
        """
        await self.tick()
        wake = self.session.wake_event
        while not self.session.shutdown_requested:
            try:
                await asyncio.wait_for(wake.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            if self.session.shutdown_requested:
                break
            self._spawn_tick()

        if self._tasks:
            logger.info("Shutdown requested, finishing current job...")
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
