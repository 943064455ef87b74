"""Delivery of job outcomes to the queue's status endpoint."""

import logging
from typing import Optional

from worker.enums import JobStatus
from worker.errors import truncate_error
from worker.http_client import JobQueueClient
from worker.models import Job, PipelineResult

logger = logging.getLogger(__name__)


class StatusReporter:
    """
    Sends one best-effort status update per job.

    Failures are logged with a "report failed" line and otherwise swallowed:
    there is no local retry queue, the job's state on the queue side is
    simply unknown afterwards.
    """

    def __init__(
        self,
        client: JobQueueClient,
        worker_id: str,
        worker_version: Optional[str] = None,
        max_error_length: int = 500,
    ):
        self.client = client
        self.worker_id = worker_id
        self.worker_version = worker_version
        self.max_error_length = max_error_length

    def build_payload(
        self,
        job_id: str,
        status: JobStatus,
        detail: Optional[str] = None,
        result_location: Optional[str] = None,
    ) -> dict:
        data = {
            "trace_id": job_id,
            "status": status.value,
            "step": status.value.lower(),
            "ok": status == JobStatus.DONE,
            "worker_id": self.worker_id,
        }
        if self.worker_version:
            data["worker_version"] = self.worker_version
        if status == JobStatus.DONE:
            if detail:
                data["note"] = detail
            if result_location:
                data["result_url"] = result_location
        else:
            if detail:
                data["error"] = truncate_error(detail, self.max_error_length)
            if result_location:
                data["result_url"] = result_location
        return data

    async def report(
        self,
        job_id: str,
        status: JobStatus,
        detail: Optional[str] = None,
        result_location: Optional[str] = None,
    ) -> bool:
        """
        Report a job status.

        Args:
            job_id: Job identifier from the claim
            status: DONE, ERROR, or HOLD
            detail: Note on success, diagnostic text otherwise
            result_location: Where the primary artifact was written

        Returns:
            True if the queue acknowledged the update, False otherwise
        """
        if status == JobStatus.DONE:
            logger.info(f"report DONE job={job_id} worker={self.worker_id} result={result_location}")
        else:
            logger.warning(f"report {status.value} job={job_id} worker={self.worker_id}: {detail}")

        try:
            result = await self.client.report_status(
                self.build_payload(job_id, status, detail, result_location)
            )
        except Exception as e:
            logger.error(f"report failed job={job_id} status={status.value}: {type(e).__name__}: {e}")
            return False

        if not result.is_ok:
            logger.error(f"report failed job={job_id} status={status.value}: {result.error}")
            return False
        if result.body.get("ok") is False:
            error = result.body.get("error") or "ok:false"
            logger.error(f"report failed job={job_id} status={status.value}: queue rejected update: {error}")
            return False

        logger.debug(f"Status update acknowledged for job {job_id}: {result.body}")
        return True

    async def report_result(self, job: Job, result: PipelineResult) -> bool:
        """Report a pipeline outcome as DONE or ERROR."""
        if result.ok:
            return await self.report(
                job.id,
                JobStatus.DONE,
                detail="render pipeline completed",
                result_location=result.result_location,
            )
        return await self.report(
            job.id,
            JobStatus.ERROR,
            detail=result.diagnostic,
            result_location=result.result_location,
        )
