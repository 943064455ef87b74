#!/usr/bin/env python3
"""
Job queue render worker.

Polls the job queue's /next-job endpoint, renders each claimed job with
ffmpeg, and reports the outcome to /update-job-status. At most one job is
processed at a time.

Run with: python -m worker.job_worker
Requires: JOBQUEUE_WEBAPP_URL environment variable

Environment variables:
    JOBQUEUE_WEBAPP_URL: Queue URL, with or without the /next-job suffix (required)
    JOBQUEUE_WORKER_SECRET: Secret sent with every claim request
    WORKER_ID: Identity attached to status reports
    JOBQUEUE_POLL_INTERVAL: Poll interval in seconds (default: 5)
    JOBQUEUE_WORK_DIR: Directory for rendered artifacts (default: /tmp/jobqueue-worker)
    JOBQUEUE_FFMPEG_PATH: ffmpeg executable (default: ffmpeg on PATH)
    JOBQUEUE_LOG_LEVEL: Log level (default: INFO)
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

import config
from code_version import CODE_VERSION
from worker.enums import TickOutcome
from worker.errors import ConfigurationError
from worker.http_client import JobQueueClient
from worker.pipeline import JobExecutor
from worker.poller import Poller
from worker.reporter import StatusReporter
from worker.session import WorkerSession

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_poller(session: WorkerSession, webapp_url: str) -> Poller:
    """Wire the client, executor and reporter from configuration."""
    base_url = config.derive_base_url(webapp_url)
    client = JobQueueClient(
        config.build_next_job_url(base_url, config.JOBQUEUE_WORKER_SECRET),
        config.build_job_status_url(base_url),
        claim_timeout=config.CLAIM_TIMEOUT,
        report_timeout=config.REPORT_TIMEOUT,
    )
    executor = JobExecutor(
        config.resolve_ffmpeg_path(),
        config.WORK_DIR,
        render_duration=config.RENDER_DURATION,
        render_size=config.RENDER_SIZE,
        render_rate=config.RENDER_RATE,
        thumbnail_at=config.THUMBNAIL_AT,
        max_diagnostic_length=config.ERROR_DETAIL_MAX_LENGTH,
    )
    reporter = StatusReporter(
        client,
        session.worker_id,
        worker_version=CODE_VERSION,
        max_error_length=config.ERROR_DETAIL_MAX_LENGTH,
    )
    return Poller(client, executor, reporter, session)


def log_startup(poller: Poller) -> None:
    logger.info("Job queue worker starting...")
    logger.info(f"  Worker ID: {poller.session.worker_id} (version {CODE_VERSION})")
    logger.info(f"  NextJob URL: {config.mask_secret(poller.client.next_job_url)}")
    logger.info(f"  JobStatus URL: {poller.client.job_status_url}")
    logger.info(f"  Poll interval: {config.POLL_INTERVAL}s")
    logger.info(f"  Work dir: {poller.executor.work_dir}")
    logger.info(f"  ffmpeg: {poller.executor.ffmpeg_path}")
    if not config.JOBQUEUE_WORKER_SECRET:
        logger.warning("JOBQUEUE_WORKER_SECRET is empty; set it if the queue requires authentication")


def _resolve_url_or_exit() -> str:
    try:
        return config.require_webapp_url()
    except ConfigurationError as e:
        logger.error(f"ERROR: {e}")
        sys.exit(1)


async def worker_loop(session: Optional[WorkerSession] = None) -> None:
    """Main worker loop: poll until SIGTERM/SIGINT, then finish the current job."""
    webapp_url = _resolve_url_or_exit()
    session = session or WorkerSession(config.WORKER_ID)

    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, session.request_shutdown)
            installed.append(sig)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            signal.signal(sig, lambda s, f: session.request_shutdown())

    config.WORK_DIR.mkdir(parents=True, exist_ok=True)
    poller = build_poller(session, webapp_url)
    log_startup(poller)

    try:
        await poller.run(config.POLL_INTERVAL)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await poller.client.close()
        logger.info(
            f"Worker stopped. Jobs processed: {poller.jobs_processed}, failed: {poller.jobs_failed}"
        )


async def run_once(session: Optional[WorkerSession] = None) -> TickOutcome:
    """Perform a single poll cycle (claim, render, report) and return its outcome."""
    webapp_url = _resolve_url_or_exit()
    session = session or WorkerSession(config.WORKER_ID)
    config.WORK_DIR.mkdir(parents=True, exist_ok=True)
    poller = build_poller(session, webapp_url)
    try:
        return await poller.tick()
    finally:
        await poller.client.close()


def main():
    """Entry point for the job worker."""
    configure_logging()
    asyncio.run(worker_loop())


if __name__ == "__main__":
    main()
