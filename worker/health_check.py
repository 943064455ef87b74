#!/usr/bin/env python3
"""
Health check script for job queue workers.

Checks:
- FFmpeg availability
- Job queue reachability

Suitable as a container HEALTHCHECK or a liveness/readiness command.

Exit codes:
    0: Healthy
    1: Unhealthy
"""

import asyncio
import sys
from typing import Tuple

import config
from worker.enums import ExchangeKind
from worker.errors import ConfigurationError, ProcessLaunchError
from worker.http_client import JobQueueClient
from worker.process_runner import run_process


async def check_ffmpeg(ffmpeg_path: str) -> Tuple[bool, str]:
    """
    Check if FFmpeg is available and functional.

    Returns:
        Tuple of (success: bool, error_message: str)
    """
    try:
        outcome = await run_process(ffmpeg_path, ["-version"])
    except ProcessLaunchError as e:
        return False, f"FFmpeg could not be started: {e.reason}"

    if outcome.returncode != 0:
        return False, f"FFmpeg returned non-zero exit code: {outcome.returncode}"
    if "ffmpeg version" not in outcome.output.lower():
        return False, "FFmpeg output doesn't contain version info"
    return True, ""


async def check_queue(base_url: str) -> Tuple[bool, str]:
    """
    Check that the job queue answers HTTP requests.

    Any HTTP status counts as reachable; only transport failures are
    unhealthy. No job is claimed.

    Returns:
        Tuple of (success: bool, error_message: str)
    """
    client = JobQueueClient(base_url, config.build_job_status_url(base_url))
    try:
        result = await client.exchange("GET", base_url, timeout=10.0)
    finally:
        await client.close()

    if result.kind == ExchangeKind.TRANSPORT_ERROR:
        return False, f"Job queue unreachable: {result.error}"
    return True, ""


async def main() -> int:
    """
    Run all health checks.

    Returns:
        Exit code: 0 for healthy, 1 for unhealthy
    """
    all_checks_passed = True

    success, error = await check_ffmpeg(config.resolve_ffmpeg_path())
    if not success:
        print(f"UNHEALTHY: FFmpeg check failed: {error}", file=sys.stderr)
        all_checks_passed = False
    else:
        print("✓ FFmpeg is available")

    try:
        base_url = config.derive_base_url(config.require_webapp_url())
    except ConfigurationError as e:
        print(f"UNHEALTHY: {e}", file=sys.stderr)
        return 1

    success, error = await check_queue(base_url)
    if not success:
        print(f"UNHEALTHY: {error}", file=sys.stderr)
        all_checks_passed = False
    else:
        print("✓ Job queue is reachable")

    if all_checks_passed:
        print("\nWorker is HEALTHY")
        return 0
    print("\nWorker is UNHEALTHY", file=sys.stderr)
    return 1


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nHealth check interrupted", file=sys.stderr)
        sys.exit(1)
