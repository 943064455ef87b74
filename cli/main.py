#!/usr/bin/env python3
"""
Job queue worker CLI.

    jobqueue-worker run      poll the queue until SIGTERM/SIGINT
    jobqueue-worker once     claim, render and report a single job, then exit
    jobqueue-worker health   run the container health check
"""

import argparse
import asyncio
import sys

import config
from worker import health_check, job_worker
from worker.enums import TickOutcome
from worker.session import WorkerSession


def positive_float(value: str) -> float:
    """Argparse type converter that validates positive numbers."""
    f = float(value)
    if f <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got {value}")
    return f


def cmd_run(args):
    if args.interval is not None:
        config.POLL_INTERVAL = args.interval
    session = WorkerSession(args.worker_id or config.WORKER_ID)
    asyncio.run(job_worker.worker_loop(session))


def cmd_once(args):
    session = WorkerSession(args.worker_id or config.WORKER_ID)
    outcome = asyncio.run(job_worker.run_once(session))
    print(f"Tick outcome: {outcome.value}")
    sys.exit(1 if outcome == TickOutcome.CRASHED else 0)


def cmd_health(args):
    sys.exit(asyncio.run(health_check.main()))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jobqueue-worker", description="Job queue render worker")
    parser.add_argument("--log-level", help="Override JOBQUEUE_LOG_LEVEL (DEBUG, INFO, ...)")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Poll the queue and process jobs (default)")
    run_parser.add_argument("-i", "--interval", type=positive_float, help="Poll interval in seconds")
    run_parser.add_argument("-w", "--worker-id", help="Override WORKER_ID")
    run_parser.set_defaults(func=cmd_run)

    once_parser = subparsers.add_parser("once", help="Run a single poll cycle and exit")
    once_parser.add_argument("-w", "--worker-id", help="Override WORKER_ID")
    once_parser.set_defaults(func=cmd_once)

    health_parser = subparsers.add_parser("health", help="Check ffmpeg and queue reachability")
    health_parser.set_defaults(func=cmd_health)

    parser.set_defaults(func=cmd_run, interval=None, worker_id=None)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    job_worker.configure_logging(args.log_level.upper() if args.log_level else None)
    args.func(args)


if __name__ == "__main__":
    main()
