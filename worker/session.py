"""Process-wide worker state."""

import asyncio
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional


class WorkerSession:
    """
    Encapsulates mutable state for one worker process.

    The single-flight guard (`busy`) is the only state shared between poll
    cycles. It is only changed through `single_flight()`, which always
    releases what it acquired.
    """

    def __init__(self, worker_id: Optional[str] = None):
        """
        Initialize worker session.

        Args:
            worker_id: Identity attached to status reports. If not provided,
                       a short UUID-based one is generated.
        """
        self.worker_id = worker_id or f"worker-{uuid.uuid4().hex[:8]}"
        self.busy = False
        self.shutdown_requested = False
        self.current_job_id: Optional[str] = None
        self._wake_event: Optional[asyncio.Event] = None

    @contextmanager
    def single_flight(self) -> Iterator[bool]:
        """
        Acquire the single-flight guard for the duration of the block.

        Yields True when the guard was acquired. Yields False, and leaves the
        guard untouched, when another cycle already holds it.
        """
        if self.busy:
            yield False
            return
        self.busy = True
        try:
            yield True
        finally:
            self.busy = False
            self.current_job_id = None

    @property
    def wake_event(self) -> asyncio.Event:
        """Event set on shutdown so sleeping loops wake up immediately."""
        if self._wake_event is None:
            self._wake_event = asyncio.Event()
        return self._wake_event

    def request_shutdown(self):
        """Request graceful shutdown: the in-flight job finishes, no new ticks start."""
        self.shutdown_requested = True
        if self._wake_event is not None:
            self._wake_event.set()
