"""
Centralized enums for status values used throughout the worker.
Using str-based enums so values serialize directly into JSON bodies.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Status tokens reported back to the job queue."""

    DONE = "DONE"
    ERROR = "ERROR"
    HOLD = "HOLD"  # non-terminal pause


class PipelineStage(str, Enum):
    """Stage names of the render pipeline, in execution order."""

    PROBE = "probe"
    RENDER = "render"
    THUMBNAIL = "thumbnail"


class PayloadKind(str, Enum):
    """How a job payload was decoded."""

    DECODED = "decoded"
    RAW = "raw"  # encoded string that could not be decoded
    EMPTY = "empty"


class ExchangeKind(str, Enum):
    """Outcome class of one request/response exchange."""

    OK = "ok"
    TRANSPORT_ERROR = "transport_error"
    PARSE_ERROR = "parse_error"


class TickOutcome(str, Enum):
    """What a single poll cycle ended up doing."""

    SKIPPED = "skipped"
    CLAIM_FAILED = "claim_failed"
    IDLE = "idle"
    PROCESSED = "processed"
    CRASHED = "crashed"
