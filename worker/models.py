"""
Data model for claimed jobs and pipeline outcomes.

Jobs arrive from the claim endpoint as plain dicts; they are converted into
the dataclasses below once, at the edge, so the rest of the worker never
touches raw response bodies.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from worker.enums import JobStatus, PayloadKind, PipelineStage

# Keys the queue has used for the job identifier, most specific first
JOB_ID_KEYS = ("trace_id", "id", "job_id")


@dataclass(frozen=True)
class DecodedPayload:
    """Job payload after decoding: a mapping, the undecodable raw text, or nothing."""

    kind: PayloadKind
    data: Dict[str, Any] = field(default_factory=dict)
    raw: Optional[str] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


def decode_payload(value: Any) -> DecodedPayload:
    """
    Decode a job payload without ever raising.

    Mappings are used as-is. Strings are parsed as JSON; a string that is not
    valid JSON, or decodes to something other than an object, is kept as a
    RAW payload so the job can still run.
    """
    if value is None or value == "":
        return DecodedPayload(PayloadKind.EMPTY)
    if isinstance(value, dict):
        return DecodedPayload(PayloadKind.DECODED, data=dict(value))
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return DecodedPayload(PayloadKind.RAW, raw=value)
        if isinstance(decoded, dict):
            return DecodedPayload(PayloadKind.DECODED, data=decoded)
        return DecodedPayload(PayloadKind.RAW, raw=value)
    return DecodedPayload(PayloadKind.RAW, raw=str(value))


@dataclass(frozen=True)
class Job:
    """One unit of work claimed from the queue."""

    id: str
    payload: DecodedPayload
    step: Optional[str] = None
    type: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Job":
        """
        Build a Job from the `job` object of a claim response.

        Raises:
            ValueError: If the record is not a mapping or carries no identifier
        """
        if not isinstance(record, dict):
            raise ValueError(f"Job record is not an object: {type(record).__name__}")
        job_id = None
        for key in JOB_ID_KEYS:
            if record.get(key) not in (None, ""):
                job_id = str(record[key])
                break
        if job_id is None:
            raise ValueError("Job record has no identifier")
        return cls(
            id=job_id,
            payload=decode_payload(record.get("payload")),
            step=record.get("step"),
            type=record.get("type"),
        )


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of running the pipeline for one job; consumed once by the reporter."""

    ok: bool
    stage: Optional[PipelineStage] = None
    diagnostic: Optional[str] = None
    output_path: Optional[Path] = None
    thumbnail_path: Optional[Path] = None

    @classmethod
    def success(
        cls,
        output_path: Optional[Path] = None,
        thumbnail_path: Optional[Path] = None,
    ) -> "PipelineResult":
        return cls(ok=True, output_path=output_path, thumbnail_path=thumbnail_path)

    @classmethod
    def failure(
        cls,
        stage: Optional[PipelineStage],
        diagnostic: str,
        output_path: Optional[Path] = None,
        thumbnail_path: Optional[Path] = None,
    ) -> "PipelineResult":
        return cls(
            ok=False,
            stage=stage,
            diagnostic=diagnostic,
            output_path=output_path,
            thumbnail_path=thumbnail_path,
        )

    @property
    def status(self) -> JobStatus:
        return JobStatus.DONE if self.ok else JobStatus.ERROR

    @property
    def result_location(self) -> Optional[str]:
        return str(self.output_path) if self.output_path is not None else None
