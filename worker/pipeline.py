"""
Render pipeline for a single claimed job.

Stages run strictly in order and the first failure ends the job:

    probe      ffmpeg -version, proves the tool is usable
    render     synthetic test clip -> <work_dir>/<job>/output.mp4
    thumbnail  one still frame from output.mp4 -> thumbnail.jpg (optional)

Files already written by earlier stages are left in place when a later stage
fails.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from worker.enums import PipelineStage
from worker.errors import ProcessLaunchError, tail_text
from worker.models import Job, PipelineResult
from worker.process_runner import ProcessOutcome, run_process

logger = logging.getLogger(__name__)

OUTPUT_FILENAME = "output.mp4"
THUMBNAIL_FILENAME = "thumbnail.jpg"

Runner = Callable[[str, Sequence[str]], Awaitable[ProcessOutcome]]


@dataclass(frozen=True)
class Stage:
    """One ffmpeg invocation of the pipeline."""

    name: PipelineStage
    args: List[str]
    produces: Optional[Path] = None


def job_dir_name(job_id: str) -> str:
    """Filesystem-safe directory name for a job id (cannot escape the work dir)."""
    name = re.sub(r"[^A-Za-z0-9._-]", "_", job_id)[:100].lstrip(".")
    return name or "job"


class JobExecutor:
    """Runs the render pipeline for one job and returns a PipelineResult."""

    def __init__(
        self,
        ffmpeg_path: str,
        work_dir: Path,
        runner: Runner = run_process,
        render_duration: int = 2,
        render_size: str = "640x360",
        render_rate: int = 30,
        thumbnail_at: float = 1.0,
        max_diagnostic_length: int = 500,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.work_dir = Path(work_dir)
        self.runner = runner
        self.render_duration = render_duration
        self.render_size = render_size
        self.render_rate = render_rate
        # A seek past the end of the clip yields no frame
        self.thumbnail_at = min(thumbnail_at, render_duration / 2)
        self.max_diagnostic_length = max_diagnostic_length

    def job_dir(self, job: Job) -> Path:
        return self.work_dir / job_dir_name(job.id)

    def build_stages(self, job: Job) -> List[Stage]:
        """Argument lists for every stage this job runs, in execution order."""
        job_dir = self.job_dir(job)
        output_path = job_dir / OUTPUT_FILENAME
        thumbnail_path = job_dir / THUMBNAIL_FILENAME
        duration = self.render_duration

        stages = [
            Stage(PipelineStage.PROBE, ["-hide_banner", "-version"]),
            Stage(
                PipelineStage.RENDER,
                [
                    "-hide_banner",
                    "-y",
                    "-f",
                    "lavfi",
                    "-i",
                    f"testsrc=duration={duration}:size={self.render_size}:rate={self.render_rate}",
                    "-f",
                    "lavfi",
                    "-i",
                    f"sine=frequency=1000:duration={duration}",
                    "-c:v",
                    "libx264",
                    "-pix_fmt",
                    "yuv420p",
                    "-c:a",
                    "aac",
                    "-shortest",
                    str(output_path),
                ],
                produces=output_path,
            ),
        ]

        if job.payload.get("thumbnail", True) is not False:
            stages.append(
                Stage(
                    PipelineStage.THUMBNAIL,
                    [
                        "-hide_banner",
                        "-y",
                        "-ss",
                        str(self.thumbnail_at),
                        "-i",
                        str(output_path),
                        "-vframes",
                        "1",
                        "-vf",
                        "scale=640:-1",
                        str(thumbnail_path),
                    ],
                    produces=thumbnail_path,
                )
            )
        return stages

    def _diagnostic(self, header: str, output: str) -> str:
        """Stage header plus as much of the output tail as fits the length limit."""
        output = output.strip()
        room = self.max_diagnostic_length - len(header) - 1
        if not output or room < 4:
            return header[: self.max_diagnostic_length]
        return f"{header}\n{tail_text(output, room)}"

    async def _run_stage(self, job: Job, stage: Stage) -> Optional[str]:
        """Run one stage. Returns None on success, or the failure diagnostic."""
        if stage.produces is not None:
            stage.produces.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Job {job.id}: {stage.name.value} stage starting")
        try:
            outcome = await self.runner(self.ffmpeg_path, stage.args)
        except ProcessLaunchError as e:
            return self._diagnostic(f"{stage.name.value} stage could not start: {e.reason}", "")

        if outcome.returncode != 0:
            return self._diagnostic(
                f"{stage.name.value} stage failed: ffmpeg exited with code {outcome.returncode}",
                outcome.output,
            )

        logger.info(f"Job {job.id}: {stage.name.value} stage done")
        return None

    async def execute(self, job: Job) -> PipelineResult:
        """
        Run every stage for the job, stopping at the first failure.

        Never raises: unexpected errors become a failure result for the stage
        that was running, so the caller can always report.
        """
        produced = {}
        current = PipelineStage.PROBE
        try:
            for stage in self.build_stages(job):
                current = stage.name
                diagnostic = await self._run_stage(job, stage)
                if diagnostic is not None:
                    logger.warning(f"Job {job.id}: stage failed ({stage.name.value}): {diagnostic}")
                    return PipelineResult.failure(
                        stage.name,
                        diagnostic,
                        output_path=produced.get(PipelineStage.RENDER),
                        thumbnail_path=produced.get(PipelineStage.THUMBNAIL),
                    )
                if stage.produces is not None:
                    produced[stage.name] = stage.produces
        except Exception as e:
            logger.exception(f"Job {job.id}: stage failed ({current.value}) with unexpected error")
            return PipelineResult.failure(
                current,
                self._diagnostic(f"{current.value} stage crashed: {type(e).__name__}: {e}", ""),
                output_path=produced.get(PipelineStage.RENDER),
                thumbnail_path=produced.get(PipelineStage.THUMBNAIL),
            )

        return PipelineResult.success(
            output_path=produced.get(PipelineStage.RENDER),
            thumbnail_path=produced.get(PipelineStage.THUMBNAIL),
        )
