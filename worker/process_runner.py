"""
Subprocess execution for pipeline stages.

stderr is merged into stdout and drained by an async read loop into a buffer
owned by the runner. The caller only sees the text after the process exited,
so a chatty ffmpeg can never fill the pipe and block.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from worker.errors import ProcessLaunchError

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ProcessOutcome:
    """Exit code and combined stdout+stderr of a finished process."""

    returncode: int
    output: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


async def cleanup_process(process: asyncio.subprocess.Process, context: str = "process") -> None:
    """
    Kill and reap a subprocess that may still be running.

    Handles the race where the process exits between checking returncode
    and calling kill().
    """
    if process.returncode is None:
        try:
            process.kill()
        except (ProcessLookupError, OSError):
            pass
        try:
            await asyncio.wait_for(process.wait(), timeout=5)
        except asyncio.TimeoutError:
            logger.warning(f"{context} process did not terminate after kill")


async def run_process(
    executable: str,
    args: Sequence[str],
    cwd: Optional[Union[str, Path]] = None,
    context: Optional[str] = None,
) -> ProcessOutcome:
    """
    Run an executable to completion and collect its combined output.

    Args:
        executable: Program to run (path or name resolved via PATH)
        args: Arguments, passed without a shell
        cwd: Optional working directory
        context: Description for logging (defaults to the executable)

    Returns:
        ProcessOutcome with the exit code and decoded output

    Raises:
        ProcessLaunchError: If the process could not be started (missing
            executable, permission denied); a non-zero exit is not an error
    """
    context = context or executable
    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            *[str(a) for a in args],
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            stdin=asyncio.subprocess.DEVNULL,
            cwd=str(cwd) if cwd is not None else None,
        )
    except FileNotFoundError:
        raise ProcessLaunchError(executable, "executable not found")
    except PermissionError:
        raise ProcessLaunchError(executable, "permission denied")
    except OSError as e:
        raise ProcessLaunchError(executable, str(e))

    logger.debug(f"{context}: started pid {process.pid}")
    buffer = bytearray()
    try:
        while True:
            chunk = await process.stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            buffer.extend(chunk)
        returncode = await process.wait()
    finally:
        # Only does anything if we were cancelled or the read loop failed
        await cleanup_process(process, context)

    logger.debug(f"{context}: exited with code {returncode}")
    return ProcessOutcome(returncode=returncode, output=buffer.decode("utf-8", errors="replace"))
