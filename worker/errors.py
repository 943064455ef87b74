"""
Worker exceptions and error-text helpers.

Diagnostics sent to the job queue are length-limited; ffmpeg writes its
actual failure reason last, so process output is trimmed from the front.
"""

from typing import Optional


class ConfigurationError(Exception):
    """Raised when required startup configuration is missing."""

    pass


class ProcessLaunchError(Exception):
    """Raised when an executable could not be started at all."""

    def __init__(self, executable: str, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(f"Failed to launch {executable}: {reason}")


def truncate_string(text: Optional[str], max_length: int) -> Optional[str]:
    """
    Truncate text to max_length, ending with "..." when something was cut.

    Args:
        text: Text to truncate (None is passed through)
        max_length: Maximum length of the result, ellipsis included

    Returns:
        The (possibly) truncated text
    """
    if text is None:
        return None
    if len(text) <= max_length:
        return text
    if max_length < 4:
        return text[:max_length]
    return text[: max_length - 3] + "..."


def truncate_error(error: Optional[str], max_length: int) -> Optional[str]:
    """Truncate an error message for reporting."""
    return truncate_string(error, max_length)


def tail_text(text: Optional[str], max_length: int) -> Optional[str]:
    """Keep the last max_length characters, prefixed with "..." when cut."""
    if text is None:
        return None
    if len(text) <= max_length:
        return text
    if max_length < 4:
        return text[-max_length:]
    return "..." + text[-(max_length - 3):]
