import logging
import math
import os
import re
import shutil
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from worker.errors import ConfigurationError

# Configure logger for config module warnings
logger = logging.getLogger(__name__)


def get_int_env(
    name: str,
    default: int,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """Get an integer from environment variable with error handling and validation.

    Args:
        name: Environment variable name
        default: Default value if env var is missing or invalid
        min_val: Optional minimum value (inclusive)
        max_val: Optional maximum value (inclusive)

    Returns:
        Parsed integer value, or default if parsing fails or value is out of range
    """
    value = os.getenv(name)
    if value is None:
        return default

    try:
        result = int(value)
    except ValueError:
        logger.warning(f"Invalid {name}='{value}', using default {default}")
        return default

    if min_val is not None and result < min_val:
        logger.warning(f"{name}={result} is below minimum {min_val}, using default {default}")
        return default
    if max_val is not None and result > max_val:
        logger.warning(f"{name}={result} is above maximum {max_val}, using default {default}")
        return default

    return result


def get_float_env(
    name: str,
    default: float,
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> float:
    """Get a float from environment variable with error handling and validation.

    Args:
        name: Environment variable name
        default: Default value if env var is missing or invalid
        min_val: Optional minimum value (inclusive)
        max_val: Optional maximum value (inclusive)

    Returns:
        Parsed float value, or default if parsing fails or value is out of range
    """
    value = os.getenv(name)
    if value is None:
        return default

    try:
        result = float(value)
    except ValueError:
        logger.warning(f"Invalid {name}='{value}', using default {default}")
        return default

    # Reject special float values (inf, -inf, nan)
    if math.isinf(result) or math.isnan(result):
        logger.warning(f"Invalid {name}='{value}' (special float), using default {default}")
        return default

    if min_val is not None and result < min_val:
        logger.warning(f"{name}={result} is below minimum {min_val}, using default {default}")
        return default
    if max_val is not None and result > max_val:
        logger.warning(f"{name}={result} is above maximum {max_val}, using default {default}")
        return default

    return result


def get_size_env(name: str, default: str) -> str:
    """Get a WIDTHxHEIGHT frame size from the environment, falling back on malformed values."""
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip().lower()
    if not re.fullmatch(r"[1-9]\d{0,4}x[1-9]\d{0,4}", value):
        logger.warning(f"Invalid {name}='{value}', using default {default}")
        return default
    return value


def derive_base_url(webapp_url: str) -> str:
    """Strip a trailing /next-job path (and anything after it) from the queue URL."""
    return re.sub(r"/next-job.*$", "", webapp_url.strip(), flags=re.IGNORECASE).rstrip("/")


def build_next_job_url(base_url: str, secret: str) -> str:
    """Claim endpoint; the worker secret travels as a query parameter."""
    return f"{base_url}/next-job?secret={quote(secret or '', safe='')}"


def build_job_status_url(base_url: str) -> str:
    return f"{base_url}/update-job-status"


def mask_secret(url: str) -> str:
    """Hide the secret query value so URLs can be logged."""
    return re.sub(r"(secret=)[^&]+", r"\1***", url)


def resolve_ffmpeg_path() -> str:
    """
    Pick the ffmpeg executable.

    An explicit JOBQUEUE_FFMPEG_PATH wins, then whatever `ffmpeg` resolves to
    on PATH. If neither exists the bare name is returned and the capability
    probe reports the launch failure for each job.
    """
    configured = os.getenv("JOBQUEUE_FFMPEG_PATH", "").strip()
    if configured:
        return configured
    found = shutil.which("ffmpeg")
    if found:
        return found
    logger.warning("ffmpeg not found on PATH, falling back to bare 'ffmpeg'")
    return "ffmpeg"


def require_webapp_url(value: Optional[str] = None) -> str:
    """Return the queue URL or raise ConfigurationError if it is not set."""
    url = (value if value is not None else JOBQUEUE_WEBAPP_URL).strip()
    if not url:
        raise ConfigurationError("JOBQUEUE_WEBAPP_URL environment variable is not set")
    return url


# Job queue endpoints
JOBQUEUE_WEBAPP_URL = os.getenv("JOBQUEUE_WEBAPP_URL", "")
JOBQUEUE_WORKER_SECRET = os.getenv("JOBQUEUE_WORKER_SECRET", "")

# Worker identity, attached to every status report
WORKER_ID = os.getenv("WORKER_ID", "itplaylab-worker-1")

# Polling
POLL_INTERVAL = get_float_env("JOBQUEUE_POLL_INTERVAL", 5.0, min_val=0.1)

# Request timeouts (seconds)
CLAIM_TIMEOUT = get_float_env("JOBQUEUE_CLAIM_TIMEOUT", 30.0, min_val=1.0)
REPORT_TIMEOUT = get_float_env("JOBQUEUE_REPORT_TIMEOUT", 15.0, min_val=1.0)

# Rendering
WORK_DIR = Path(os.getenv("JOBQUEUE_WORK_DIR", "/tmp/jobqueue-worker"))
RENDER_DURATION = get_int_env("JOBQUEUE_RENDER_DURATION", 2, min_val=1, max_val=600)
RENDER_SIZE = get_size_env("JOBQUEUE_RENDER_SIZE", "640x360")
RENDER_RATE = get_int_env("JOBQUEUE_RENDER_RATE", 30, min_val=1, max_val=120)
THUMBNAIL_AT = get_float_env("JOBQUEUE_THUMBNAIL_AT", 1.0, min_val=0.0)

# Error message length limits
ERROR_DETAIL_MAX_LENGTH = get_int_env("JOBQUEUE_ERROR_DETAIL_MAX_LENGTH", 500, min_val=10)

LOG_LEVEL = os.getenv("JOBQUEUE_LOG_LEVEL", "INFO").upper()
