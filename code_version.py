"""
Worker build identity.

CODE_VERSION is sent as `worker_version` on every status report. It comes
from JOBQUEUE_CODE_VERSION when the deployment pins it, otherwise from the
short hash of the checked-out commit, otherwise "dev".
"""

import os
import subprocess


def _git_short_hash() -> str:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return ""
    return result.stdout.strip() if result.returncode == 0 else ""


CODE_VERSION = os.environ.get("JOBQUEUE_CODE_VERSION") or _git_short_hash() or "dev"
