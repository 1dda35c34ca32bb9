"""health_check.py — Run the user's post-call check command.

The command's own stdout/stderr go to /dev/null so they never mix with the
fuzzer's output. Exit status 0 means the target is healthy.
"""

import os
import subprocess

from dbusfuzz.core.outcome import FuzzInternalError


def run_health_check(cmd: str | None) -> int:
    """Execute *cmd* through the shell and return its exit status.

    Returns 0 when *cmd* is None. A command killed by a signal reports
    128 + signal number, as the shell would. Raises FuzzInternalError if
    the command cannot be run at all.
    """
    if cmd is None:
        return 0

    try:
        with open(os.devnull, "w") as devnull:
            proc = subprocess.run(cmd, shell=True, stdin=subprocess.DEVNULL,
                                  stdout=devnull, stderr=devnull)
    except (OSError, subprocess.SubprocessError) as e:
        raise FuzzInternalError(f"Unable to execute '{cmd}': {e}") from e

    if proc.returncode < 0:
        return 128 - proc.returncode
    return proc.returncode
