"""liveness.py — Decide whether the fuzzed process is still running.

Reads /proc/<pid>/status. A process that is gone, or that is busy writing
a core dump, counts as exited: a crash caught mid-dump must not be reported
as healthy.
"""

import errno
from enum import Enum
from pathlib import Path

PROC_ROOT = Path("/proc")


class ProcessState(Enum):
    ALIVE = "alive"
    EXITED = "exited"
    INDETERMINATE = "indeterminate"


class ProbeResult:
    def __init__(self, state: ProcessState, pid: int, details: str = ""):
        self.state = state
        self.pid = pid
        self.details = details

    @property
    def alive(self) -> bool:
        return self.state is ProcessState.ALIVE

    def __repr__(self):
        return f"ProbeResult({self.state.value}, pid={self.pid}, details={self.details!r})"


def check_process(pid: int, proc_root: Path = PROC_ROOT) -> ProbeResult:
    """Probe the status record of *pid*."""
    if pid <= 0:
        raise ValueError(f"Invalid PID: {pid}")

    status_file = Path(proc_root) / str(pid) / "status"
    try:
        f = open(status_file, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        if e.errno in (errno.ENOENT, errno.ENOTDIR):
            return ProbeResult(ProcessState.EXITED, pid, "no status record")
        return ProbeResult(ProcessState.INDETERMINATE, pid, f"cannot open {status_file}: {e}")

    try:
        with f:
            for line in f:
                key, _, value = line.partition(":")
                if key != "CoreDumping":
                    continue
                try:
                    dumping = int(value.strip())
                except ValueError:
                    break
                if dumping > 0:
                    return ProbeResult(ProcessState.EXITED, pid, "dumping core")
                break
    except OSError as e:
        # the record vanished while reading it
        return ProbeResult(ProcessState.EXITED, pid, f"status read failed: {e}")

    return ProbeResult(ProcessState.ALIVE, pid, "running")
