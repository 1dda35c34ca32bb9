"""fuzz.py — Fuzz one D-Bus method until it passes, fails or is skipped.

Each iteration generates fresh arguments, calls the method, runs the
optional health-check command and probes the target process. The first
fatal signal ends the test; the triggering input is logged together with a
command line that re-runs just this method.
"""

import logging
import shlex
import time

from dbusfuzz.core.call_log import (
    STATUS_COMMAND_ERROR,
    STATUS_CRASH,
    STATUS_SUCCESS,
    CallLogger,
    describe_arguments,
)
from dbusfuzz.core.catalog import MethodUnderTest
from dbusfuzz.core.composer import compose_call_value
from dbusfuzz.core.config import MAX_BUF_LEN, MAX_FORMAT_LEN, MIN_BUF_LEN, TIMEOUT_BACKOFF
from dbusfuzz.core.generator import generate_values
from dbusfuzz.core.invoke import call_method
from dbusfuzz.core.outcome import ConnectionLostError, FuzzInternalError, Outcome, Verdict
from dbusfuzz.core.session import FuzzSession
from dbusfuzz.toolkit.health_check import run_health_check
from dbusfuzz.toolkit.liveness import PROC_ROOT, ProcessState, check_process

log = logging.getLogger(__name__)

PROGRAM = "dbusfuzz"


class FuzzTarget:
    """Where the method lives: bus name, object, interface and owning process."""

    def __init__(self, bus_name: str, object_path: str, interface: str, pid: int,
                 system_bus: bool = False):
        self.bus_name = bus_name
        self.object_path = object_path
        self.interface = interface
        self.pid = pid
        self.system_bus = system_bus

    def __repr__(self):
        return f"FuzzTarget({self.bus_name} {self.object_path} {self.interface} pid={self.pid})"


def build_reproducer(target: FuzzTarget, method_name: str, buf_size: int | None = None,
                     execute_cmd: str | None = None) -> str:
    """Command line that fuzzes only *method_name* again with the same settings."""
    parts = [PROGRAM, "-v", "-n", target.bus_name, "-o", target.object_path,
             "-i", target.interface, "-t", method_name]
    if buf_size is not None:
        parts += ["-b", str(buf_size)]
    if execute_cmd is not None:
        parts += ["-e", execute_cmd]
    if target.system_bus:
        parts.append("--system")
    return " ".join(shlex.quote(p) for p in parts)


def fuzz_method(target: FuzzTarget, method: MethodUnderTest, proxy, rand,
                buf_size: int = 0, execute_cmd: str | None = None,
                call_log: CallLogger | None = None, session: FuzzSession | None = None,
                max_format_len: int = MAX_FORMAT_LEN, proc_root=PROC_ROOT,
                backoff: float = TIMEOUT_BACKOFF, sleep=time.sleep) -> Verdict:
    """Fuzz *method* and return its verdict. *method* is released afterwards.

    ConnectionLostError propagates: the caller cannot test anything else.
    """
    session = session or FuzzSession()
    session.reset()
    try:
        return _fuzz_loop(target, method, proxy, rand, buf_size, execute_cmd, call_log,
                          session, max_format_len, proc_root, backoff, sleep)
    except ConnectionLostError as e:
        log.error("  ERROR %s - %s", method.name, e)
        raise
    except FuzzInternalError as e:
        log.error("  ERROR %s - %s", method.name, e)
        return Verdict(Outcome.INTERNAL_ERROR, detail=str(e))
    finally:
        method.release()


def _fuzz_loop(target, method, proxy, rand, buf_size, execute_cmd, call_log,
               session, max_format_len, proc_root, backoff, sleep) -> Verdict:
    log.debug("  Method: %s", method.describe())

    buf_size_given = buf_size != 0
    if buf_size < MIN_BUF_LEN:
        buf_size = MAX_BUF_LEN
    rand.reset(buf_size)

    failure: Outcome | None = None
    detail = ""

    while rand.should_continue(method.fuzz_on_str_len, method.args_count):
        method.clear_values()

        if not generate_values(method, rand, session):
            sig = session.take_unsupported()
            log.debug("  unsupported argument by %s: %s", PROGRAM, sig)
            log.info("  SKIP %s - advanced signatures not yet implemented", method.name)
            return Verdict(Outcome.UNSUPPORTED_SIGNATURE_SKIPPED, detail=f"unsupported signature '{sig}'")

        value = compose_call_value(method, max_format_len)
        result = call_method(proxy, method, value, session, backoff=backoff, sleep=sleep)

        status = run_health_check(execute_cmd)
        if status > 0:
            failure = Outcome.HEALTH_CHECK_FAILED
            detail = f"'{execute_cmd}' returned {status}"
            break

        probe = check_process(target.pid, proc_root)
        if probe.state is ProcessState.INDETERMINATE:
            raise FuzzInternalError(f"Error while reading process' status: {probe.details}")
        if probe.state is ProcessState.EXITED:
            failure = Outcome.TARGET_CRASHED
            detail = f"process {target.pid} exited ({probe.details})"
            break

        if result.skip:
            return Verdict(Outcome.SUCCESS, detail=f"skipped: {result.error_name or result.message}")
        if result.outcome is Outcome.VOID_CONTRACT_VIOLATED:
            failure = result.outcome
            detail = f"void method returned '{result.reply_type}'"
            break
        if result.outcome is Outcome.REMOTE_NO_REPLY_OR_TIMEOUT:
            failure = result.outcome
            detail = f"{result.error_name}: {result.message}"
            break

        if call_log is not None:
            call_log.record(target.interface, target.object_path, method, STATUS_SUCCESS)

        if session.cap_reached():
            log.debug("  %s - %d exceptions, moving on", method.name, session.exception_count)
            session.reset_exceptions()
            break

    if failure is None:
        log.info("  PASS %s", method.name)
        return Verdict(Outcome.SUCCESS)

    # record first, then report
    if call_log is not None:
        token = STATUS_COMMAND_ERROR if failure is Outcome.HEALTH_CHECK_FAILED else STATUS_CRASH
        call_log.record(target.interface, target.object_path, method, token)
    log.error("  FAIL %s - %s", method.name, detail)
    log.error("   on input:")
    for line in describe_arguments(method):
        log.error("%s", line)

    reproducer = build_reproducer(target, method.name,
                                  buf_size if buf_size_given else None, execute_cmd)
    log.error("   reproducer: %s", reproducer)
    return Verdict(failure, reproducer=reproducer, detail=detail)
