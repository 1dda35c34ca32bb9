"""runner.py — Fuzz every method a bus peer exposes.

Walks the object tree of one bus name through introspection, picks the
methods to test, and hands each one to the fuzz loop while keeping an eye
on the target process between methods.
"""

import logging
from pathlib import Path

from dbusfuzz.core.call_log import CallLogger
from dbusfuzz.core.catalog import MethodUnderTest
from dbusfuzz.core.config import STANDARD_INTERFACE_PREFIX, is_suppressed
from dbusfuzz.core.fuzz import FuzzTarget, fuzz_method
from dbusfuzz.core.outcome import VERDICT_ERROR, ConnectionLostError, Outcome, Verdict, most_severe
from dbusfuzz.core.session import FuzzSession
from dbusfuzz.toolkit.bus import BusOfflineError, BusProxy, RemoteError, get_process_id, introspect_xml
from dbusfuzz.toolkit.introspect import child_path, parse_introspection
from dbusfuzz.toolkit.liveness import ProcessState, check_process
from dbusfuzz.toolkit.rand import RandomValueSource

log = logging.getLogger(__name__)


def exit_status(code: int) -> int:
    """Process exit status for a verdict code."""
    return 255 if code == VERDICT_ERROR else code


class DBusFuzzer:
    """Orchestrates introspection and per-method fuzzing for one bus name."""

    def __init__(self, connection, bus_name: str, object_path: str | None = None,
                 interface: str | None = None, method: str | None = None,
                 buf_size: int = 0, execute_cmd: str | None = None,
                 log_dir: Path | None = None, suppressions: dict[str, str] | None = None,
                 rand: RandomValueSource | None = None, system_bus: bool = False):
        self.connection = connection
        self.bus_name = bus_name
        self.object_path = object_path
        self.interface = interface
        self.method = method
        self.buf_size = buf_size
        self.execute_cmd = execute_cmd
        self.suppressions = suppressions or {}
        self.rand = rand or RandomValueSource()
        self.system_bus = system_bus
        self.call_log = CallLogger(Path(log_dir) / bus_name) if log_dir else None
        self.session = FuzzSession()
        self.pid: int | None = None

    def run(self) -> dict:
        """Fuzz all selected methods. Returns a summary with the overall exit code."""
        try:
            self.pid = get_process_id(self.connection, self.bus_name)
        except (RemoteError, BusOfflineError) as e:
            raise RuntimeError(f"Unable to get PID of '{self.bus_name}': {e}")
        log.info("Fuzzing %s (PID %d)", self.bus_name, self.pid)

        results = []
        objects = self._walk(self.object_path, recursive=False) if self.object_path else self._walk("/")
        for path, node in objects:
            if not self._fuzz_object(path, node, results):
                break

        codes = [r["code"] for r in results]
        return {
            "bus_name": self.bus_name,
            "pid": self.pid,
            "methods": results,
            "exit_code": exit_status(most_severe(codes)),
        }

    def _walk(self, path: str, recursive: bool = True) -> list[tuple[str, dict]]:
        """(object path, introspection data) for *path* and, if recursive, its subtree."""
        try:
            node = parse_introspection(introspect_xml(self.connection, self.bus_name, path))
        except (RemoteError, RuntimeError) as e:
            log.warning("Unable to introspect %s: %s", path, e)
            return []
        objects = [(path, node)]
        if recursive:
            for child in node["nodes"]:
                objects.extend(self._walk(child_path(path, child)))
        return objects

    def _select_interfaces(self, interfaces: dict) -> dict:
        if self.interface:
            return {k: v for k, v in interfaces.items() if k == self.interface}
        return {k: v for k, v in interfaces.items()
                if not k.startswith(STANDARD_INTERFACE_PREFIX)}

    def _fuzz_object(self, path: str, node: dict, results: list[dict]) -> bool:
        """Fuzz the methods of one object. Returns False once the target or the connection is gone."""
        for iface, methods in self._select_interfaces(node["interfaces"]).items():
            log.info(" Object: %s  Interface: %s", path, iface)
            proxy = BusProxy(self.connection, self.bus_name, path, iface)
            target = FuzzTarget(self.bus_name, path, iface, self.pid, self.system_bus)

            for m in methods:
                if self.method and m["name"] != self.method:
                    continue
                reason = is_suppressed(self.suppressions, iface, m["name"])
                if reason:
                    log.info("  SKIP %s - suppressed method: %s", m["name"], reason)
                    continue

                probe = check_process(self.pid)
                if probe.state is ProcessState.INDETERMINATE:
                    log.error("  ERROR %s - cannot read process status: %s", m["name"], probe.details)
                    results.append(self._result(path, iface, m["name"], Verdict(
                        Outcome.INTERNAL_ERROR,
                        detail=f"Error while reading process' status: {probe.details}")))
                    continue
                if probe.state is ProcessState.EXITED:
                    log.error("Process %d is no longer running, stopping", self.pid)
                    results.append(self._result(path, iface, m["name"], Verdict(
                        Outcome.TARGET_CRASHED, detail=f"process gone before test ({probe.details})")))
                    return False

                method = MethodUnderTest(m["name"], is_void=not m["out_signatures"],
                                         signatures=m["in_signatures"])
                try:
                    verdict = fuzz_method(target, method, proxy, self.rand,
                                          buf_size=self.buf_size, execute_cmd=self.execute_cmd,
                                          call_log=self.call_log, session=self.session)
                except ConnectionLostError as e:
                    log.error("Bus connection lost, stopping")
                    results.append(self._result(path, iface, m["name"],
                                                Verdict(Outcome.INTERNAL_ERROR, detail=str(e))))
                    return False
                results.append(self._result(path, iface, m["name"], verdict))
        return True

    @staticmethod
    def _result(path: str, iface: str, name: str, verdict: Verdict) -> dict:
        return {"object_path": path, "interface": iface, "method": name, **verdict.to_dict()}
