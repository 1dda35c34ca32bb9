#!/usr/bin/env python3
"""test_engine.py — Offline validation of value generation and call classification.

Drives the generator with a fixed value source and the invocation controller
with a scripted proxy; nothing touches a real bus.

Run:  python3 -m dbusfuzz.tests.test_engine
  or: python3 dbusfuzz/tests/test_engine.py
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from dbusfuzz.core.catalog import MethodUnderTest
from dbusfuzz.core.composer import compose_call_value
from dbusfuzz.core.generator import generate_values
from dbusfuzz.core.invoke import (
    ERROR_ACCESS_DENIED,
    ERROR_AUTH_FAILED,
    ERROR_NO_REPLY,
    ERROR_TIMEOUT,
    call_method,
)
from dbusfuzz.core.outcome import (
    VERDICT_COMMAND_FAILED,
    VERDICT_CRASH,
    VERDICT_ERROR,
    VERDICT_OK,
    VERDICT_VOID_VIOLATION,
    ConnectionLostError,
    FuzzInternalError,
    Outcome,
    Verdict,
    most_severe,
)
from dbusfuzz.core.session import FuzzSession
from dbusfuzz.core.values import DBusValue
from dbusfuzz.toolkit.bus import BusOfflineError, BusReply, RemoteError

PASS = 0
FAIL = 0

FIXED = {
    "y": 1, "b": True, "n": -1, "q": 2, "i": 3, "u": 4, "x": 5, "t": 6,
    "d": 0.5, "s": "a", "o": "/a", "g": "s", "v": DBusValue("s", "x"), "h": 0,
}


def check(label: str, condition: bool, detail: str = ""):
    global PASS, FAIL
    if condition:
        PASS += 1
        print(f"  [PASS] {label}")
    else:
        FAIL += 1
        print(f"  [FAIL] {label}  {detail}")
    assert condition, f"{label} {detail}"


class FixedRand:
    def __init__(self, values=None):
        self.values = dict(FIXED, **(values or {}))
        self.calls = 0

    def next_value(self, code):
        self.calls += 1
        return self.values[code]


class ScriptedProxy:
    """Returns *reply* or raises *error* on every call."""

    def __init__(self, reply=None, error=None):
        self.reply = reply or BusReply()
        self.error = error
        self.calls = []

    def call(self, method_name, value):
        self.calls.append((method_name, value))
        if self.error is not None:
            raise self.error
        return self.reply


def test_generate_all_codes():
    print("\n--- Generation for every elementary code ---")
    sigs = list("ybnqiuxtdsogvh")
    m = MethodUnderTest("All", signatures=sigs)
    session = FuzzSession()
    check("generation succeeds", generate_values(m, FixedRand(), session))
    check("every slot filled with its own code",
          [s.generated_value.signature for s in m.arguments] == sigs)
    check("variant wraps a string", m.arguments[12].generated_value.unpack() == DBusValue("s", "x"))
    check("composes into one tuple", compose_call_value(m).signature == "".join(sigs))
    check("string method grows string lengths", m.fuzz_on_str_len)
    check("numeric method does not", not MethodUnderTest("N", signatures=["i", "u"]).fuzz_on_str_len)


def test_generate_unsupported():
    print("\n--- Compound signatures ---")
    m = MethodUnderTest("Mixed", signatures=["i", "a{sv}"])
    session = FuzzSession()
    rand = FixedRand()
    check("compound signature stops generation", generate_values(m, rand, session) is False)
    check("earlier slot was cleared", m.arguments[0].generated_value is None)
    check("signal names the signature", session.unsupported_signature == "a{sv}")

    calls = rand.calls
    check("pending signal short-circuits", generate_values(m, rand, session) is False)
    check("no values drawn while signalled", rand.calls == calls)
    check("signal is consumed once", session.take_unsupported() == "a{sv}")
    check("signal cleared after take", session.take_unsupported() is None)


def test_generate_failures():
    print("\n--- Generation failures ---")
    m = MethodUnderTest("Bad", signatures=["s", "i"])
    session = FuzzSession()
    try:
        generate_values(m, FixedRand({"i": None}), session)
        raised = False
    except FuzzInternalError as e:
        raised = "'i'" in str(e)
    check("unconstructible value is an internal error", raised)
    check("partially built values were cleared", m.arguments[0].generated_value is None)

    m = MethodUnderTest("Odd", signatures=["z"])
    try:
        generate_values(m, FixedRand(), session)
        raised = False
    except FuzzInternalError:
        raised = True
    check("unknown code is an internal error", raised)
    check("unsupported signal not raised for unknown code", session.unsupported_signature is None)

    m = MethodUnderTest("Partial", signatures=["s", "q"])
    rand = FixedRand()
    del rand.values["q"]
    try:
        generate_values(m, rand, session)
        raised = False
    except FuzzInternalError as e:
        raised = "'q'" in str(e)
    check("any value source failure is an internal error", raised)
    check("values cleared after source failure", m.arguments[0].generated_value is None)


def test_catalog():
    print("\n--- Argument catalog ---")
    m = MethodUnderTest("SetName", is_void=True, signatures=["s"])
    check("one slot", m.args_count == 1 and m.signatures == ["s"])
    check("description", m.describe() == "SetName(s)")
    m.release()
    check("release frees all slots", m.args_count == 0 and not m.fuzz_on_str_len)
    m.release()
    check("release twice is harmless", m.args_count == 0)

    try:
        MethodUnderTest("")
        raised = False
    except ValueError:
        raised = True
    check("empty method name rejected", raised)


def invoke(proxy, method, session=None, sleeps=None):
    session = session or FuzzSession()
    sleeps = sleeps if sleeps is not None else []
    value = compose_call_value(method)
    return call_method(proxy, method, value, session, backoff=10, sleep=sleeps.append), session


def test_invoke_replies():
    print("\n--- Replies ---")
    ping = MethodUnderTest("Ping")
    result, _ = invoke(ScriptedProxy(BusReply()), ping)
    check("void method with empty reply succeeds", result.outcome is Outcome.SUCCESS)
    check("reply type recorded", result.reply_type == "()")

    result, _ = invoke(ScriptedProxy(BusReply("s", ("x",))), ping)
    check("void method returning data violates contract",
          result.outcome is Outcome.VOID_CONTRACT_VIOLATED, repr(result))
    check("violating reply type kept", result.reply_type == "(s)")

    get = MethodUnderTest("Get", is_void=False)
    result, _ = invoke(ScriptedProxy(BusReply("s", ("x",))), get)
    check("non-void method may return data", result.outcome is Outcome.SUCCESS)

    proxy = ScriptedProxy()
    m = MethodUnderTest("Echo", signatures=["s"])
    generate_values(m, FixedRand(), FuzzSession())
    invoke(proxy, m)
    name, value = proxy.calls[0]
    check("called by name with the composed tuple", name == "Echo" and value.unpack() == ("a",))


def test_invoke_errors():
    print("\n--- Error replies ---")
    ping = MethodUnderTest("Ping")

    result, session = invoke(ScriptedProxy(error=RemoteError(ERROR_NO_REPLY, "no reply")), ping)
    check("NoReply is fatal", result.outcome is Outcome.REMOTE_NO_REPLY_OR_TIMEOUT)
    check("NoReply not counted", session.exception_count == 0)

    sleeps = []
    result, _ = invoke(ScriptedProxy(error=RemoteError(ERROR_TIMEOUT, "slow")), ping, sleeps=sleeps)
    check("Timeout is fatal", result.outcome is Outcome.REMOTE_NO_REPLY_OR_TIMEOUT)
    check("Timeout backs off once", sleeps == [10], str(sleeps))

    for name in (ERROR_ACCESS_DENIED, ERROR_AUTH_FAILED):
        result, session = invoke(ScriptedProxy(error=RemoteError(name, "denied")), ping)
        check(f"{name.rsplit('.', 1)[-1]} skips the method",
              result.skip and result.outcome is Outcome.REMOTE_EXCEPTION_TOLERATED)
        check(f"{name.rsplit('.', 1)[-1]} not counted", session.exception_count == 0)

    result, session = invoke(
        ScriptedProxy(error=RemoteError("org.example.Error.Busy", "Timeout was reached")), ping)
    check("timeout message skips the method", result.skip)
    check("timeout message not counted", session.exception_count == 0)

    session = FuzzSession(max_exceptions=3)
    proxy = ScriptedProxy(error=RemoteError("org.example.Error.Invalid", "bad input"))
    for _ in range(5):
        result, _ = invoke(proxy, ping, session)
    check("ordinary error tolerated", result.outcome is Outcome.REMOTE_EXCEPTION_TOLERATED)
    check("ordinary error does not skip", not result.skip)
    check("counter capped at the maximum", session.exception_count == 3)
    check("cap reached", session.cap_reached())
    session.reset_exceptions()
    check("counter reset", session.exception_count == 0 and not session.cap_reached())

    result, session = invoke(ScriptedProxy(error=RemoteError(None, "unnamed failure")), ping)
    check("unnamed remote error counted as exception", session.exception_count == 1)

    session = FuzzSession()
    try:
        invoke(ScriptedProxy(error=BusOfflineError("Connection to the bus lost: [Errno 32] Broken pipe")),
               ping, session)
        raised = False
    except ConnectionLostError:
        raised = True
    check("lost connection is not a tolerated exception", raised)
    check("lost connection not counted", session.exception_count == 0)


def test_verdicts():
    print("\n--- Verdict codes ---")
    expected = {
        Outcome.SUCCESS: VERDICT_OK,
        Outcome.REMOTE_EXCEPTION_TOLERATED: VERDICT_OK,
        Outcome.UNSUPPORTED_SIGNATURE_SKIPPED: VERDICT_OK,
        Outcome.TARGET_CRASHED: VERDICT_CRASH,
        Outcome.REMOTE_NO_REPLY_OR_TIMEOUT: VERDICT_CRASH,
        Outcome.VOID_CONTRACT_VIOLATED: VERDICT_VOID_VIOLATION,
        Outcome.HEALTH_CHECK_FAILED: VERDICT_COMMAND_FAILED,
        Outcome.INTERNAL_ERROR: VERDICT_ERROR,
    }
    for outcome, code in expected.items():
        check(f"{outcome.value} -> {code}", Verdict(outcome).code == code)

    check("no methods is a pass", most_severe([]) == VERDICT_OK)
    check("crash beats health check", most_severe([0, 4, 1, 2]) == VERDICT_CRASH)
    check("health check beats void", most_severe([2, 4, 0]) == VERDICT_COMMAND_FAILED)
    check("internal error beats everything", most_severe([1, -1, 4]) == VERDICT_ERROR)


def main():
    for test in (test_generate_all_codes, test_generate_unsupported, test_generate_failures,
                 test_catalog, test_invoke_replies, test_invoke_errors, test_verdicts):
        try:
            test()
        except AssertionError:
            pass

    print(f"\n{'='*50}")
    print(f"Results: {PASS} passed, {FAIL} failed out of {PASS + FAIL}")
    print(f"{'='*50}")
    sys.exit(1 if FAIL else 0)


if __name__ == "__main__":
    main()
