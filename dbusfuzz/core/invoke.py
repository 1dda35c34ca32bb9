"""invoke.py — Call a method through the bus proxy and classify the result."""

import logging
import time

from dbusfuzz.core.catalog import MethodUnderTest
from dbusfuzz.core.config import TIMEOUT_BACKOFF
from dbusfuzz.core.outcome import CallResult, ConnectionLostError, Outcome
from dbusfuzz.core.session import FuzzSession
from dbusfuzz.core.values import DBusTuple
from dbusfuzz.toolkit.bus import BusOfflineError, RemoteError

log = logging.getLogger(__name__)

ERROR_NO_REPLY = "org.freedesktop.DBus.Error.NoReply"
ERROR_TIMEOUT = "org.freedesktop.DBus.Error.Timeout"
ERROR_ACCESS_DENIED = "org.freedesktop.DBus.Error.AccessDenied"
ERROR_AUTH_FAILED = "org.freedesktop.DBus.Error.AuthFailed"


def call_method(proxy, method: MethodUnderTest, value: DBusTuple, session: FuzzSession,
                backoff: float = TIMEOUT_BACKOFF, sleep=time.sleep) -> CallResult:
    """Synchronously call *method* with *value*, waiting as long as the bus does.

    *proxy* must provide ``call(method_name, value)`` returning a reply with a
    ``type_string`` attribute, raising RemoteError for error replies and
    BusOfflineError when the connection itself fails. The latter ends the
    whole run with ConnectionLostError.
    """
    try:
        reply = proxy.call(method.name, value)
    except RemoteError as e:
        return _classify_error(e, method, session, backoff, sleep)
    except BusOfflineError as e:
        raise ConnectionLostError(f"Calling {method.name}: {e}") from e

    if method.is_void and reply.type_string != "()":
        return CallResult(Outcome.VOID_CONTRACT_VIOLATED, reply_type=reply.type_string)
    return CallResult(Outcome.SUCCESS, reply_type=reply.type_string)


def _classify_error(e: RemoteError, method: MethodUnderTest, session: FuzzSession,
                    backoff: float, sleep) -> CallResult:
    if e.name == ERROR_NO_REPLY:
        return CallResult(Outcome.REMOTE_NO_REPLY_OR_TIMEOUT, error_name=e.name, message=e.message)
    if e.name == ERROR_TIMEOUT:
        # processing of longer inputs may legitimately take a while
        sleep(backoff)
        return CallResult(Outcome.REMOTE_NO_REPLY_OR_TIMEOUT, error_name=e.name, message=e.message)
    if e.name in (ERROR_ACCESS_DENIED, ERROR_AUTH_FAILED):
        log.info("  SKIP %s - raised exception '%s'", method.name, e.name)
        return CallResult(Outcome.REMOTE_EXCEPTION_TOLERATED, skip=True,
                          error_name=e.name, message=e.message)
    if "Timeout" in e.message:
        log.info("  SKIP %s - timeout reached", method.name)
        return CallResult(Outcome.REMOTE_EXCEPTION_TOLERATED, skip=True,
                          error_name=e.name, message=e.message)

    log.debug("  EXCE %s - D-Bus exception thrown: %.60s", method.name, e.message)
    session.record_exception()
    return CallResult(Outcome.REMOTE_EXCEPTION_TOLERATED, error_name=e.name, message=e.message)
