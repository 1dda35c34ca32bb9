"""outcome.py — Call outcomes, method verdicts and the engine's error type."""

from enum import Enum


class FuzzInternalError(RuntimeError):
    """Raised when the fuzzer itself cannot carry on testing a method."""


class ConnectionLostError(FuzzInternalError):
    """The bus connection broke; no further method can be tested on it."""


class Outcome(Enum):
    SUCCESS = "Success"
    REMOTE_EXCEPTION_TOLERATED = "RemoteExceptionTolerated"
    REMOTE_NO_REPLY_OR_TIMEOUT = "RemoteNoReplyOrTimeout"
    VOID_CONTRACT_VIOLATED = "VoidContractViolated"
    TARGET_CRASHED = "TargetCrashed"
    HEALTH_CHECK_FAILED = "HealthCheckFailed"
    UNSUPPORTED_SIGNATURE_SKIPPED = "UnsupportedSignatureSkipped"
    INTERNAL_ERROR = "InternalError"


# Method verdict return codes
VERDICT_OK = 0
VERDICT_CRASH = 1
VERDICT_VOID_VIOLATION = 2
VERDICT_WARNING = 3
VERDICT_COMMAND_FAILED = 4
VERDICT_ERROR = -1

VERDICT_CODES = {
    Outcome.SUCCESS: VERDICT_OK,
    Outcome.REMOTE_EXCEPTION_TOLERATED: VERDICT_OK,
    Outcome.UNSUPPORTED_SIGNATURE_SKIPPED: VERDICT_OK,
    Outcome.REMOTE_NO_REPLY_OR_TIMEOUT: VERDICT_CRASH,
    Outcome.TARGET_CRASHED: VERDICT_CRASH,
    Outcome.VOID_CONTRACT_VIOLATED: VERDICT_VOID_VIOLATION,
    Outcome.HEALTH_CHECK_FAILED: VERDICT_COMMAND_FAILED,
    Outcome.INTERNAL_ERROR: VERDICT_ERROR,
}

# Most severe first; used to fold many method verdicts into one exit status
SEVERITY = [VERDICT_ERROR, VERDICT_CRASH, VERDICT_COMMAND_FAILED,
            VERDICT_VOID_VIOLATION, VERDICT_WARNING, VERDICT_OK]


class CallResult:
    """Classification of a single method call."""

    def __init__(self, outcome: Outcome, skip: bool = False,
                 error_name: str | None = None, message: str = "",
                 reply_type: str | None = None):
        self.outcome = outcome
        self.skip = skip
        self.error_name = error_name
        self.message = message
        self.reply_type = reply_type

    def __repr__(self):
        return (f"CallResult({self.outcome.value}, skip={self.skip}, "
                f"error_name={self.error_name!r}, reply_type={self.reply_type!r})")


class Verdict:
    """Final result of testing one method."""

    def __init__(self, outcome: Outcome, reproducer: str | None = None, detail: str = ""):
        self.outcome = outcome
        self.code = VERDICT_CODES[outcome]
        self.reproducer = reproducer
        self.detail = detail

    @property
    def failed(self) -> bool:
        return self.code != VERDICT_OK

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "code": self.code,
            "reproducer": self.reproducer,
            "detail": self.detail,
        }

    def __repr__(self):
        return f"Verdict({self.outcome.value}, code={self.code})"


def most_severe(codes: list[int]) -> int:
    """Fold per-method verdict codes into the single most severe one."""
    for code in SEVERITY:
        if code in codes:
            return code
    return VERDICT_OK
