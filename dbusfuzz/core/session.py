"""session.py — Per-method fuzzing state shared by the engine components."""

from dbusfuzz.core.config import MAX_EXCEPTIONS


class FuzzSession:
    """Exception counter and unsupported-signature signal for one method's test."""

    def __init__(self, max_exceptions: int = MAX_EXCEPTIONS):
        self.max_exceptions = max_exceptions
        self.exception_count = 0
        self.unsupported_signature: str | None = None

    def record_exception(self) -> int:
        """Count one tolerated remote exception. Returns the new count."""
        if self.exception_count < self.max_exceptions:
            self.exception_count += 1
        return self.exception_count

    def cap_reached(self) -> bool:
        return self.exception_count >= self.max_exceptions

    def reset_exceptions(self) -> None:
        self.exception_count = 0

    def flag_unsupported(self, signature: str) -> None:
        self.unsupported_signature = signature

    def take_unsupported(self) -> str | None:
        """Return the pending unsupported signature and clear it."""
        sig = self.unsupported_signature
        self.unsupported_signature = None
        return sig

    def reset(self) -> None:
        """Start over for the next method."""
        self.reset_exceptions()
        self.unsupported_signature = None
