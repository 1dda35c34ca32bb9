"""catalog.py — Argument catalog of the method currently under test."""

from dbusfuzz.core.values import DBusValue


class ArgumentSlot:
    """One method argument: its signature and the value generated for this iteration."""

    __slots__ = ("signature", "generated_value")

    def __init__(self, signature: str):
        self.signature = signature
        self.generated_value: DBusValue | None = None

    @property
    def compound(self) -> bool:
        return len(self.signature) > 1

    def __repr__(self):
        return f"ArgumentSlot({self.signature!r}, {self.generated_value!r})"


class MethodUnderTest:
    """Ordered argument slots of one D-Bus method, in call order."""

    def __init__(self, name: str, is_void: bool = True, signatures: list[str] | None = None):
        if not name:
            raise ValueError("Method name must not be empty")
        self.name = name
        self.is_void = is_void
        self.arguments: list[ArgumentSlot] = []
        # string lengths, not just values, drive the fuzzing
        self.fuzz_on_str_len = False
        for sig in signatures or []:
            self.add_argument(sig)

    def add_argument(self, signature: str) -> ArgumentSlot:
        if not signature:
            raise ValueError(f"Empty argument signature for method '{self.name}'")
        slot = ArgumentSlot(signature)
        if "s" in signature or "v" in signature:
            self.fuzz_on_str_len = True
        self.arguments.append(slot)
        return slot

    @property
    def args_count(self) -> int:
        return len(self.arguments)

    @property
    def signatures(self) -> list[str]:
        return [slot.signature for slot in self.arguments]

    def clear_values(self) -> None:
        """Drop every generated value so nothing leaks into the next iteration."""
        for slot in self.arguments:
            slot.generated_value = None

    def release(self) -> None:
        """Free all argument slots. Safe to call more than once."""
        self.clear_values()
        self.arguments.clear()
        self.fuzz_on_str_len = False

    def describe(self) -> str:
        return f"{self.name}({', '.join(self.signatures)})"

    def __repr__(self):
        return f"MethodUnderTest({self.describe()}, void={self.is_void})"
