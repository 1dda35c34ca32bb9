"""values.py — Typed D-Bus values whose shape is known only at run time.

A DBusValue is one elementary value tagged with its signature code; a
DBusTuple is an ordered, fixed-arity collection of them and is the single
object handed to the bus for a method call.
"""

import math

ELEMENTARY_CODES = "ybnqiuxtdsogvh"
STRING_CODES = "sog"

INT_RANGES = {
    "y": (0, 2**8 - 1),
    "n": (-(2**15), 2**15 - 1),
    "q": (0, 2**16 - 1),
    "i": (-(2**31), 2**31 - 1),
    "u": (0, 2**32 - 1),
    "h": (0, 2**32 - 1),
    "x": (-(2**63), 2**63 - 1),
    "t": (0, 2**64 - 1),
}


class DBusValue:
    """One elementary D-Bus value. Validated on construction."""

    __slots__ = ("signature", "value")

    def __init__(self, signature: str, value):
        if len(signature) != 1 or signature not in ELEMENTARY_CODES:
            raise ValueError(f"Not an elementary signature: '{signature}'")
        self.signature = signature
        self.value = _check(signature, value)

    def unpack(self):
        return self.value

    def __eq__(self, other):
        if not isinstance(other, DBusValue):
            return NotImplemented
        if self.signature != other.signature:
            return False
        if self.signature == "d" and math.isnan(self.value) and math.isnan(other.value):
            return True
        return self.value == other.value

    def __hash__(self):
        return hash((self.signature, self.value))

    def __repr__(self):
        return f"DBusValue({self.signature!r}, {self.value!r})"


def _check(code: str, value):
    if code in INT_RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"'{code}' expects an int, got {type(value).__name__}")
        lo, hi = INT_RANGES[code]
        if not lo <= value <= hi:
            raise ValueError(f"{value} out of range for '{code}'")
        return value
    if code == "b":
        if not isinstance(value, bool):
            raise TypeError(f"'b' expects a bool, got {type(value).__name__}")
        return value
    if code == "d":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"'d' expects a float, got {type(value).__name__}")
        return float(value)
    if code in STRING_CODES:
        if not isinstance(value, str):
            raise TypeError(f"'{code}' expects a str, got {type(value).__name__}")
        if "\x00" in value:
            raise ValueError(f"'{code}' value contains a NUL character")
        return value
    # code == "v"
    if not isinstance(value, DBusValue):
        raise TypeError(f"'v' expects a DBusValue, got {type(value).__name__}")
    return value


class DBusTuple:
    """Immutable ordered tuple of DBusValue elements."""

    __slots__ = ("_elements",)

    def __init__(self, elements):
        elements = tuple(elements)
        for el in elements:
            if not isinstance(el, DBusValue):
                raise TypeError(f"Tuple element must be a DBusValue, got {type(el).__name__}")
        self._elements = elements

    @property
    def signature(self) -> str:
        """Body signature, e.g. 'si'."""
        return "".join(el.signature for el in self._elements)

    @property
    def type_string(self) -> str:
        """Tuple type, e.g. '(si)'; '()' for no arguments."""
        return f"({self.signature})"

    def unpack(self) -> tuple:
        return tuple(el.unpack() for el in self._elements)

    def __len__(self):
        return len(self._elements)

    def __iter__(self):
        return iter(self._elements)

    def __getitem__(self, index):
        return self._elements[index]

    def __eq__(self, other):
        if not isinstance(other, DBusTuple):
            return NotImplemented
        return self._elements == other._elements

    def __hash__(self):
        return hash(self._elements)

    def __repr__(self):
        return f"DBusTuple({list(self._elements)!r})"


def parse_format_string(fmt: str) -> list[str]:
    """Split a '(@s@i)' descriptor back into its signatures ['s', 'i']."""
    if len(fmt) < 2 or fmt[0] != "(" or fmt[-1] != ")":
        raise ValueError(f"Not a tuple descriptor: '{fmt}'")
    inner = fmt[1:-1]
    if not inner:
        return []
    if not inner.startswith("@"):
        raise ValueError(f"Not a tuple descriptor: '{fmt}'")
    return inner[1:].split("@")
