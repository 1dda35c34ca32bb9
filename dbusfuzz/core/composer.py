"""composer.py — Fold a method's generated values into one call tuple.

The tuple descriptor uses GVariant format-string notation: each element is
written as '@' + its signature, so (s, i) becomes "(@s@i)". Its size is
checked against a fixed capacity before anything is built.
"""

from dbusfuzz.core.catalog import MethodUnderTest
from dbusfuzz.core.config import MAX_FORMAT_LEN
from dbusfuzz.core.outcome import FuzzInternalError
from dbusfuzz.core.values import DBusTuple, parse_format_string


def format_string_size(signatures: list[str]) -> int:
    """Buffer size a descriptor needs: '(' + '@sig' per argument + ')' + terminator."""
    return 1 + sum(1 + len(sig) for sig in signatures) + 1 + 1


def create_format_string(signatures: list[str], max_len: int = MAX_FORMAT_LEN) -> str:
    if format_string_size(signatures) > max_len:
        raise FuzzInternalError("Format string too small to consume all signatures")
    return "(" + "".join("@" + sig for sig in signatures) + ")"


def compose_call_value(method: MethodUnderTest, max_len: int = MAX_FORMAT_LEN) -> DBusTuple:
    """Build the call tuple from the values currently held by *method*'s slots."""
    fmt = create_format_string(method.signatures, max_len)

    elements = []
    for slot in method.arguments:
        if slot.generated_value is None:
            raise FuzzInternalError(
                f"No generated value for '{slot.signature}' argument of method '{method.name}'")
        elements.append(slot.generated_value)

    try:
        value = DBusTuple(elements)
    except TypeError as e:
        raise FuzzInternalError(f"Unable to build call tuple for method '{method.name}': {e}") from e

    # the tuple must describe exactly what the descriptor promised
    if value.type_string != "(" + "".join(parse_format_string(fmt)) + ")":
        raise FuzzInternalError(
            f"Call tuple {value.type_string} does not match {fmt} for method '{method.name}'")
    return value
