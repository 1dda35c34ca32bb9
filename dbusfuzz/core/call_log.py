"""call_log.py — Append-only record of fuzzed calls, one ';'-separated line each.

Record layout:

    interface;object_path;method;sig;value;sig;value;...;Status

Integers and doubles are written as decimal text, booleans as true/false,
strings, object paths and signatures as the hex encoding of their UTF-8
bytes. Variants are unwrapped to their inner string when possible.
"""

import logging
from pathlib import Path

from dbusfuzz.core.catalog import MethodUnderTest
from dbusfuzz.core.values import STRING_CODES, DBusValue

log = logging.getLogger(__name__)

STATUS_SUCCESS = "Success"
STATUS_CRASH = "Crash"
STATUS_COMMAND_ERROR = "Command execution error"


def format_value(value: DBusValue) -> str | None:
    """Log text for one value; None when a variant cannot be deconstructed."""
    code = value.signature
    if code == "b":
        return "true" if value.value else "false"
    if code == "d":
        return f"{value.value:g}"
    if code in STRING_CODES:
        return value.value.encode().hex()
    if code == "v":
        inner = value.value
        if inner.signature in STRING_CODES:
            return inner.value.encode().hex()
        return None
    return str(value.value)


def format_arguments(method: MethodUnderTest) -> str:
    """Per-argument 'sig;value;' fields in declared order."""
    fields = []
    for slot in method.arguments:
        if slot.compound:
            log.debug("Logging of '%s' arguments is not implemented", slot.signature)
            break
        if slot.generated_value is None:
            log.error("No generated value for '%s' argument of %s", slot.signature, method.name)
            break
        text = format_value(slot.generated_value)
        if text is None:
            log.error("    --%s-- 'unable to deconstruct variant'", slot.signature)
            text = ""
        fields.append(f"{slot.signature};{text};")
    return "".join(fields)


def format_record(interface: str, object_path: str, method: MethodUnderTest, status: str) -> str:
    return f"{interface};{object_path};{method.name};{format_arguments(method)}{status}\n"


def describe_arguments(method: MethodUnderTest) -> list[str]:
    """Human-readable argument dump for failure reports."""
    lines = []
    for slot in method.arguments:
        value = slot.generated_value
        if value is None:
            lines.append(f"    --{slot.signature}-- <not generated>")
            continue
        if value.signature == "v":
            value = value.value
        if value.signature in STRING_CODES:
            lines.append(f"    --{slot.signature} [length: {len(value.value.encode())} B]-- '{value.value}'")
        elif value.signature == "b":
            lines.append(f"    --{slot.signature}-- '{'true' if value.value else 'false'}'")
        else:
            lines.append(f"    --{slot.signature}-- '{value.value}'")
    return lines


class CallLogger:
    """Appends call records to a plain text log file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.records_written = 0

    def record(self, interface: str, object_path: str, method: MethodUnderTest,
               status: str = STATUS_SUCCESS) -> str:
        """Append one record for the values currently held by *method*. Returns the line."""
        line = format_record(interface, object_path, method, status)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)
        self.records_written += 1
        return line

    def read_records(self) -> list[str]:
        if not self.path.exists():
            return []
        return self.path.read_text(encoding="utf-8").splitlines()
