"""config.py — Fuzzing limits and the method suppression file.

Suppression files are INI-style, one section per bus name:

    [org.freedesktop.systemd1]
    Reboot destructive
    org.freedesktop.systemd1.Manager.PowerOff  powers the machine off

Each line names a method (optionally prefixed by its interface) followed by
a free-text reason. Suppressed methods are never called.
"""

import configparser
from pathlib import Path

# Tolerated D-Bus exceptions per method before moving on
MAX_EXCEPTIONS = 10

# Generated string sizes (bytes); anything below MIN_BUF_LEN means "default"
MIN_BUF_LEN = 512
MAX_BUF_LEN = 50000

# Capacity of the composed tuple descriptor, terminator included
MAX_FORMAT_LEN = 512

# Seconds to wait after a D-Bus Timeout error before carrying on
TIMEOUT_BACKOFF = 10

FUZZ_ITERATIONS = 1000
NO_ARGS_ITERATIONS = 10

STANDARD_INTERFACE_PREFIX = "org.freedesktop.DBus."

DEFAULT_SUPPRESSION_FILES = [
    Path.home() / ".dbusfuzz.conf",
    Path("/etc/dbusfuzz.conf"),
]


def load_suppressions(bus_name: str, paths: list[Path] | None = None) -> dict[str, str]:
    """Return {method: reason} for *bus_name* from the first file that has a section for it."""
    for p in paths if paths is not None else DEFAULT_SUPPRESSION_FILES:
        p = Path(p)
        if not p.exists():
            continue
        parser = configparser.ConfigParser(
            allow_no_value=True, delimiters=("=",), comment_prefixes=("#", ";"),
            interpolation=None, strict=False,
        )
        parser.optionxform = str
        try:
            parser.read_string(p.read_text(), source=str(p))
        except configparser.Error as e:
            raise ValueError(f"Malformed suppression file {p}: {e}") from e
        if not parser.has_section(bus_name):
            continue

        suppressions = {}
        for key, value in parser.items(bus_name):
            line = key if value is None else f"{key}={value}"
            method, _, reason = line.strip().partition(" ")
            suppressions[method] = reason.strip()
        return suppressions
    return {}


def is_suppressed(suppressions: dict[str, str], interface: str, method: str) -> str | None:
    """Return the suppression reason for a method, or None if it may be fuzzed."""
    for key in (method, f"{interface}.{method}"):
        if key in suppressions:
            return suppressions[key] or "suppressed"
    return None
