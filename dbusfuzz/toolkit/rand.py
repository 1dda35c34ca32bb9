"""rand.py — Random values for every elementary D-Bus type.

Numbers mix well-known boundary values with uniform draws. Strings stay
valid UTF-8 without NUL (the bus drops anything else before the target
sees it), are bounded in encoded bytes and, for string-driven methods, grow
longer as fuzzing goes on. Signatures are always well formed: the bus
daemon disconnects a client that sends a malformed one.
"""

import random
import string

from dbusfuzz.core.config import FUZZ_ITERATIONS, MAX_BUF_LEN, NO_ARGS_ITERATIONS
from dbusfuzz.core.values import INT_RANGES, DBusValue

# Length bound for strings when a method is not string-driven
SHORT_STR_LEN = 64
MAX_SIGNATURE_LEN = 255
MAX_PATH_ELEMENT_LEN = 32

SPECIAL_STRINGS = [
    "%s%s%s%s%n", "%x%x%x%x", "%99999999999s", "\\", "'", "\"", "../../../",
    "‮", "﻿", "\U0001f4a9", "ÿ" * 4,
]
STRING_POOL = string.printable.replace("\x0b", "").replace("\x0c", "") + "ěščřžýáíé€"
PATH_POOL = string.ascii_letters + string.digits + "_"
BASIC_CODES = "ybnqiuxtdsogh"
# Container nesting of generated signatures; the bus allows 32
MAX_SIGNATURE_DEPTH = 4


class RandomValueSource:
    """Generator of fuzzed values driven by the fuzz loop."""

    def __init__(self, buf_size: int = MAX_BUF_LEN, max_iterations: int = FUZZ_ITERATIONS,
                 seed: int | None = None):
        self.rng = random.Random(seed)
        self.max_iterations = max_iterations
        self.reset(buf_size)

    def reset(self, buf_size: int) -> None:
        """Start a new method: forget the iteration counter, set the string size limit."""
        self.buf_size = max(1, buf_size)
        self.counter = 0
        self.str_len = SHORT_STR_LEN

    def should_continue(self, fuzz_on_str_len: bool, args_count: int) -> bool:
        """Advance to the next iteration; False once the method is exhausted."""
        limit = NO_ARGS_ITERATIONS if args_count == 0 else self.max_iterations
        if self.counter >= limit:
            self.counter = 0
            return False
        self.counter += 1
        if fuzz_on_str_len:
            self.str_len = max(1, self.buf_size * self.counter // limit)
        else:
            self.str_len = min(SHORT_STR_LEN, self.buf_size)
        return True

    def next_value(self, code: str):
        if code in INT_RANGES and code != "h":
            return self.integer(code)
        generators = {
            "b": self.boolean,
            "d": self.double,
            "s": self.string,
            "o": self.object_path,
            "g": self.signature,
            "v": self.variant,
            "h": self.unix_fd,
        }
        if code not in generators:
            raise ValueError(f"No generator for signature '{code}'")
        return generators[code]()

    def integer(self, code: str) -> int:
        lo, hi = INT_RANGES[code]
        if self.rng.random() < 0.3:
            edges = [lo, lo + 1, hi - 1, hi, 0, 1]
            return self.rng.choice([e for e in edges if lo <= e <= hi])
        return self.rng.randint(lo, hi)

    def boolean(self) -> bool:
        return self.rng.random() < 0.5

    def double(self) -> float:
        if self.rng.random() < 0.3:
            return self.rng.choice([0.0, -0.0, 1.0, -1.0, float("inf"), float("-inf"),
                                    float("nan"), 1.7976931348623157e308, 5e-324])
        return self.rng.uniform(-1e308, 1e308)

    def string(self) -> str:
        """Random text of at most str_len bytes once UTF-8 encoded."""
        length = self.rng.randint(0, self.str_len)
        if length and self.rng.random() < 0.2:
            chunk = self.rng.choice(SPECIAL_STRINGS)
            text = (chunk * (length // len(chunk) + 1))[:length]
        else:
            text = "".join(self.rng.choices(STRING_POOL, k=length))
        # cut on a character boundary
        return text.encode()[:length].decode("utf-8", "ignore")

    def object_path(self) -> str:
        budget = max(1, min(self.str_len, 255))
        elements = []
        used = 0
        while used < budget and self.rng.random() < 0.8:
            n = self.rng.randint(1, MAX_PATH_ELEMENT_LEN)
            elements.append("".join(self.rng.choices(PATH_POOL, k=n)))
            used += n + 1
        return "/" + "/".join(elements)

    def signature(self) -> str:
        """A well-formed signature: complete types up to a random length."""
        budget = self.rng.randint(0, min(self.str_len, MAX_SIGNATURE_LEN))
        sig = ""
        while True:
            t = self._complete_type(MAX_SIGNATURE_DEPTH)
            if len(sig) + len(t) > budget:
                return sig
            sig += t

    def _complete_type(self, depth: int) -> str:
        roll = self.rng.random()
        if depth <= 0 or roll < 0.6:
            return self.rng.choice(BASIC_CODES + "v")
        if roll < 0.75:
            return "a" + self._complete_type(depth - 1)
        if roll < 0.9:
            members = self.rng.randint(1, 4)
            return "(" + "".join(self._complete_type(depth - 1) for _ in range(members)) + ")"
        return "a{" + self.rng.choice(BASIC_CODES) + self._complete_type(depth - 1) + "}"

    def variant(self) -> DBusValue:
        return DBusValue("s", self.string())

    def unix_fd(self) -> int:
        # must be a descriptor we really own, the bus passes it to the target
        return self.rng.choice([0, 1, 2])
