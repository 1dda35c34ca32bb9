"""logging_config.py — Console logging for the fuzzer."""

import logging
import sys

LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


def setup_logging(verbosity: int = 0) -> None:
    """0: failures only, 1: PASS/SKIP per method, 2: every exception and signature."""
    logging.basicConfig(
        level=LEVELS[max(0, min(verbosity, len(LEVELS) - 1))],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
