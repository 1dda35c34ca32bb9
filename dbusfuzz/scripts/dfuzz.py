#!/usr/bin/env python3
"""dfuzz.py — Fuzz test the methods of a D-Bus service.

Run:  python3 -m dbusfuzz.scripts.dfuzz -n org.example.Service -v
  or: dbusfuzz -n org.example.Service -o /org/example -i org.example.Iface -t Method

Exit status: 0 all methods passed (or were skipped), 1 the target crashed
or stopped replying, 2 a void method returned data, 4 the -e command
failed, 255 internal error.
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from dbusfuzz.core.config import FUZZ_ITERATIONS, load_suppressions
from dbusfuzz.core.runner import DBusFuzzer
from dbusfuzz.toolkit.bus import BusOfflineError, connect
from dbusfuzz.toolkit.logging_config import setup_logging
from dbusfuzz.toolkit.rand import RandomValueSource


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbusfuzz",
                                     description="Fuzz test D-Bus methods with random arguments.")
    parser.add_argument("-n", "--bus-name", required=True, help="D-Bus name of the tested service")
    parser.add_argument("-o", "--object", help="Object path (default: walk the whole tree)")
    parser.add_argument("-i", "--interface", help="Only fuzz this interface")
    parser.add_argument("-t", "--method", help="Only fuzz this method")
    parser.add_argument("-b", "--buffer-size", type=int, default=0,
                        help="Maximum size of generated strings in bytes (min 512)")
    parser.add_argument("-e", "--command", help="Command to run after each call; non-zero exit fails the method")
    parser.add_argument("-l", "--log-dir", type=Path, help="Write call records to LOG_DIR/<bus name>")
    parser.add_argument("-x", "--max-iterations", type=int, default=FUZZ_ITERATIONS,
                        help="Calls per method")
    parser.add_argument("-s", "--no-suppressions", action="store_true",
                        help="Do not load the suppression file")
    parser.add_argument("--system", action="store_true", help="Use the system bus")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("-v", "--verbose", action="store_true", help="Report every method")
    parser.add_argument("-d", "--debug", action="store_true", help="Report every call")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(2 if args.debug else 1 if args.verbose else 0)

    try:
        suppressions = {} if args.no_suppressions else load_suppressions(args.bus_name)
    except ValueError as e:
        print(json.dumps({"error": str(e)}))
        return 255

    try:
        connection = connect(system=args.system)
    except BusOfflineError as e:
        print(json.dumps({"error": str(e)}))
        return 255

    fuzzer = DBusFuzzer(
        connection, args.bus_name,
        object_path=args.object, interface=args.interface, method=args.method,
        buf_size=args.buffer_size, execute_cmd=args.command, log_dir=args.log_dir,
        suppressions=suppressions,
        rand=RandomValueSource(max_iterations=args.max_iterations, seed=args.seed),
        system_bus=args.system,
    )
    try:
        summary = fuzzer.run()
    except (RuntimeError, BusOfflineError) as e:
        print(json.dumps({"error": str(e)}))
        return 255
    finally:
        connection.close()

    print(json.dumps(summary, indent=2, default=str))
    return summary["exit_code"]


if __name__ == "__main__":
    sys.exit(main())
