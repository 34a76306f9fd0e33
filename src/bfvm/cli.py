#
# Command-line front end for the bfvm tape interpreter.
#
# Modes:
#   r: compile and run the program (default)
#   d: dump the compiled instruction list without running it
#
# Overflow/underflow behaviours (-l for cell values, -p for the cell pointer):
#   e: throw an error and quit upon over/underflow
#   i: do nothing when attempting to over/underflow
#   w: wrap around to the other end upon over/underflow
#
# EOF values (-e):
#   0: store a zero    a: store the minimum    b: store the maximum
#   n: store a negative one    x: do not change the cell's contents
#
from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

from .compiler import compile_source, format_instructions
from .config import MachineConfig, parse_eof_policy, parse_overflow_policy
from .engine import Machine
from .errors import BFError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)-5s %(name)s: %(message)s"


def init_logging(verbosity: int = 0) -> None:
    """Configure the root logger to write to stderr; each -v lowers the threshold."""
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    if verbosity >= 2:
        lvl = logging.DEBUG
    elif verbosity == 1:
        lvl = logging.INFO
    else:
        lvl = logging.WARNING
    root.setLevel(lvl)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(lvl)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bfvm",
        description="Configurable interpreter for the eight-operator tape language.",
    )
    parser.add_argument("file", help="The file to read from, or - for stdin")
    parser.add_argument("-a", "--minimum", type=int, default=0, help="minimum cell value (default 0)")
    parser.add_argument("-b", "--maximum", type=int, default=255, help="maximum cell value (default 255)")
    parser.add_argument("-c", "--cells", type=int, default=30000, help="number of cells to allocate (default 30000)")
    parser.add_argument("-e", "--eof", default="0", help="value to store upon EOF: 0, a, b, n or x (default 0)")
    parser.add_argument("-l", "--value-behaviour", default="w", help="value overflow/underflow behaviour: e, i or w")
    parser.add_argument("-p", "--pointer-behaviour", default="w", help="cell pointer overflow/underflow behaviour: e, i or w")
    parser.add_argument("-m", "--mode", default="r", choices=("r", "d", "run", "dump"), help="runtime mode: r (run) or d (dump)")
    parser.add_argument("-s", "--step-limit", type=int, default=None, help="abort after this many instructions")
    parser.add_argument("-t", "--show-tape", type=int, default=0, metavar="N", help="print the first N cells after the run")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase log verbosity")
    return parser


def config_from_args(args: argparse.Namespace) -> MachineConfig:
    return MachineConfig(
        tape_length=args.cells,
        min_value=args.minimum,
        max_value=args.maximum,
        eof_policy=parse_eof_policy(args.eof),
        value_policy=parse_overflow_policy(args.value_behaviour),
        pointer_policy=parse_overflow_policy(args.pointer_behaviour),
        step_limit=args.step_limit,
    )


def read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def format_tape(tape, count: int) -> str:
    cells = [int(v) for v in tape[:count]]
    rows = [" ".join(str(v) for v in cells[i:i + 8]) for i in range(0, len(cells), 8)]
    return "\n".join(rows)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    init_logging(args.verbose)

    try:
        config = config_from_args(args)
        source = read_source(args.file)

        start = time.time()
        program = compile_source(source)
        end = time.time()
        logger.info("Compiled %d instructions in %.2f ms", len(program), (end - start) * 1000)

        if args.mode in ("d", "dump"):
            text = format_instructions(program)
            if text:
                sys.stdout.write(text + "\n")
            return 0

        stdin = getattr(sys.stdin, "buffer", sys.stdin)
        machine = Machine(program, config, stdin=stdin, stdout=sys.stdout)
        start = time.time()
        try:
            result = machine.run()
        finally:
            sys.stdout.flush()
            if args.show_tape > 0:
                sys.stderr.write(format_tape(machine.tape, args.show_tape) + "\n")
        end = time.time()
        logger.info("Execution took %.2f ms (%d steps)", (end - start) * 1000, result.steps)
    except BFError as e:
        sys.stderr.write(f"{e}\n")
        return 1
    except (OSError, UnicodeError) as e:
        sys.stderr.write(f"bfvm: {e}\n")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
