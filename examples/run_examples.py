#!/usr/bin/env python3

import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from bfvm import BFError, run_file

HERE = os.path.abspath(os.path.dirname(__file__))

CASES = [
    ("hello.b", None, "Hello World!\n"),
    ("multiply.b", None, "@"),
    ("cat.b", b"round trip", "round trip"),
]


def main() -> int:
    failures = 0
    for name, input_data, expected in CASES:
        path = os.path.join(HERE, name)
        try:
            result = run_file(path, input_data=input_data)
        except BFError as e:
            print(f"FAIL {name}: {e}")
            failures += 1
            continue
        if result.output == expected:
            print(f"ok   {name} ({result.steps} steps)")
        else:
            print(f"FAIL {name}: expected {expected!r}, got {result.output!r}")
            failures += 1
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
