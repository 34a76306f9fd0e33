from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional, TextIO, Union

import numpy as np
from numba import njit

from .compiler import OpKind, Program
from .config import MachineConfig, OverflowPolicy
from .errors import RuntimeErrorKind, make_runtime_error

logger = logging.getLogger(__name__)

# Reasons the kernel hands control back to the driver.
STOP_END = 0
STOP_IO = 1
STOP_BUDGET = 2
STOP_VALUE_OVERFLOW = 3
STOP_VALUE_UNDERFLOW = 4
STOP_POINTER_OVERFLOW = 5
STOP_POINTER_UNDERFLOW = 6

_STOP_ERRORS = {
    STOP_BUDGET: RuntimeErrorKind.STEP_LIMIT,
    STOP_VALUE_OVERFLOW: RuntimeErrorKind.VALUE_OVERFLOW,
    STOP_VALUE_UNDERFLOW: RuntimeErrorKind.VALUE_UNDERFLOW,
    STOP_POINTER_OVERFLOW: RuntimeErrorKind.POINTER_OVERFLOW,
    STOP_POINTER_UNDERFLOW: RuntimeErrorKind.POINTER_UNDERFLOW,
}

_WRAP = int(OverflowPolicy.WRAP)
_ERROR = int(OverflowPolicy.ERROR)

_VINC = int(OpKind.VALUE_INCREMENT)
_VDEC = int(OpKind.VALUE_DECREMENT)
_PINC = int(OpKind.POINTER_INCREMENT)
_PDEC = int(OpKind.POINTER_DECREMENT)
_LSTART = int(OpKind.LOOP_START)
_LEND = int(OpKind.LOOP_END)


@njit(cache=True)
def bounded_step(value, delta, count, low, high, policy):
    """
    Apply ``count`` unit steps of ``delta`` (+1/-1) to ``value`` inside [low, high].

    Returns (new_value, failed). The result matches applying the policy after
    every single unit step, so an overflow halfway through a merged run is
    handled the same as in an unmerged one.
    """
    new = value + delta * count
    first = value + delta
    if low <= first <= high and low <= new <= high:
        return new, False
    if policy == _WRAP:
        span = high - low + 1
        return (new - low) % span + low, False
    if policy == _ERROR:
        return value, True
    # ignore: a rejected unit step leaves the value where it was
    if first < low or first > high:
        return value, False
    if new > high:
        return high, False
    return low, False


@njit(cache=True)
def run_kernel(kinds, repeats, targets, tape, cell, pc,
               min_value, max_value, value_policy, pointer_policy, budget):
    """
    Fetch/decode/execute loop over the lowered program.

    Runs until the program ends, an input/output instruction is reached, a
    policy set to error trips, or ``budget`` instructions have executed
    (negative budget means unlimited). Returns (pc, cell, stop_reason, steps);
    on a stop other than STOP_END, ``pc`` is the instruction that stopped.
    """
    prog_len = len(kinds)
    last_cell = len(tape) - 1
    steps = 0
    stop_reason = STOP_END

    while pc < prog_len:
        if budget >= 0 and steps >= budget:
            stop_reason = STOP_BUDGET
            break

        kind = kinds[pc]

        if kind == _VINC or kind == _VDEC:
            delta = 1 if kind == _VINC else -1
            value = np.int64(tape[cell])
            new, failed = bounded_step(value, delta, repeats[pc], min_value, max_value, value_policy)
            if failed:
                stop_reason = STOP_VALUE_OVERFLOW if delta > 0 else STOP_VALUE_UNDERFLOW
                break
            tape[cell] = new
        elif kind == _PINC or kind == _PDEC:
            delta = 1 if kind == _PINC else -1
            new, failed = bounded_step(np.int64(cell), delta, repeats[pc], 0, last_cell, pointer_policy)
            if failed:
                stop_reason = STOP_POINTER_OVERFLOW if delta > 0 else STOP_POINTER_UNDERFLOW
                break
            cell = new
        elif kind == _LSTART:
            if tape[cell] == 0:
                pc = targets[pc]
                steps += 1
                continue
        elif kind == _LEND:
            if tape[cell] != 0:
                pc = targets[pc]
                steps += 1
                continue
        else:
            stop_reason = STOP_IO
            break

        pc += 1
        steps += 1

    return pc, cell, stop_reason, steps


@dataclass(frozen=True)
class RunResult:
    output: str
    tape: np.ndarray
    cell_index: int
    steps: int


class Machine:
    """
    Tape machine executing one compiled program.

    ``stdin`` is read one unit at a time and may be binary (bytes) or text;
    ``stdout`` is a text sink receiving one character per emitted cell. When
    no sink is given the machine collects the output itself and returns it in
    ``RunResult.output``.
    """

    def __init__(
        self,
        program: Program,
        config: Optional[MachineConfig] = None,
        stdin: Optional[Union[BinaryIO, TextIO]] = None,
        stdout: Optional[TextIO] = None,
    ):
        self.program = program
        self.config = config if config is not None else MachineConfig()
        self.stdin = stdin
        self._owns_sink = stdout is None
        self.stdout = io.StringIO() if stdout is None else stdout
        self.kinds, self.repeats, self.targets = program.arrays()
        self.reset()

    def reset(self) -> None:
        self.tape = np.zeros(self.config.tape_length, dtype=self.config.cell_dtype)
        self.cell_index = 0
        self.instruction_index = 0
        self.steps = 0
        self.eof = False

    def run(self) -> RunResult:
        cfg = self.config
        prog_len = len(self.kinds)

        while self.instruction_index < prog_len:
            budget = -1 if cfg.step_limit is None else cfg.step_limit - self.steps
            pc, cell, stop_reason, steps = run_kernel(
                self.kinds, self.repeats, self.targets, self.tape,
                self.cell_index, self.instruction_index,
                cfg.min_value, cfg.max_value,
                int(cfg.value_policy), int(cfg.pointer_policy), budget,
            )
            self.instruction_index = int(pc)
            self.cell_index = int(cell)
            self.steps += int(steps)

            if stop_reason == STOP_END:
                break
            if stop_reason == STOP_IO:
                self._execute_io()
                self.instruction_index += 1
                self.steps += 1
                continue
            self._fail(_STOP_ERRORS[int(stop_reason)])

        logger.debug("Program finished after %d steps, cell pointer at %d", self.steps, self.cell_index)
        output = self.stdout.getvalue() if self._owns_sink else ""
        return RunResult(output=output, tape=self.tape, cell_index=self.cell_index, steps=self.steps)

    def _fail(self, kind: RuntimeErrorKind) -> None:
        logger.debug("Aborting at instruction %d: %s", self.instruction_index, kind.value)
        raise make_runtime_error(kind=kind, instruction_index=self.instruction_index, cell_index=self.cell_index)

    def _execute_io(self) -> None:
        kind = int(self.kinds[self.instruction_index])
        count = int(self.repeats[self.instruction_index])
        if kind == OpKind.OUTPUT:
            self.stdout.write(chr(int(self.tape[self.cell_index])) * count)
            self.stdout.flush()
            return
        for _ in range(count):
            self._read_cell()

    def _read_unit(self) -> Optional[int]:
        if self.eof or self.stdin is None:
            self.eof = True
            return None
        data = self.stdin.read(1)
        if not data:
            logger.debug("Input exhausted at instruction %d", self.instruction_index)
            self.eof = True
            return None
        if isinstance(data, str):
            return ord(data)
        return data[0]

    def _read_cell(self) -> None:
        cfg = self.config
        current = int(self.tape[self.cell_index])
        value = self._read_unit()
        if value is None:
            self.tape[self.cell_index] = cfg.eof_value(current)
            return
        if cfg.min_value <= value <= cfg.max_value:
            self.tape[self.cell_index] = value
            return
        if cfg.value_policy is OverflowPolicy.WRAP:
            span = cfg.max_value - cfg.min_value + 1
            self.tape[self.cell_index] = (value - cfg.min_value) % span + cfg.min_value
        elif cfg.value_policy is OverflowPolicy.ERROR:
            kind = RuntimeErrorKind.VALUE_OVERFLOW if value > cfg.max_value else RuntimeErrorKind.VALUE_UNDERFLOW
            self._fail(kind)
