from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Dict, List, Tuple

import numpy as np

from .errors import SyntaxErrorKind, make_syntax_error


class OpKind(enum.IntEnum):
    VALUE_INCREMENT = 0
    VALUE_DECREMENT = 1
    POINTER_INCREMENT = 2
    POINTER_DECREMENT = 3
    INPUT = 4
    OUTPUT = 5
    LOOP_START = 6
    LOOP_END = 7


OPERATORS: Dict[str, OpKind] = {
    '+': OpKind.VALUE_INCREMENT,
    '-': OpKind.VALUE_DECREMENT,
    '>': OpKind.POINTER_INCREMENT,
    '<': OpKind.POINTER_DECREMENT,
    ',': OpKind.INPUT,
    '.': OpKind.OUTPUT,
    '[': OpKind.LOOP_START,
    ']': OpKind.LOOP_END,
}

LOOP_KINDS = (OpKind.LOOP_START, OpKind.LOOP_END)


@dataclass(frozen=True)
class Instruction:
    kind: OpKind
    repeat: int = 1
    target: int = -1  # resume index for loop markers, unused otherwise


@dataclass(frozen=True)
class Program:
    instructions: Tuple[Instruction, ...]
    source_length: int = 0

    def __len__(self) -> int:
        return len(self.instructions)

    def arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Lower the program to (kinds, repeats, targets) arrays for the kernel."""
        n = len(self.instructions)
        kinds = np.empty(n, dtype=np.int64)
        repeats = np.empty(n, dtype=np.int64)
        targets = np.empty(n, dtype=np.int64)
        for i, ins in enumerate(self.instructions):
            kinds[i] = int(ins.kind)
            repeats[i] = ins.repeat
            targets[i] = ins.target
        return kinds, repeats, targets


def is_code_char(ch: str) -> bool:
    return ch in OPERATORS


def compile_source(source: str) -> Program:
    """
    Compile source text into a run-length merged, loop-resolved program.

    Consecutive identical operators collapse into one instruction with a
    repeat count; brackets never collapse. Each '[' gets the index just past
    its ']' and each ']' the index just past its '['.

    Raises:
        BFSyntaxError: on an unmatched ']' or an unclosed '['.
    """
    instructions: List[Instruction] = []
    stack: List[Tuple[int, int]] = []  # (instruction index, source offset)

    for offset, ch in enumerate(source):
        kind = OPERATORS.get(ch)
        if kind is None:
            continue  # comments or newline

        if kind is OpKind.LOOP_START:
            stack.append((len(instructions), offset))
            instructions.append(Instruction(kind))
            continue

        if kind is OpKind.LOOP_END:
            if not stack:
                raise make_syntax_error(kind=SyntaxErrorKind.UNMATCHED_CLOSE, source=source, offset=offset)
            start, _ = stack.pop()
            end = len(instructions)
            instructions[start] = replace(instructions[start], target=end + 1)
            instructions.append(Instruction(kind, target=start + 1))
            continue

        # group nearby together
        if instructions and instructions[-1].kind is kind:
            prev = instructions[-1]
            instructions[-1] = replace(prev, repeat=prev.repeat + 1)
        else:
            instructions.append(Instruction(kind))

    if stack:
        _, offset = stack[-1]
        raise make_syntax_error(kind=SyntaxErrorKind.UNMATCHED_OPEN, source=source, offset=offset)

    return Program(instructions=tuple(instructions), source_length=len(source))


def format_instructions(program: Program) -> str:
    """Render one line per instruction for the dump mode."""
    width = max(4, len(str(len(program))))
    out: List[str] = []
    for i, ins in enumerate(program.instructions):
        name = ins.kind.name
        if ins.kind in LOOP_KINDS:
            detail = f"-> {ins.target}"
        else:
            detail = f"x{ins.repeat}"
        out.append(f"{i:{width}d}  {name:<17} {detail}")
    return "\n".join(out)
