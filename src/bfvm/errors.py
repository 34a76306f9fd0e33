from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional, Tuple


class SyntaxErrorKind(enum.Enum):
    UNMATCHED_CLOSE = 'unmatched-close'
    UNMATCHED_OPEN = 'unmatched-open'


class RuntimeErrorKind(enum.Enum):
    VALUE_OVERFLOW = 'value-overflow'
    VALUE_UNDERFLOW = 'value-underflow'
    POINTER_OVERFLOW = 'pointer-overflow'
    POINTER_UNDERFLOW = 'pointer-underflow'
    STEP_LIMIT = 'step-limit'


def _build_context(lines: List[str], line_no_1: int, *, context: int = 2) -> str:
    idx = max(1, line_no_1)
    start = max(1, idx - context)
    end = min(len(lines), idx + context)

    out: List[str] = []
    for i in range(start, end + 1):
        prefix = '>' if i == idx else ' '
        out.append(f"{prefix} {i:4d} | {lines[i - 1]}")
    return "\n".join(out)


def _locate(source: str, offset: int) -> Tuple[int, int]:
    """Return the 1-based (line, column) of a character offset."""
    line = source.count('\n', 0, offset) + 1
    column = offset - (source.rfind('\n', 0, offset) + 1) + 1
    return line, column


def _hint_for(kind: SyntaxErrorKind) -> Optional[str]:
    if kind is SyntaxErrorKind.UNMATCHED_CLOSE:
        return 'Remove the extra "]" or add a "[" before it.'
    if kind is SyntaxErrorKind.UNMATCHED_OPEN:
        return 'Every "[" needs a closing "]" later in the source.'
    return None


@dataclass
class BFError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class BFSyntaxError(BFError):
    kind: SyntaxErrorKind
    line: int
    column: int
    context: str


@dataclass
class BFRuntimeError(BFError):
    kind: RuntimeErrorKind
    instruction_index: int
    cell_index: int


@dataclass
class BFConfigError(BFError):
    pass


_SYNTAX_MESSAGES = {
    SyntaxErrorKind.UNMATCHED_CLOSE: "Unmatched ']' operator",
    SyntaxErrorKind.UNMATCHED_OPEN: "Not enough ']' operators",
}

_RUNTIME_MESSAGES = {
    RuntimeErrorKind.VALUE_OVERFLOW: 'cell value overflow',
    RuntimeErrorKind.VALUE_UNDERFLOW: 'cell value underflow',
    RuntimeErrorKind.POINTER_OVERFLOW: 'cell pointer overflow',
    RuntimeErrorKind.POINTER_UNDERFLOW: 'cell pointer underflow',
    RuntimeErrorKind.STEP_LIMIT: 'step limit exceeded',
}


def make_syntax_error(*, kind: SyntaxErrorKind, source: str, offset: int) -> BFSyntaxError:
    line, column = _locate(source, offset)
    ctx = _build_context(source.split('\n'), line)
    hint = _hint_for(kind)
    hint_block = f"\nHint: {hint}" if hint else ""
    return BFSyntaxError(
        message=f"SyntaxError: {_SYNTAX_MESSAGES[kind]} (line {line}, column {column})\n{ctx}{hint_block}",
        kind=kind,
        line=line,
        column=column,
        context=ctx,
    )


def make_runtime_error(*, kind: RuntimeErrorKind, instruction_index: int, cell_index: int) -> BFRuntimeError:
    return BFRuntimeError(
        message=f"RuntimeError: {_RUNTIME_MESSAGES[kind]} "
                f"(instruction {instruction_index}, cell {cell_index})",
        kind=kind,
        instruction_index=instruction_index,
        cell_index=cell_index,
    )
