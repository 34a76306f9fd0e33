from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional, Type, TypeVar

import numpy as np

from .errors import BFConfigError


class OverflowPolicy(enum.IntEnum):
    """What happens when a cell value or the cell pointer leaves its range."""

    WRAP = 0
    ERROR = 1
    IGNORE = 2


class EOFPolicy(enum.Enum):
    """Value stored by an input instruction once the input stream is exhausted."""

    ZERO = 'zero'
    MINIMUM = 'minimum'
    MAXIMUM = 'maximum'
    NEGATIVE_ONE = 'negative-one'
    NO_CHANGE = 'no-change'


# Single-letter codes accepted on the command line.
OVERFLOW_CODES: Dict[str, OverflowPolicy] = {
    'w': OverflowPolicy.WRAP,
    'e': OverflowPolicy.ERROR,
    'i': OverflowPolicy.IGNORE,
}

EOF_CODES: Dict[str, EOFPolicy] = {
    '0': EOFPolicy.ZERO,
    'a': EOFPolicy.MINIMUM,
    'b': EOFPolicy.MAXIMUM,
    'n': EOFPolicy.NEGATIVE_ONE,
    'x': EOFPolicy.NO_CHANGE,
}

_CELL_DTYPES = (np.uint8, np.uint16, np.uint32)

# Output writes one character per cell.
MAX_CODE_POINT = 0x10FFFF

E = TypeVar('E', bound=enum.Enum)


def _parse_code(text: str, codes: Dict[str, E], enum_cls: Type[E], what: str) -> E:
    key = text.strip().lower()
    if key in codes:
        return codes[key]
    for member in enum_cls:
        if key in (member.name.lower(), str(member.value).lower(), member.name.lower().replace('_', '-')):
            return member
    choices = ', '.join(sorted(codes))
    raise BFConfigError(message=f"Unknown {what} {text!r} (expected one of: {choices})")


def parse_overflow_policy(text: str) -> OverflowPolicy:
    return _parse_code(text, OVERFLOW_CODES, OverflowPolicy, 'overflow behaviour')


def parse_eof_policy(text: str) -> EOFPolicy:
    return _parse_code(text, EOF_CODES, EOFPolicy, 'EOF value')


@dataclass(frozen=True)
class MachineConfig:
    tape_length: int = 30000
    min_value: int = 0
    max_value: int = 255
    eof_policy: EOFPolicy = EOFPolicy.ZERO
    value_policy: OverflowPolicy = OverflowPolicy.WRAP
    pointer_policy: OverflowPolicy = OverflowPolicy.WRAP
    step_limit: Optional[int] = None

    def __post_init__(self) -> None:
        if self.tape_length < 1:
            raise BFConfigError(message=f"Tape length must be positive, got {self.tape_length}")
        if self.min_value < 0:
            raise BFConfigError(message=f"Minimum cell value must not be negative, got {self.min_value}")
        if self.max_value < self.min_value:
            raise BFConfigError(
                message=f"Maximum cell value {self.max_value} is below the minimum {self.min_value}"
            )
        if self.max_value > MAX_CODE_POINT:
            raise BFConfigError(
                message=f"Maximum cell value {self.max_value} is not a character code (limit {MAX_CODE_POINT:#x})"
            )
        if self.step_limit is not None and self.step_limit < 0:
            raise BFConfigError(message=f"Step limit must not be negative, got {self.step_limit}")

    @property
    def cell_dtype(self) -> type:
        """Narrowest unsigned numpy type that holds ``max_value``."""
        for dtype in _CELL_DTYPES:
            if self.max_value <= np.iinfo(dtype).max:
                return dtype
        return _CELL_DTYPES[-1]

    def eof_value(self, current: int) -> int:
        policy = self.eof_policy
        if policy is EOFPolicy.ZERO:
            return 0
        if policy is EOFPolicy.MINIMUM:
            return self.min_value
        if policy is EOFPolicy.MAXIMUM:
            return self.max_value
        if policy is EOFPolicy.NEGATIVE_ONE:
            span = self.max_value - self.min_value + 1
            return (-1 - self.min_value) % span + self.min_value
        return current
