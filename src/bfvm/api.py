from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO, Optional, TextIO, Union

from .compiler import Program, compile_source, format_instructions
from .config import MachineConfig
from .engine import Machine, RunResult

InputData = Union[bytes, str, BinaryIO, TextIO, None]


def _as_stream(data: InputData) -> Optional[Union[BinaryIO, TextIO]]:
    if data is None:
        return None
    if isinstance(data, bytes):
        return io.BytesIO(data)
    if isinstance(data, str):
        return io.StringIO(data)
    return data


def compile_string(source: str) -> Program:
    return compile_source(source)


def dump_string(source: str) -> str:
    return format_instructions(compile_source(source))


def run_program(
    program: Program,
    *,
    config: Optional[MachineConfig] = None,
    input_data: InputData = None,
    output: Optional[TextIO] = None,
) -> RunResult:
    machine = Machine(program, config, stdin=_as_stream(input_data), stdout=output)
    return machine.run()


def run_string(
    source: str,
    *,
    config: Optional[MachineConfig] = None,
    input_data: InputData = None,
    output: Optional[TextIO] = None,
) -> RunResult:
    return run_program(compile_source(source), config=config, input_data=input_data, output=output)


def run_file(
    path: str | Path,
    *,
    config: Optional[MachineConfig] = None,
    input_data: InputData = None,
    output: Optional[TextIO] = None,
    encoding: str = "utf-8",
) -> RunResult:
    p = Path(path)
    return run_string(p.read_text(encoding=encoding), config=config, input_data=input_data, output=output)
