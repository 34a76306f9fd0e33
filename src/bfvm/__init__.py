
from .compiler import Instruction, OpKind, Program, compile_source, format_instructions
from .config import EOFPolicy, MachineConfig, OverflowPolicy
from .engine import Machine, RunResult
from .errors import BFConfigError, BFError, BFRuntimeError, BFSyntaxError, RuntimeErrorKind, SyntaxErrorKind
from .api import compile_string, dump_string, run_file, run_program, run_string

__all__ = [
    'Instruction',
    'OpKind',
    'Program',
    'compile_source',
    'format_instructions',
    'EOFPolicy',
    'MachineConfig',
    'OverflowPolicy',
    'Machine',
    'RunResult',
    'BFError',
    'BFSyntaxError',
    'BFRuntimeError',
    'BFConfigError',
    'SyntaxErrorKind',
    'RuntimeErrorKind',
    'compile_string',
    'dump_string',
    'run_program',
    'run_string',
    'run_file',
]
