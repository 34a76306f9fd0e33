#!/usr/bin/env python3
"""
Test execution of compiled programs under the different overflow and EOF policies.
"""

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

import io

import numpy as np
import pytest

from bfvm.compiler import compile_source
from bfvm.config import EOFPolicy, MachineConfig, OverflowPolicy
from bfvm.engine import Machine, bounded_step
from bfvm.errors import BFRuntimeError, RuntimeErrorKind


def execute(code, input_data=None, **config):
    stdin = None
    if isinstance(input_data, bytes):
        stdin = io.BytesIO(input_data)
    elif isinstance(input_data, str):
        stdin = io.StringIO(input_data)
    machine = Machine(compile_source(code), MachineConfig(**config), stdin=stdin)
    return machine.run()


def test_multiplication_end_to_end():
    result = execute("++++++++[>++++++++<-]>.")
    assert result.output == "@"
    assert int(result.tape[1]) == 64
    assert int(result.tape[0]) == 0
    assert result.cell_index == 1


def test_hello_world():
    code = (
        "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]>>.>---.+++++++..+++.>>.<-."
        "<.+++.------.--------.>>+.>++."
    )
    assert execute(code).output == "Hello World!\n"


def test_loop_skipped_on_zero_cell():
    result = execute("[]")
    assert result.steps == 1
    result = execute("[+]")
    assert int(result.tape[0]) == 0


def test_infinite_loop_hits_step_limit():
    with pytest.raises(BFRuntimeError) as exc:
        execute("+[]", step_limit=1000)
    assert exc.value.kind is RuntimeErrorKind.STEP_LIMIT


def test_step_limit_stops_before_output():
    sink = io.StringIO()
    machine = Machine(compile_source("+."), MachineConfig(step_limit=1), stdout=sink)
    with pytest.raises(BFRuntimeError) as exc:
        machine.run()
    assert exc.value.kind is RuntimeErrorKind.STEP_LIMIT
    assert exc.value.instruction_index == 1
    assert sink.getvalue() == ""


def test_step_limit_not_hit_by_short_program():
    result = execute("+++[-]", step_limit=100)
    assert result.steps == 1 + 1 + 3 * 2


def test_value_wrap():
    result = execute("-")
    assert int(result.tape[0]) == 255
    result = execute("-+")
    assert int(result.tape[0]) == 0


def test_value_wrap_from_maximum():
    machine = Machine(compile_source("+"), MachineConfig())
    machine.tape[0] = 255
    machine.run()
    assert int(machine.tape[0]) == 0


def test_value_wrap_custom_range():
    result = execute("+" * 12, min_value=0, max_value=9)
    assert int(result.tape[0]) == 2


def test_value_error_overflow():
    with pytest.raises(BFRuntimeError) as exc:
        execute("+" * 256, value_policy=OverflowPolicy.ERROR)
    assert exc.value.kind is RuntimeErrorKind.VALUE_OVERFLOW
    assert exc.value.instruction_index == 0


def test_value_error_underflow():
    with pytest.raises(BFRuntimeError) as exc:
        execute(">+<-", value_policy=OverflowPolicy.ERROR)
    assert exc.value.kind is RuntimeErrorKind.VALUE_UNDERFLOW
    assert exc.value.instruction_index == 3


def test_value_error_within_range_is_fine():
    result = execute("+" * 255, value_policy=OverflowPolicy.ERROR)
    assert int(result.tape[0]) == 255


def test_value_ignore_saturates():
    result = execute("+" * 300, value_policy=OverflowPolicy.IGNORE)
    assert int(result.tape[0]) == 255
    result = execute("--", value_policy=OverflowPolicy.IGNORE)
    assert int(result.tape[0]) == 0


def test_pointer_wrap():
    result = execute("<+", tape_length=5)
    assert result.cell_index == 4
    assert int(result.tape[4]) == 1
    result = execute(">>>>>>>+", tape_length=5)
    assert result.cell_index == 2


def test_pointer_error_overflow():
    with pytest.raises(BFRuntimeError) as exc:
        execute(">", tape_length=1, pointer_policy=OverflowPolicy.ERROR)
    assert exc.value.kind is RuntimeErrorKind.POINTER_OVERFLOW


def test_pointer_error_underflow():
    with pytest.raises(BFRuntimeError) as exc:
        execute("<", pointer_policy=OverflowPolicy.ERROR)
    assert exc.value.kind is RuntimeErrorKind.POINTER_UNDERFLOW
    assert exc.value.cell_index == 0


def test_pointer_ignore():
    result = execute("<<+>>>>>>+", tape_length=3, pointer_policy=OverflowPolicy.IGNORE)
    assert result.cell_index == 2
    assert list(result.tape) == [1, 0, 1]


def test_eof_zero_emits_nul():
    result = execute(",.", input_data=b"")
    assert result.output == "\x00"


def test_input_without_stream_is_eof():
    result = execute("+,", eof_policy=EOFPolicy.MAXIMUM)
    assert int(result.tape[0]) == 255


@pytest.mark.parametrize("policy, expected", [
    (EOFPolicy.ZERO, 0),
    (EOFPolicy.MINIMUM, 3),
    (EOFPolicy.MAXIMUM, 200),
    (EOFPolicy.NO_CHANGE, 7),
])
def test_eof_policies(policy, expected):
    result = execute("+++++++,", input_data=b"", eof_policy=policy, min_value=3, max_value=200)
    assert int(result.tape[0]) == expected


@pytest.mark.parametrize("low, high, expected", [
    (0, 255, 255),
    (0, 9, 9),
    (3, 200, 197),
    (10, 20, 10),
])
def test_eof_negative_one_reduced_into_range(low, high, expected):
    result = execute(",", input_data=b"", eof_policy=EOFPolicy.NEGATIVE_ONE, min_value=low, max_value=high)
    assert int(result.tape[0]) == expected


def test_eof_latches():
    class CountingStream(io.BytesIO):
        reads = 0

        def read(self, size=-1):
            CountingStream.reads += 1
            return super().read(size)

    stream = CountingStream(b"A")
    machine = Machine(compile_source(",>,>,,"), MachineConfig(eof_policy=EOFPolicy.NO_CHANGE), stdin=stream)
    result = machine.run()
    assert int(result.tape[0]) == ord("A")
    assert CountingStream.reads == 2
    assert machine.eof


def test_cat_program_echoes_input():
    result = execute(",[.,]", input_data=b"echo me")
    assert result.output == "echo me"


def test_text_input_stream():
    result = execute(",.,.", input_data="hi")
    assert result.output == "hi"


def test_input_byte_out_of_range_wraps():
    result = execute(",", input_data=b"\x0c", max_value=9)
    assert int(result.tape[0]) == 2


def test_input_byte_out_of_range_error():
    with pytest.raises(BFRuntimeError) as exc:
        execute(",", input_data=b"z", max_value=9, value_policy=OverflowPolicy.ERROR)
    assert exc.value.kind is RuntimeErrorKind.VALUE_OVERFLOW


def test_repeated_output():
    result = execute("+" * 65 + "...")
    assert result.output == "AAA"


def test_output_flushed_before_failure():
    sink = io.StringIO()
    machine = Machine(
        compile_source("+" * 33 + ".<"),
        MachineConfig(pointer_policy=OverflowPolicy.ERROR),
        stdout=sink,
    )
    with pytest.raises(BFRuntimeError):
        machine.run()
    assert sink.getvalue() == "!"


def test_external_sink_leaves_result_output_empty():
    sink = io.StringIO()
    result = Machine(compile_source("+" * 66 + "."), stdout=sink).run()
    assert sink.getvalue() == "B"
    assert result.output == ""


def test_wide_cells():
    config = MachineConfig(max_value=1000)
    machine = Machine(compile_source("+" * 300), config)
    result = machine.run()
    assert machine.tape.dtype == np.uint16
    assert int(result.tape[0]) == 300


def test_reset_clears_state():
    machine = Machine(compile_source("+>+"))
    machine.run()
    machine.reset()
    assert machine.cell_index == 0
    assert machine.steps == 0
    assert not machine.tape.any()


def _unit_steps(value, delta, count, low, high, policy):
    """Apply a merged run one unit at a time, the slow way."""
    start = value
    span = high - low + 1
    for _ in range(count):
        nxt = value + delta
        if not low <= nxt <= high:
            if policy == OverflowPolicy.ERROR:
                return start, True
            if policy == OverflowPolicy.WRAP:
                nxt = (nxt - low) % span + low
            else:
                nxt = value
        value = nxt
    return value, False


@pytest.mark.parametrize("policy", list(OverflowPolicy))
@pytest.mark.parametrize("delta", [1, -1])
@pytest.mark.parametrize("low, high", [(0, 9), (3, 9), (0, 0)])
def test_bounded_step_matches_unit_steps(policy, delta, low, high):
    # starts below ``low`` happen when min_value > 0, since the tape starts at zero
    for start in range(0, high + 1):
        for count in range(1, 25):
            expected = _unit_steps(start, delta, count, low, high, policy)
            got, failed = bounded_step(start, delta, count, low, high, int(policy))
            assert (int(got), bool(failed)) == expected, (start, count)


def test_merged_run_fails_partway():
    # 250 then 10 more merge into one instruction; the overflow happens inside it
    with pytest.raises(BFRuntimeError) as exc:
        execute("+" * 250 + " " + "+" * 10, value_policy=OverflowPolicy.ERROR)
    assert exc.value.kind is RuntimeErrorKind.VALUE_OVERFLOW
    assert exc.value.instruction_index == 0


def test_highest_code_point_is_written():
    machine = Machine(compile_source("."), MachineConfig(max_value=0x10FFFF))
    machine.tape[0] = 0x10FFFF
    assert machine.run().output == chr(0x10FFFF)
