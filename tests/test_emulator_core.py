"""
MU0 Emulator — Core Integration Tests

Tests that prove the emulator executes MU0 machine code with the right
register state and the right number of fetch/execute steps. Programs
are hand-encoded words (opcode nibble + 12-bit operand) or assembled
with mu0_assembler where that reads better.
"""

import io
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from mu0_assembler import assemble
from mu0_emulator import (
    MU0Emulator, StopReason, State, Memory, MemoryFault, MachineCodeError,
    ConsoleDevice, ConsoleInputExhausted, IllegalOpcode, load_machine_code,
)


def _console(stdin: str = "") -> ConsoleDevice:
    return ConsoleDevice(io.StringIO(stdin), io.StringIO())


def _emu(words, stdin: str = "") -> MU0Emulator:
    emu = MU0Emulator(_console(stdin))
    emu.load_words(words)
    return emu


# ═══════════════════════════════════════════════
# Test Group 1: Memory and console
# ═══════════════════════════════════════════════

class TestMemory:

    def test_read_write(self):
        mem = Memory([1, 2, 3], _console())
        assert mem.size == 3
        mem.write(1, 42)
        assert mem.read(1) == 42
        assert mem.words() == [1, 42, 3]

    def test_last_address_is_valid(self):
        mem = Memory([0, 9], _console())
        assert mem.read(1) == 9

    def test_one_past_end_faults(self):
        mem = Memory([0, 0], _console())
        with pytest.raises(MemoryFault) as exc:
            mem.read(2)
        assert exc.value.address == 2
        with pytest.raises(MemoryFault):
            mem.write(2, 1)

    def test_negative_address_faults(self):
        mem = Memory([0], _console())
        with pytest.raises(MemoryFault):
            mem.read(-1)

    def test_io_read_with_empty_memory(self):
        mem = Memory([], _console("x"))
        assert mem.read(0xFFF) == ord("x")
        assert mem.size == 0

    def test_io_write_with_empty_memory(self):
        console = _console()
        mem = Memory([], console)
        mem.write(0xFFF, ord("A"))
        assert console.output_stream.getvalue() == "A"
        assert mem.words() == []

    def test_io_write_never_touches_storage(self):
        console = _console()
        mem = Memory([7, 7], console)
        mem.write(0xFFF, 0x141)  # only the low byte is printed
        assert console.output_stream.getvalue() == "A"
        assert console.output == b"A"
        assert mem.words() == [7, 7]

    def test_io_read_never_touches_storage(self):
        mem = Memory([5], _console("Q"))
        assert mem.read(0xFFF) == ord("Q")
        assert mem.words() == [5]

    def test_console_exhausted(self):
        console = _console("")
        with pytest.raises(ConsoleInputExhausted):
            console.read_char()

    def test_binary_streams_pass_bytes_through(self):
        out = io.BytesIO()
        console = ConsoleDevice(io.BytesIO(b"\xe9"), out)
        assert console.read_char() == 0xE9
        console.write_char(0xE9)
        assert out.getvalue() == b"\xe9"

    def test_default_streams_are_binary_buffers(self, monkeypatch):
        stdin = io.TextIOWrapper(io.BytesIO(b"\xff"))
        monkeypatch.setattr(sys, "stdin", stdin)
        console = ConsoleDevice()
        assert console.input_stream is stdin.buffer
        assert console.read_char() == 0xFF

    def test_hexdump(self):
        mem = Memory(list(range(10)), _console())
        dump = mem.hexdump()
        assert dump.splitlines()[0] == "000  0000 0001 0002 0003 0004 0005 0006 0007"
        assert dump.splitlines()[1] == "008  0008 0009"


class TestMachineCodeLoading:

    def test_load(self):
        assert load_machine_code("0002\n7000\n0005\n") == [0x0002, 0x7000, 0x0005]

    def test_load_empty(self):
        assert load_machine_code("") == []

    def test_load_tolerates_whitespace(self):
        assert load_machine_code("  0002 \n\n7000") == [0x0002, 0x7000]

    def test_bad_token(self):
        with pytest.raises(MachineCodeError, match="zz12"):
            load_machine_code("0002\nzz12\n")

    def test_memory_from_machine_code(self):
        mem = Memory.from_machine_code("0002\n7000\n", _console())
        assert mem.words() == [0x0002, 0x7000]

    def test_emulator_load_file(self, tmp_path):
        path = tmp_path / "prog.hex"
        path.write_text("7000\n")
        emu = MU0Emulator(_console())
        emu.load_file(path)
        assert emu.mem.words() == [0x7000]


# ═══════════════════════════════════════════════
# Test Group 2: Individual instructions
# ═══════════════════════════════════════════════

class TestInstructions:

    def test_fetch_then_execute(self):
        emu = _emu([0x0002, 0x7000, 0x0005])  # LDA 2; STP; #5
        assert emu.state == State.FETCH
        assert emu.step() is None
        assert emu.state == State.EXECUTE
        assert emu.regs.IR == 0x0002
        assert emu.regs.PC == 1
        assert emu.step() is None
        assert emu.regs.ACC == 5
        assert emu.state == State.FETCH

    def test_sto(self):
        emu = _emu([0x0003, 0x1004, 0x7000, 0x0009, 0x0000])  # LDA 3; STO 4; STP
        assert emu.run() == StopReason.HALT
        assert emu.mem.words()[4] == 9

    def test_add_sub_go_negative(self):
        # LDA 4; ADD 5; SUB 6; STP; 10; 5; 20
        emu = _emu([0x0004, 0x2005, 0x3006, 0x7000, 10, 5, 20])
        assert emu.run() == StopReason.HALT
        assert emu.regs.ACC == -5

    def test_acc_does_not_wrap(self):
        # LDA 3; ADD 3; STP; 0xffff
        emu = _emu([0x0003, 0x2003, 0x7000, 0xFFFF])
        emu.run()
        assert emu.regs.ACC == 0x1FFFE

    def test_jmp_folds_target_fetch(self):
        emu = _emu([0x4002, 0x7000, 0x7000])  # JMP 2; STP; STP
        assert emu.run() == StopReason.HALT
        assert emu.regs.steps == 3
        assert emu.regs.PC == 3

    @pytest.mark.parametrize("a,b,taken", [
        (0, 1, False),   # ACC = -1
        (1, 1, True),    # ACC = 0
        (6, 1, True),    # ACC = 5
    ])
    def test_jge(self, a, b, taken):
        # LDA 6; SUB 7; JGE 5; STP; STP; STP; a; b
        emu = _emu([0x0006, 0x3007, 0x5005, 0x7000, 0x7000, 0x7000, a, b])
        assert emu.run() == StopReason.HALT
        assert emu.regs.ACC == a - b
        if taken:
            assert emu.regs.PC == 6
            assert emu.regs.steps == 7
        else:
            assert emu.regs.PC == 4
            assert emu.regs.steps == 8

    @pytest.mark.parametrize("a,b,taken", [
        (0, 0, False),   # ACC = 0
        (5, 0, True),    # ACC = 5
        (0, 1, True),    # ACC = -1
    ])
    def test_jne(self, a, b, taken):
        # LDA 6; SUB 7; JNE 5; STP; STP; STP; a; b
        emu = _emu([0x0006, 0x3007, 0x6005, 0x7000, 0x7000, 0x7000, a, b])
        assert emu.run() == StopReason.HALT
        assert emu.regs.PC == (6 if taken else 4)

    def test_step_after_halt(self):
        emu = _emu([0x7000])
        emu.run()
        steps = emu.regs.steps
        assert emu.step() == StopReason.HALT
        assert emu.regs.steps == steps


# ═══════════════════════════════════════════════
# Test Group 3: Whole programs
# ═══════════════════════════════════════════════

class TestPrograms:

    def test_load_five(self):
        emu = _emu(assemble("LDA :five\nSTP\n:five\n#0005\n"))
        assert emu.run() == StopReason.HALT
        assert emu.regs.ACC == 5
        assert emu.regs.PC == 2
        assert emu.regs.steps == 4

    def test_stp_only(self):
        emu = _emu([0x7000])
        assert emu.run() == StopReason.HALT
        assert emu.regs.steps == 2
        assert emu.regs.ACC == 0

    def test_console_input(self):
        emu = _emu([0x0FFF, 0x7000], stdin="A")
        assert emu.run() == StopReason.HALT
        assert emu.regs.ACC == ord("A")

    def test_echo(self):
        emu = _emu(assemble("LDA 0xfff\nSTO 0xfff\nSTP"), stdin="Z")
        emu.run()
        assert emu.console.output == b"Z"

    def test_countdown_loop_prints(self):
        src = "\n".join([
            "; print three stars",
            ":loop",
            "LDA :star",
            "STO 0xfff",
            "LDA :count",
            "SUB :one",
            "STO :count",
            "JNE :loop",
            "STP",
            ":star",
            "$*",
            ":count",
            "#3",
            ":one",
            "#1",
        ])
        emu = _emu(assemble(src))
        assert emu.run() == StopReason.HALT
        assert emu.console.output == b"***"
        assert emu.regs.ACC == 0


# ═══════════════════════════════════════════════
# Test Group 4: Termination reasons
# ═══════════════════════════════════════════════

class TestTermination:

    def test_step_limit(self):
        emu = _emu([0x4000])  # JMP 0 forever
        assert emu.run(limit=10) == StopReason.LIMIT
        assert emu.regs.steps == 10
        assert not emu.halted

    def test_limit_before_halt(self):
        emu = _emu([0x7000])
        assert emu.run(limit=1) == StopReason.LIMIT

    def test_limit_equal_to_halt_steps(self):
        emu = _emu([0x7000])
        assert emu.run(limit=2) == StopReason.HALT

    def test_zero_limit_is_unlimited(self):
        emu = _emu(assemble("LDA :five\nSTP\n:five\n#0005\n"))
        assert emu.run(limit=0) == StopReason.HALT

    def test_out_of_range_operand(self):
        emu = _emu([0x0002, 0x7000])  # LDA 2, one past the end
        assert emu.run() == StopReason.FAULT
        assert isinstance(emu.error, MemoryFault)
        assert emu.error.address == 2

    def test_running_off_the_end(self):
        emu = _emu([0x0000])  # LDA 0, then fetch from address 1
        assert emu.run() == StopReason.FAULT
        assert emu.error.address == 1

    def test_illegal_instruction(self):
        emu = _emu([0x8000])
        assert emu.run() == StopReason.ILLEGAL
        assert isinstance(emu.error, IllegalOpcode)
        assert emu.error.address == 0

    def test_negative_word_is_illegal(self):
        # LDA 4; SUB 5; STO 3; then execute the stored -1
        emu = _emu([0x0004, 0x3005, 0x1003, 0x0000, 0, 1])
        assert emu.run() == StopReason.ILLEGAL

    def test_console_input_exhausted(self):
        emu = _emu([0x0FFF, 0x7000], stdin="")
        assert emu.run() == StopReason.INPUT_EXHAUSTED
        assert isinstance(emu.error, ConsoleInputExhausted)


class TestTrace:

    def test_trace_lines(self):
        emu = _emu([0x7000])
        emu.enable_trace()
        emu.run()
        lines = emu.get_trace().splitlines()
        assert lines == [
            "  1: state =   FETCH, PC = 0000, ACC = 0000, IR = 0000",
            "  2: state = EXECUTE, PC = 0001, ACC = 0000, IR = 7000",
        ]

    def test_clear_trace(self):
        emu = _emu([0x7000])
        emu.enable_trace()
        emu.run()
        emu.clear_trace()
        assert emu.get_trace() == ""

    def test_trace_disabled_by_default(self):
        emu = _emu([0x7000])
        emu.run()
        assert emu.get_trace() == ""

    def test_reset(self):
        emu = _emu([0x0001, 0x7000])
        emu.run()
        emu.reset()
        assert emu.regs.PC == 0
        assert emu.regs.ACC == 0
        assert emu.regs.steps == 0
        assert emu.state == State.FETCH
        assert not emu.halted
