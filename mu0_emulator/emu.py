"""
MU0 Emulator — Main Emulator Class

Integrates:
  - CPU registers (cpu/regs.py)
  - Instruction decoder (cpu/decoder.py)
  - Word memory (mem/memory.py)
  - Console device at 0xFFF (periph/console.py)

Execution model — a two-state machine, one state transition per step:
  FETCH:    IR = mem[PC]; PC += 1                      -> EXECUTE
  EXECUTE:  decode IR and run the handler:
              LDA/STO/ADD/SUB                          -> FETCH
              JMP, taken JGE/JNE: PC = S, then fetch the
                target inline (IR = mem[PC]; PC += 1)  -> stay in EXECUTE
              not-taken JGE/JNE                        -> FETCH
              STP                                      -> halted

Because taken jumps fold the target fetch into the same step, a jump
costs one step where a plain instruction costs two.

Termination reasons:
  - HALT:             STP executed
  - LIMIT:            step limit reached before STP
  - FAULT:            memory access outside the loaded program
  - ILLEGAL:          IR holds a word that isn't an instruction
  - INPUT_EXHAUSTED:  console read after end of input
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional

from mu0_assembler.isa import Opcode

from .cpu.regs import Registers
from .cpu.decoder import IllegalOpcode, decode_instruction
from .mem.memory import Memory, MemoryFault
from .periph.console import ConsoleDevice, ConsoleInputExhausted

logger = logging.getLogger(__name__)


class State(Enum):
    FETCH = 'FETCH'
    EXECUTE = 'EXECUTE'


class StopReason(Enum):
    HALT = 'HALT'
    LIMIT = 'LIMIT'
    FAULT = 'FAULT'
    ILLEGAL = 'ILLEGAL'
    INPUT_EXHAUSTED = 'INPUT_EXHAUSTED'


class MU0Emulator:
    """MU0 fetch-execute emulator.

    Usage:
        emu = MU0Emulator()
        emu.load_file('prog.hex')
        result = emu.run(limit=1000)
        print(emu.regs.ACC)
    """

    # 0 or less means run until STP
    DEFAULT_STEP_LIMIT = 0

    def __init__(self, console: Optional[ConsoleDevice] = None):
        self.regs = Registers()
        self.console = console if console is not None else ConsoleDevice()
        self.mem = Memory([], self.console)

        self.state = State.FETCH
        self.halted = False
        self.error: Optional[Exception] = None

        # Address IR was fetched from, for diagnostics
        self._ir_address = 0

        self._trace = False
        self._trace_output: List[str] = []

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_words(self, words: List[int]):
        """Replace memory with the given words and reset the CPU."""
        self.mem = Memory(words, self.console)
        self.reset()

    def load_text(self, text: str):
        """Load machine-code text (4 hex digits per line)."""
        self.mem = Memory.from_machine_code(text, self.console)
        self.reset()

    def load_file(self, path):
        """Load a machine-code file."""
        self.load_text(Path(path).read_text(encoding="latin-1"))

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Perform one state transition. Returns StopReason if stopped, else None."""
        if self.halted:
            return StopReason.HALT

        regs = self.regs
        regs.steps += 1

        if self._trace:
            line = (f"{regs.steps:3d}: state = {self.state.value:>7s}, "
                    f"PC = {regs.PC:04x}, ACC = {regs.ACC & 0xFFFF:04x}, "
                    f"IR = {regs.IR & 0xFFFF:04x}")
            self._trace_output.append(line)
            logger.debug(line)

        try:
            if self.state == State.FETCH:
                self._fetch()
                self.state = State.EXECUTE
            else:
                self._execute()
        except MemoryFault as e:
            return self._fail(StopReason.FAULT, e)
        except IllegalOpcode as e:
            return self._fail(StopReason.ILLEGAL, e)
        except ConsoleInputExhausted as e:
            return self._fail(StopReason.INPUT_EXHAUSTED, e)

        if self.halted:
            return StopReason.HALT
        return None

    def run(self, limit: int = None) -> StopReason:
        """Run until STP, an error, or `limit` total steps (<= 0: no limit)."""
        if limit is None:
            limit = self.DEFAULT_STEP_LIMIT

        while limit <= 0 or self.regs.steps < limit:
            reason = self.step()
            if reason is not None:
                return reason

        logger.warning("Step limit exceeded")
        return StopReason.LIMIT

    def _fail(self, reason: StopReason, error: Exception) -> StopReason:
        self.error = error
        logger.error("%s", error)
        return reason

    def _fetch(self):
        """IR = mem[PC]; PC += 1"""
        self._ir_address = self.regs.PC
        self.regs.IR = self.mem.read(self.regs.PC)
        self.regs.PC += 1

    # ══════════════════════════════════════════════
    # Instruction execution
    # ══════════════════════════════════════════════

    def _execute(self):
        opcode, operand = decode_instruction(self.regs.IR, self._ir_address)
        self._dispatch[opcode](operand)

    def _build_dispatch(self) -> dict:
        return {
            Opcode.LDA: self._op_lda,
            Opcode.STO: self._op_sto,
            Opcode.ADD: self._op_add,
            Opcode.SUB: self._op_sub,
            Opcode.JMP: self._op_jmp,
            Opcode.JGE: self._op_jge,
            Opcode.JNE: self._op_jne,
            Opcode.STP: self._op_stp,
        }

    def _jump(self, target: int):
        """Taken branch: load PC and fetch the target in the same step."""
        self.regs.PC = target
        self._fetch()

    def _op_lda(self, operand: int):
        self.regs.ACC = self.mem.read(operand)
        self.state = State.FETCH

    def _op_sto(self, operand: int):
        self.mem.write(operand, self.regs.ACC)
        self.state = State.FETCH

    def _op_add(self, operand: int):
        self.regs.ACC += self.mem.read(operand)
        self.state = State.FETCH

    def _op_sub(self, operand: int):
        self.regs.ACC -= self.mem.read(operand)
        self.state = State.FETCH

    def _op_jmp(self, operand: int):
        self._jump(operand)

    def _op_jge(self, operand: int):
        if self.regs.ACC >= 0:
            self._jump(operand)
        else:
            self.state = State.FETCH

    def _op_jne(self, operand: int):
        if self.regs.ACC != 0:
            self._jump(operand)
        else:
            self.state = State.FETCH

    def _op_stp(self, operand: int):
        self.halted = True

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record one line per step (also sent to the debug log)."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """Reset the CPU to its power-on state. Memory contents are kept."""
        self.regs.reset()
        self.state = State.FETCH
        self.halted = False
        self.error = None
        self._ir_address = 0
        self.console.reset()
        self._trace_output.clear()
