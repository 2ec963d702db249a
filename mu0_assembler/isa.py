"""
MU0 Instruction Set — 16-bit word format and the 8-entry opcode set.

Word layout:
  bits 15-12  opcode  (0-7, see Opcode)
  bits 11-0   operand (memory address; unused by STP and encoded as 0)

Both the assembler and the emulator go through encode()/decode() so
the two sides always agree on the bit layout.

Opcode table:
  0 LDA  ACC = mem[S]
  1 STO  mem[S] = ACC
  2 ADD  ACC = ACC + mem[S]
  3 SUB  ACC = ACC - mem[S]
  4 JMP  PC = S
  5 JGE  if ACC >= 0: PC = S
  6 JNE  if ACC != 0: PC = S
  7 STP  halt
"""

from enum import IntEnum
from typing import Optional, Tuple

__all__ = [
    'Opcode', 'WORD_MASK', 'OPERAND_MASK', 'OPCODE_SHIFT', 'IO_ADDRESS',
    'MNEMONIC_LENGTH', 'encode', 'decode', 'opcode_from_mnemonic',
    'mnemonic_for', 'disassemble_word',
]


WORD_MASK = 0xFFFF
OPERAND_MASK = 0x0FFF
OPCODE_SHIFT = 12

# Reserved memory-mapped console address (highest 12-bit operand)
IO_ADDRESS = 0xFFF

MNEMONIC_LENGTH = 3


class Opcode(IntEnum):
    """Closed MU0 opcode set. The numeric value is the 4-bit encoding."""
    LDA = 0
    STO = 1
    ADD = 2
    SUB = 3
    JMP = 4
    JGE = 5
    JNE = 6
    STP = 7


def opcode_from_mnemonic(name: str) -> Optional[Opcode]:
    """Map a mnemonic to its opcode (case-sensitive). None if unknown."""
    try:
        return Opcode[name]
    except KeyError:
        return None


def mnemonic_for(opcode: int) -> str:
    """Map an opcode number back to its 3-letter mnemonic."""
    return Opcode(opcode).name


def encode(opcode: Opcode, operand: int = 0) -> int:
    """Pack an opcode and operand into one 16-bit word."""
    return (int(opcode) << OPCODE_SHIFT) | (operand & OPERAND_MASK)


def decode(word: int) -> Tuple[int, int]:
    """Split a word into (opcode number, operand).

    The opcode number is returned raw; callers that need an Opcode must
    check it is in range (hand-written machine code can hold anything).
    """
    return word >> OPCODE_SHIFT, word & OPERAND_MASK


def disassemble_word(word: int) -> str:
    """Render a word as 'MNE 0xOOO', or as raw data if it isn't an instruction."""
    op, operand = decode(word)
    if word < 0 or not Opcode.LDA <= op <= Opcode.STP:
        return f"DATA 0x{word & WORD_MASK:04x}"
    if op == Opcode.STP:
        return 'STP'
    return f"{mnemonic_for(op)} 0x{operand:03x}"
