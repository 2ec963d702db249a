"""
MU0 Emulator — Instruction Decoder

Splits the instruction register into (Opcode, operand) using the same
word format the assembler encodes with (mu0_assembler/isa.py).

Only opcodes 0-7 exist. A word with a higher top nibble, or a negative
value stored from ACC, can still end up in IR through data words or
self-modifying code; those raise IllegalOpcode.
"""

from typing import Tuple

from mu0_assembler.isa import Opcode, decode

__all__ = ['IllegalOpcode', 'decode_instruction']


class IllegalOpcode(Exception):
    """Raised when IR holds a word that isn't a MU0 instruction."""
    def __init__(self, word: int, address: int = None):
        self.word = word
        self.address = address
        where = f" at 0x{address:03x}" if address is not None else ""
        super().__init__(f"Illegal instruction word {word:#06x}{where}")


def decode_instruction(word: int, address: int = None) -> Tuple[Opcode, int]:
    """Decode an instruction word into (Opcode, operand)."""
    op, operand = decode(word)
    if word < 0 or not Opcode.LDA <= op <= Opcode.STP:
        raise IllegalOpcode(word, address)
    return Opcode(op), operand
