"""
mu0kit Assembler
================
Two-pass assembler for the MU0 educational computer.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌─────────────┐    ┌──────────────┐
    │ Source   │───>│  Lexer   │───>│ Label Table │───>│  Assembler   │
    │ (.asm)   │    │ (lines)  │    │  (pass 1)   │    │ (pass 2, hex)│
    └──────────┘    └──────────┘    └─────────────┘    └──────────────┘

    - isa.py:       16-bit word format + the 8 opcodes, shared with the emulator
    - lexer.py:     First-character line classifier + C-style integer parsing
    - labels.py:    Label name -> address table (pass 1)
    - assembler.py: Word emission (pass 2), machine-code text, listing
"""

__version__ = "1.0.0"

from .isa import (
    Opcode, IO_ADDRESS, encode, decode, opcode_from_mnemonic, mnemonic_for,
    disassemble_word,
)
from .labels import LabelTable
from .assembler import (
    Assembler, AssemblerError, UnresolvedLabelError, first_pass, second_pass,
    assemble, assemble_to_text, format_machine_code,
)
