"""
MU0 Two-Pass Assembler.

Assembles MU0 assembly text into 16-bit words and the machine-code
text format the emulator loads.

Input:  Assembly text, one directive per line (see lexer.py)
Output: List of words, machine-code text, or a listing

How the two-pass algorithm works:
  Pass 1: Classify every line and bind labels to the address of the next
          word-emitting line (labels.py). Every word-emitting line takes
          exactly one address, so no sizes need estimating.
  Pass 2: Emit one word per NUMBER/CHAR/INSTRUCTION line. Operands that
          start with ':' are looked up in the now-complete label table,
          which is what makes forward references work.

Machine-code format: one word per line as 4 lowercase hex digits,
ascending from address 0.
"""

from __future__ import annotations
import logging
from typing import List, Optional

from .isa import WORD_MASK, OPERAND_MASK, encode, disassemble_word
from .labels import LabelTable
from .lexer import (
    AsmLine, LineKind, LABEL_CHAR, MAX_LINE_LENGTH,
    parse_line, parse_c_integer,
)

__all__ = [
    'Assembler', 'AssemblerError', 'UnresolvedLabelError',
    'first_pass', 'second_pass', 'assemble', 'assemble_to_text',
    'format_machine_code',
]

logger = logging.getLogger(__name__)


class AssemblerError(Exception):
    """Raised on fatal assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class UnresolvedLabelError(AssemblerError):
    """An operand refers to a label that is never defined."""
    def __init__(self, label: str, line_num: int = 0, line_text: str = ""):
        self.label = label
        super().__init__(f'Unknown label "{label}"', line_num, line_text)


# ──────────────────────────────────────────────
# Passes
# ──────────────────────────────────────────────

def _classify(source_lines) -> List[AsmLine]:
    return [parse_line(line, i) for i, line in enumerate(source_lines, 1)]


def first_pass(source_lines) -> LabelTable:
    """Pass 1: build the label table."""
    return LabelTable.build(source_lines)


def _encode_line(line: AsmLine, table: LabelTable) -> int:
    """Encode one word-emitting line. Raises UnresolvedLabelError."""
    if line.kind in (LineKind.NUMBER, LineKind.CHAR):
        return line.value & WORD_MASK

    token = line.operand
    if token.startswith(LABEL_CHAR):
        name = token[1:]
        address = table.resolve(name)
        if address is None:
            raise UnresolvedLabelError(name, line.line_num, line.raw)
    else:
        # STP has no operand: '' parses as 0 like any other empty number
        address = parse_c_integer(token)
    return encode(line.opcode, address & OPERAND_MASK)


def _warn_skipped(line: AsmLine) -> Optional[str]:
    if line.kind == LineKind.TOO_LONG:
        message = (f"Line {line.line_num} exceeds {MAX_LINE_LENGTH} "
                   f"characters, ignoring it")
    elif line.kind == LineKind.MALFORMED:
        message = f"Ignoring bad line {line.line_num}: {line.raw}"
    else:
        return None
    logger.warning(message)
    return message


def second_pass(source_lines, table: LabelTable) -> List[int]:
    """Pass 2: emit one word per word-emitting line, in source order."""
    words = []
    for line in _classify(source_lines):
        if line.emits_word:
            words.append(_encode_line(line, table))
        else:
            _warn_skipped(line)
    return words


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass MU0 assembler.

    Usage:
        asm = Assembler()
        words = asm.assemble(source_text)
        text = asm.to_machine_code()
    """

    def __init__(self):
        self.labels: LabelTable = LabelTable()  # Label name -> address
        self.words: List[int] = []               # Assembled words, address order
        self.warnings: List[str] = []            # Skipped-line diagnostics
        self._lines: List[AsmLine] = []          # Classified source lines
        self._addresses: List[Optional[int]] = []  # Per-line address (None = no word)

    def assemble(self, source: str) -> List[int]:
        """Assemble source text into words.

        Malformed and overlong lines are reported in self.warnings and
        skipped. An unknown label aborts the whole assembly.
        """
        self.words = []
        self.warnings = []
        self._addresses = []
        self._lines = _classify(source.split('\n'))

        self.labels = first_pass(self._lines)

        for line in self._lines:
            if line.emits_word:
                self._addresses.append(len(self.words))
                self.words.append(_encode_line(line, self.labels))
            else:
                self._addresses.append(None)
                message = _warn_skipped(line)
                if message:
                    self.warnings.append(message)

        logger.debug("Assembled %d words, %d labels", len(self.words), len(self.labels))
        return self.words

    def to_machine_code(self) -> str:
        return format_machine_code(self.words)

    def get_listing(self) -> str:
        """Return a human-readable listing: address, word, decoded form, source,
        followed by the label table in address order."""
        lines = []
        lines.append(f"{'ADDR':>4}  {'WORD':<4}  {'DECODED':<10}  SOURCE")
        lines.append("-" * 60)

        for asmline, addr in zip(self._lines, self._addresses):
            raw = asmline.raw.rstrip()
            if addr is not None:
                word = self.words[addr]
                lines.append(f"{addr:04x}  {word:04x}  {disassemble_word(word):<10}  {raw}")
            elif raw:
                lines.append(f"{'':4}  {'':4}  {'':10}  {raw}")

        if len(self.labels):
            lines.append("")
            lines.append("Labels:")
            for name, addr in sorted(self.labels.items(), key=lambda item: item[1]):
                lines.append(f"  {addr:04x}  {name}")

        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def format_machine_code(words: List[int]) -> str:
    """Serialize words as 4 lowercase hex digits per line."""
    return ''.join(f"{word & WORD_MASK:04x}\n" for word in words)


def assemble(source: str) -> List[int]:
    """Assemble source text, return the word list."""
    return Assembler().assemble(source)


def assemble_to_text(source: str) -> str:
    """Assemble source text, return machine-code text."""
    asm = Assembler()
    asm.assemble(source)
    return asm.to_machine_code()
