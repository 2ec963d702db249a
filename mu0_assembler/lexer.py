"""
MU0 Assembly Line Classifier.

MU0 source is strictly one directive per line and the first character
decides what the line is:

  ''  or whitespace  -> ignored
  ';'                -> comment, ignored
  ':'                -> label definition (next token is the name)
  '#'                -> numeric data word (C-style integer literal)
  '$'                -> character data word (the next character)
  LDA/STO/.../STP    -> instruction, next token is the operand
  anything else      -> malformed

Both assembler passes classify lines through parse_line() so they always
agree on which lines occupy a memory word.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .isa import MNEMONIC_LENGTH, Opcode, opcode_from_mnemonic

__all__ = [
    'LineKind', 'AsmLine', 'parse_line', 'parse_c_integer',
    'MAX_LINE_LENGTH', 'LABEL_CHAR', 'NUM_LITERAL_CHAR', 'CHAR_LITERAL_CHAR',
    'COMMENT_CHAR',
]


MAX_LINE_LENGTH = 90

LABEL_CHAR = ':'
NUM_LITERAL_CHAR = '#'
CHAR_LITERAL_CHAR = '$'
COMMENT_CHAR = ';'

_DIGITS = {
    8: '01234567',
    10: '0123456789',
    16: '0123456789abcdefABCDEF',
}


class LineKind(Enum):
    BLANK = 'BLANK'
    COMMENT = 'COMMENT'
    LABEL = 'LABEL'
    NUMBER = 'NUMBER'
    CHAR = 'CHAR'
    INSTRUCTION = 'INSTRUCTION'
    TOO_LONG = 'TOO_LONG'
    MALFORMED = 'MALFORMED'


# Kinds that occupy exactly one memory word
WORD_KINDS = frozenset({LineKind.NUMBER, LineKind.CHAR, LineKind.INSTRUCTION})


@dataclass
class AsmLine:
    """One classified source line."""
    kind: LineKind
    line_num: int = 0
    raw: str = ""
    label: Optional[str] = None       # LABEL: the defined name
    value: Optional[int] = None       # NUMBER/CHAR: the raw data value
    opcode: Optional[Opcode] = None   # INSTRUCTION
    operand: str = ""                 # INSTRUCTION: operand token ('' if absent)

    @property
    def emits_word(self) -> bool:
        return self.kind in WORD_KINDS


def parse_c_integer(text: str) -> int:
    """Parse an integer the way C strtol(text, NULL, 0) does.

    Leading whitespace and a sign are accepted; '0x'/'0X' selects hex,
    a leading '0' selects octal, anything else is decimal. Parsing stops
    at the first character that isn't a digit of the chosen base, and a
    string with no digits at all is 0.
    """
    s = text.lstrip()
    sign = 1
    if s[:1] in ('+', '-'):
        if s[0] == '-':
            sign = -1
        s = s[1:]

    if s[:2] in ('0x', '0X') and s[2:3] and s[2] in _DIGITS[16]:
        base = 16
        s = s[2:]
    elif s[:1] == '0':
        base = 8
    else:
        base = 10

    digits = _DIGITS[base]
    end = 0
    while end < len(s) and s[end] in digits:
        end += 1
    if end == 0:
        return 0
    return sign * int(s[:end], base)


def parse_line(line: str, line_num: int = 0) -> AsmLine:
    """Classify one line of MU0 assembly (without its trailing newline)."""
    if line.endswith('\r'):
        line = line[:-1]

    if len(line) > MAX_LINE_LENGTH:
        return AsmLine(LineKind.TOO_LONG, line_num, line)

    if not line or line[0].isspace():
        return AsmLine(LineKind.BLANK, line_num, line)

    first = line[0]

    if first == COMMENT_CHAR:
        return AsmLine(LineKind.COMMENT, line_num, line)

    if first == LABEL_CHAR:
        tokens = line[1:].split()
        if not tokens:
            return AsmLine(LineKind.MALFORMED, line_num, line)
        return AsmLine(LineKind.LABEL, line_num, line, label=tokens[0])

    if first == NUM_LITERAL_CHAR:
        return AsmLine(LineKind.NUMBER, line_num, line,
                       value=parse_c_integer(line[1:]))

    if first == CHAR_LITERAL_CHAR:
        # A bare '$' stores the line terminator itself
        char = line[1] if len(line) > 1 else '\n'
        return AsmLine(LineKind.CHAR, line_num, line, value=ord(char))

    opcode = opcode_from_mnemonic(line[:MNEMONIC_LENGTH])
    if opcode is None:
        return AsmLine(LineKind.MALFORMED, line_num, line)

    tokens = line[MNEMONIC_LENGTH:].split()
    return AsmLine(LineKind.INSTRUCTION, line_num, line,
                   opcode=opcode, operand=tokens[0] if tokens else "")
