"""
MU0 Emulator — Word Memory with Memory-Mapped Console

Memory is exactly as long as the loaded program: one word per
machine-code line, no padding up to the 4K address space.

Address map:
  0x000 .. size-1   program words (read/write)
  0xFFF             console device (never touches the word array)
  anything else     MemoryFault

The console address is checked before the bounds check so it works for
any memory size, including an empty program.
"""

import logging
from typing import List, Optional

from mu0_assembler.isa import IO_ADDRESS

from ..periph.console import ConsoleDevice

__all__ = ['Memory', 'MemoryFault', 'MachineCodeError', 'load_machine_code']

logger = logging.getLogger(__name__)


class MemoryFault(Exception):
    """Access outside the loaded memory (the emulated segfault)."""
    def __init__(self, address: int):
        self.address = address
        super().__init__(f"Memory address 0x{address:x} is out of range")


class MachineCodeError(Exception):
    """Machine-code text that can't be loaded."""
    pass


def load_machine_code(text: str) -> List[int]:
    """Parse machine-code text into words.

    Words are whitespace-separated hex numbers, normally one 4-digit
    word per line. An optional 0x prefix is accepted.
    """
    words = []
    for index, token in enumerate(text.split()):
        try:
            words.append(int(token, 16))
        except ValueError:
            raise MachineCodeError(
                f"Word {index}: '{token}' is not a hexadecimal number") from None
    logger.debug("Read in %d lines", len(words))
    return words


class Memory:
    """Fixed-size word memory with console I/O at 0xFFF."""

    def __init__(self, words: Optional[List[int]] = None,
                 console: Optional[ConsoleDevice] = None):
        self._mem: List[int] = list(words) if words is not None else []
        self.console = console if console is not None else ConsoleDevice()

    @classmethod
    def from_machine_code(cls, text: str,
                          console: Optional[ConsoleDevice] = None) -> 'Memory':
        return cls(load_machine_code(text), console)

    @property
    def size(self) -> int:
        return len(self._mem)

    # --- Core read/write ---

    def read(self, address: int) -> int:
        """Read a word. Address 0xFFF reads one character from the console."""
        if address == IO_ADDRESS:
            return self.console.read_char()
        if not 0 <= address < len(self._mem):
            raise MemoryFault(address)
        return self._mem[address]

    def write(self, address: int, value: int):
        """Write a word. Address 0xFFF prints value as a character."""
        if address == IO_ADDRESS:
            self.console.write_char(value)
            return
        if not 0 <= address < len(self._mem):
            raise MemoryFault(address)
        self._mem[address] = value

    # --- Inspection ---

    def words(self) -> List[int]:
        """Copy of the current memory contents."""
        return list(self._mem)

    def hexdump(self, start: int = 0, length: Optional[int] = None) -> str:
        """Hex dump, 8 words per row, for debugging."""
        end = len(self._mem) if length is None else min(len(self._mem), start + length)
        lines = []
        for row in range(start, end, 8):
            row_words = ' '.join(f'{w & 0xFFFF:04x}' for w in self._mem[row:min(row + 8, end)])
            lines.append(f'{row:03x}  {row_words}')
        return '\n'.join(lines)
