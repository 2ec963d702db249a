"""
MU0 Emulator — Console Device

The only peripheral MU0 has. It sits behind the reserved memory address
0xFFF:
  LDA 0xFFF  -> read one byte from the input stream (blocks)
  STO 0xFFF  -> write the low byte of ACC to the output stream

By default the device talks raw bytes over the binary buffers behind
sys.stdin/sys.stdout, so every value 0-255 passes through unchanged.
Text streams (io.StringIO in tests) also work: one character per
transfer, written as chr(byte). Every transmitted byte is also kept in
tx_buffer for programmatic inspection.
"""

import io
import sys
from typing import IO, Optional

__all__ = ['ConsoleDevice', 'ConsoleInputExhausted']


class ConsoleInputExhausted(Exception):
    """The program read from the console after end of input."""
    pass


def _raw(stream):
    """Prefer the binary buffer underneath a text stream, if it has one."""
    return getattr(stream, 'buffer', stream)


class ConsoleDevice:
    """Byte console wired to a pair of streams.

    Usage:
        console = ConsoleDevice(io.BytesIO(b"A"), io.BytesIO())
        console.read_char()     # 65
        console.write_char(66)  # writes b"B"
    """

    def __init__(self, input_stream: Optional[IO] = None,
                 output_stream: Optional[IO] = None):
        self.input_stream = input_stream if input_stream is not None else _raw(sys.stdin)
        self.output_stream = output_stream if output_stream is not None else _raw(sys.stdout)

        # TX history: every byte written by the program
        self.tx_buffer: bytearray = bytearray()

    def read_char(self) -> int:
        """Block until one byte is available and return it.

        Raises ConsoleInputExhausted at end of stream.
        """
        data = self.input_stream.read(1)
        if not data:
            raise ConsoleInputExhausted("Console input exhausted")
        if isinstance(data, str):
            return ord(data)
        return data[0]

    def write_char(self, value: int):
        """Write the low byte of value."""
        byte = value & 0xFF
        self.tx_buffer.append(byte)
        if isinstance(self.output_stream, io.TextIOBase):
            self.output_stream.write(chr(byte))
        else:
            self.output_stream.write(bytes((byte,)))
        self.output_stream.flush()

    @property
    def output(self) -> bytes:
        """All bytes written since the last reset."""
        return bytes(self.tx_buffer)

    def reset(self):
        self.tx_buffer.clear()
