"""
MU0 Emulator — CPU Register Set

Register model:
  PC   — program counter, address of the next word to fetch
  ACC  — accumulator, the only data register. Held as a plain signed
         Python int: SUB can take it negative (JGE depends on that) and
         ADD never wraps.
  IR   — instruction register, the word currently being executed
  steps — state transitions performed so far (FETCH and EXECUTE each count)
"""


class Registers:
    """MU0 CPU register set. Everything starts at zero."""

    __slots__ = ('PC', 'ACC', 'IR', 'steps')

    def __init__(self):
        self.PC: int = 0
        self.ACC: int = 0
        self.IR: int = 0
        self.steps: int = 0

    def display(self) -> str:
        """Format register state for debugging."""
        return (f"PC={self.PC:04x} ACC={self.ACC & 0xFFFF:04x} "
                f"IR={self.IR & 0xFFFF:04x} steps={self.steps}")

    def reset(self):
        self.PC = 0
        self.ACC = 0
        self.IR = 0
        self.steps = 0
