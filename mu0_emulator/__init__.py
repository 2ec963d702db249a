# MU0 Emulator — fetch-execute simulator for assembled MU0 programs.
# Shares its word format with mu0_assembler.isa.
from .emu import MU0Emulator, State, StopReason
from .mem.memory import Memory, MemoryFault, MachineCodeError, load_machine_code
from .periph.console import ConsoleDevice, ConsoleInputExhausted
from .cpu.decoder import IllegalOpcode
