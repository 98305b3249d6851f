# CHIP-8 Virtual Emulator — Pure-software CHIP-8 interpreter core
#
# Layout mirrors a small machine:
#   cpu/     registers, return stack, ALU helpers, opcode decoder
#   mem/     4K address space + hexadecimal font table
#   periph/  delay/sound timers, 16-key keypad, 64x32 display
#   emu.py   the Chip8Emulator aggregate (step / tick / run)
#
# Window, audio and wall-clock pacing belong to the host. The core only
# advances state one instruction (step) or one 60 Hz tick at a time.

from .emu import Chip8Emulator, StopReason
from .faults import (
    Chip8Fault, UnsupportedInstruction, StackFault,
    ProgramLoadFailure, MemoryFault,
)

__version__ = "0.4.0"

__all__ = [
    "Chip8Emulator", "StopReason",
    "Chip8Fault", "UnsupportedInstruction", "StackFault",
    "ProgramLoadFailure", "MemoryFault",
]
