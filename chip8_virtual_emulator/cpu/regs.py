"""
CHIP-8 Virtual Emulator — CPU Register Set + Return Stack

Register model:
  V0–VF  — 16 × 8-bit general purpose registers
           VF is also the flag output of ADD/SUB/SHR/SHL/DRW
  I      — 16-bit index register (memory address for DRW, Fx33, Fx55, Fx65)
  PC     — program counter (address of the next instruction word)
  stack  — 16 return addresses, SP = current depth (0 = empty)

The stack lives outside the 4K address space, so CALL/RET never touch
memory. Depth is bounds-checked: overflow and underflow raise StackFault.
"""

from ..config import REGISTER_COUNT, STACK_DEPTH, PROGRAM_START, FLAG_REGISTER
from ..faults import StackFault

VF = FLAG_REGISTER


class Registers:
    """CHIP-8 register file and return stack."""

    __slots__ = ('V', 'I', 'PC', 'stack', 'SP')

    def __init__(self):
        self.V: list = [0] * REGISTER_COUNT   # V0–VF (8-bit)
        self.I: int = 0                        # Index register
        self.PC: int = PROGRAM_START           # Program counter
        self.stack: list = [0] * STACK_DEPTH   # Return addresses
        self.SP: int = 0                       # Stack depth

    # --- Flag register ---

    @property
    def flag(self) -> int:
        return self.V[VF]

    @flag.setter
    def flag(self, value: int):
        self.V[VF] = 1 if value else 0

    # --- Stack operations ---

    def push_return(self, addr: int):
        """Push a return address. Raises StackFault when all slots are used."""
        if self.SP >= STACK_DEPTH:
            raise StackFault(StackFault.OVERFLOW, self.PC, self.SP)
        self.stack[self.SP] = addr
        self.SP += 1

    def pop_return(self) -> int:
        """Pop a return address. Raises StackFault on an empty stack."""
        if self.SP <= 0:
            raise StackFault(StackFault.UNDERFLOW, self.PC, self.SP)
        self.SP -= 1
        return self.stack[self.SP]

    # --- Display ---

    def display(self) -> str:
        """Format register state for debugging."""
        v = ' '.join(f'{val:02X}' for val in self.V)
        return f"PC={self.PC:03X} I={self.I:03X} SP={self.SP:X} V=[{v}]"

    def reset(self):
        """Reset registers to power-on state."""
        self.V = [0] * REGISTER_COUNT
        self.I = 0
        self.PC = PROGRAM_START
        self.stack = [0] * STACK_DEPTH
        self.SP = 0
