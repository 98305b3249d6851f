"""
CHIP-8 Virtual Emulator — Fault Types

Every error the core can raise derives from Chip8Fault. Faults are fatal
to the emulation session but never to the host process: the caller
decides whether to log-and-halt or abort.

Wraparound in 8-bit register arithmetic is ISA behavior, not a fault.
"""


class Chip8Fault(Exception):
    """Base for emulator-generated faults."""
    pass


class UnsupportedInstruction(Chip8Fault):
    """Instruction word with no handler (includes 0nnn SYS calls)."""

    def __init__(self, word: int, pc: int):
        self.word = word & 0xFFFF
        self.pc = pc
        super().__init__(f"Unsupported instruction ${self.word:04X} at ${pc:03X}")


class StackFault(Chip8Fault):
    """CALL beyond stack capacity, or RET with an empty stack."""

    OVERFLOW = 'OVERFLOW'
    UNDERFLOW = 'UNDERFLOW'

    def __init__(self, kind: str, pc: int, depth: int):
        self.kind = kind
        self.pc = pc
        self.depth = depth
        super().__init__(f"Stack {kind.lower()} at ${pc:03X} (depth={depth})")


class MemoryFault(Chip8Fault):
    """Access outside the 4K address space."""

    def __init__(self, address: int, size: int):
        self.address = address
        self.size = size
        super().__init__(f"Address ${address:X} outside memory (size=${size:X})")


class ProgramLoadFailure(Chip8Fault):
    """ROM image could not be read."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Unable to load program {self.path}: {reason}")
