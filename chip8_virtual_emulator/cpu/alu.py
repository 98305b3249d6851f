"""
CHIP-8 Virtual Emulator — 8-bit ALU Helpers

Each function takes plain operand values and returns
(result_byte, flag_bit). The caller writes the result to Vx first and
the flag to VF second, so when x == F the flag survives. Operands are
read before either write, which keeps the flag correct when Vx or Vy
alias VF.

Wraparound is the ISA's defined behavior: results are always masked to
8 bits, never guarded.
"""


def add8(a: int, b: int) -> tuple:
    """a + b. Flag = 1 if the unsigned sum exceeds $FF (carry)."""
    result = a + b
    return (result & 0xFF, 1 if result > 0xFF else 0)


def sub8(a: int, b: int) -> tuple:
    """a − b. Flag = 1 if a >= b (NOT borrow)."""
    return ((a - b) & 0xFF, 1 if a >= b else 0)


def shr8(value: int) -> tuple:
    """value >> 1. Flag = bit 0 shifted out."""
    return ((value >> 1) & 0xFF, value & 0x01)


def shl8(value: int) -> tuple:
    """value << 1. Flag = bit 7 shifted out."""
    return ((value << 1) & 0xFF, (value >> 7) & 0x01)


def bcd3(value: int) -> tuple:
    """Split 0–255 into (hundreds, tens, ones)."""
    value &= 0xFF
    return (value // 100, (value // 10) % 10, value % 10)
