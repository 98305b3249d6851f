"""
CHIP-8 Virtual Emulator — Machine Constants
============================================

Fixed parameters of the virtual machine. Nothing here is tunable per
program: these values define the ISA's address space, register file
and display geometry.

Memory map:
  $000–$1FF  Interpreter area (font glyphs live at $000)
  $200–$FFF  Program area (ROM image is loaded at $200)
"""

# =============================================================================
#  ADDRESS SPACE
# =============================================================================
MEMORY_SIZE = 0x1000          # 4K flat byte space
ADDRESS_MASK = 0x0FFF         # nnn field width == address width
PROGRAM_START = 0x200         # ROM load address / reset PC
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START   # 3584 bytes

# Font table (16 hex glyphs × 5 rows)
FONT_BASE = 0x000
FONT_GLYPH_BYTES = 5
FONT_GLYPH_COUNT = 16


# =============================================================================
#  CPU
# =============================================================================
REGISTER_COUNT = 16           # V0–VF
FLAG_REGISTER = 0xF           # VF doubles as carry / borrow / collision
STACK_DEPTH = 16              # return-address slots
INSTRUCTION_BYTES = 2         # every instruction word is 2 bytes, big-endian


# =============================================================================
#  PERIPHERALS
# =============================================================================
KEY_COUNT = 16                # keypad $0–$F

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
SPRITE_WIDTH = 8              # one byte per sprite row

# Timers count down at 60 Hz, driven by the host's tick() cadence
TICK_HZ = 60

# Headless run(): executed instructions per timer tick.
# 10 steps/tick ≈ 600 instructions per second at 60 Hz.
DEFAULT_STEPS_PER_TICK = 10
