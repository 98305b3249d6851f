"""
CHIP-8 Virtual Emulator — 4K Memory Map with Region Layout

Memory map:
  $000–$04F  Font glyphs (16 × 5 bytes)
  $050–$1FF  Interpreter area (unused by this core, zeroed)
  $200–$FFF  Program area (ROM image loaded verbatim at $200)

Every read/write is bounds-checked against the 4K space. Callers that
work relative to the index register wrap their addresses before they
get here (see Chip8Emulator._index_addr); anything still out of range
is a MemoryFault, never a silent overflow.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config import MEMORY_SIZE, PROGRAM_START, MAX_PROGRAM_SIZE, FONT_BASE
from ..faults import MemoryFault, ProgramLoadFailure
from .font import FONTSET

log = logging.getLogger(__name__)


class MemoryRegion:
    """A named region in the 4K address space."""
    def __init__(self, name: str, start: int, end: int):
        self.name = name
        self.start = start
        self.end = end  # inclusive

    def contains(self, addr: int) -> bool:
        return self.start <= addr <= self.end

    @property
    def size(self) -> int:
        return self.end - self.start + 1


class Memory:
    """4K byte-addressable memory.

    Flat bytearray; the region table only documents the layout and
    backs region_of() for diagnostics. There is no write protection:
    programs are free to modify themselves and the font area.
    """

    REGIONS = [
        MemoryRegion('INTERP',  0x000, PROGRAM_START - 1),
        MemoryRegion('PROGRAM', PROGRAM_START, MEMORY_SIZE - 1),
    ]

    def __init__(self, size: int = MEMORY_SIZE):
        self.size = size
        self._mem = bytearray(size)

        # Watchpoints: addr → callback(addr, old_val, new_val)
        self._watchpoints: Dict[int, List[Callable]] = {}

    # --- Core read/write ---

    def _check(self, addr: int):
        if not 0 <= addr < self.size:
            raise MemoryFault(addr, self.size)

    def read8(self, addr: int) -> int:
        """Read 8-bit value from address."""
        self._check(addr)
        return self._mem[addr]

    def write8(self, addr: int, value: int):
        """Write 8-bit value to address. Watchpoint callbacks fire on any write."""
        self._check(addr)
        value &= 0xFF
        old = self._mem[addr]
        self._mem[addr] = value

        if addr in self._watchpoints:
            for cb in self._watchpoints[addr]:
                cb(addr, old, value)

    def read16(self, addr: int) -> int:
        """Read 16-bit value (big-endian, the instruction word byte order)."""
        hi = self.read8(addr)
        lo = self.read8(addr + 1)
        return (hi << 8) | lo

    def read_block(self, addr: int, length: int) -> bytes:
        """Read ``length`` bytes starting at ``addr`` (no wrap)."""
        if length:
            self._check(addr)
            self._check(addr + length - 1)
        return bytes(self._mem[addr:addr + length])

    # --- Bulk load ---

    def load_binary(self, data: bytes, base_addr: int):
        """Copy data into memory at base_addr. Bypasses watchpoints."""
        end = base_addr + len(data)
        if data:
            self._check(base_addr)
            self._check(end - 1)
        self._mem[base_addr:end] = data

    def load_font(self):
        """Install the hex font glyphs at FONT_BASE."""
        self.load_binary(FONTSET, FONT_BASE)

    def load_program(self, data: bytes) -> int:
        """Load a ROM image at PROGRAM_START, truncating at the end of memory.

        Returns the number of bytes actually loaded. Oversized images are
        cut to MAX_PROGRAM_SIZE without raising; validate length first if
        that matters.
        """
        data = bytes(data)
        if len(data) > MAX_PROGRAM_SIZE:
            log.warning("Program is %d bytes, truncated to %d",
                        len(data), MAX_PROGRAM_SIZE)
            data = data[:MAX_PROGRAM_SIZE]
        self.load_binary(data, PROGRAM_START)
        log.debug("Loaded %d bytes at $%03X", len(data), PROGRAM_START)
        return len(data)

    def load_program_file(self, path) -> int:
        """Read a ROM file from disk and load it. Raises ProgramLoadFailure."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ProgramLoadFailure(path, e.strerror or str(e)) from e
        return self.load_program(data)

    def clear(self):
        """Zero the whole address space and drop watchpoints."""
        self._mem[:] = bytes(self.size)
        self._watchpoints.clear()

    # --- Watchpoints ---

    def add_watchpoint(self, addr: int, callback: Callable):
        """Add a write watchpoint on an address.

        callback(addr, old_val, new_val) is called on every write to
        that address made by the running program.
        """
        self._check(addr)
        if addr not in self._watchpoints:
            self._watchpoints[addr] = []
        self._watchpoints[addr].append(callback)

    def remove_watchpoint(self, addr: int, callback: Optional[Callable] = None):
        """Remove a watchpoint. If callback is None, removes all on that addr."""
        if addr in self._watchpoints:
            if callback is None:
                del self._watchpoints[addr]
            else:
                self._watchpoints[addr] = [
                    cb for cb in self._watchpoints[addr] if cb != callback
                ]

    # --- Snapshots ---

    def snapshot(self, start: int = 0x000, end: int = MEMORY_SIZE - 1) -> bytes:
        """Capture a copy of [start, end] for later diffing."""
        return self.read_block(start, end - start + 1)

    def diff_snapshots(self, snap_a: bytes, snap_b: bytes,
                       base_addr: int = 0x000) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changes."""
        changes = {}
        for i in range(min(len(snap_a), len(snap_b))):
            if snap_a[i] != snap_b[i]:
                changes[base_addr + i] = (snap_a[i], snap_b[i])
        return changes

    # --- Diagnostics ---

    def region_of(self, addr: int) -> Optional[str]:
        for region in self.REGIONS:
            if region.contains(addr):
                return region.name
        return None

    def hexdump(self, start: int, length: int = 256) -> str:
        """Produce a hex dump of memory for debugging."""
        lines = []
        end = min(start + length, self.size)
        for addr in range(start, end, 16):
            chunk = self._mem[addr:min(addr + 16, end)]
            hex_bytes = ' '.join(f'{b:02X}' for b in chunk)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in chunk)
            lines.append(f'{addr:03X}  {hex_bytes:<47}  {ascii_bytes}')
        return '\n'.join(lines)
