"""
CHIP-8 Disassembler
===================

Turns ROM bytes into one line per 2-byte instruction word:

    $200: 6A 02   LD   VA, #02
    $202: A2 2A   LD   I, $22A
    $204: 00 00   DW   #0000

Data mixed into code (sprites, tables) decodes as whatever instruction
it happens to look like, or as ``DW`` when no instruction matches. A
trailing odd byte is emitted as ``DB``.

API Usage:
    from chip8_virtual_emulator.disasm import Chip8Disassembler

    dis = Chip8Disassembler()
    for inst in dis.disassemble(rom_bytes):
        print(inst.format())
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .config import PROGRAM_START
from .cpu.decoder import lookup, format_instruction


@dataclass
class DisassembledInstruction:
    """One decoded instruction word."""
    address: int
    raw_bytes: bytes
    mnemonic: str       # assembler mnemonic, 'DW' / 'DB' for data
    text: str           # full assembler text, e.g. "LD   V3, #2A"
    known: bool = True

    @property
    def hex_str(self) -> str:
        """Hex bytes formatted like '6A 02'."""
        return " ".join(f"{b:02X}" for b in self.raw_bytes)

    def format(self) -> str:
        """Format as a single disassembly line."""
        return f"${self.address:03X}: {self.hex_str:5s}   {self.text}"


class Chip8Disassembler:
    """Linear-sweep disassembler (no flow analysis)."""

    def decode_one(self, data: bytes, offset: int = 0,
                   base_addr: int = PROGRAM_START) -> DisassembledInstruction:
        addr = base_addr + offset
        if offset + 1 >= len(data):
            b = data[offset]
            return DisassembledInstruction(addr, bytes([b]), 'DB',
                                           f"DB   #{b:02X}", known=False)
        word = (data[offset] << 8) | data[offset + 1]
        entry = lookup(word)
        return DisassembledInstruction(
            address=addr,
            raw_bytes=bytes(data[offset:offset + 2]),
            mnemonic=entry.asm if entry else 'DW',
            text=format_instruction(word),
            known=entry is not None,
        )

    def disassemble(self, data: bytes,
                    base_addr: int = PROGRAM_START) -> List[DisassembledInstruction]:
        return [self.decode_one(data, off, base_addr)
                for off in range(0, len(data), 2)]

    def listing(self, data: bytes, base_addr: int = PROGRAM_START) -> str:
        return "\n".join(i.format() for i in self.disassemble(data, base_addr))
