"""
CHIP-8 Virtual Emulator — Opcode Decoder / Dispatch Table

Every instruction is one big-endian 16-bit word. Fields:

  F x y n     F    = family (top nibble)
              x    = bits 8–11, register index
              y    = bits 4–7,  register index
              n    = bits 0–3,  nibble / sub-selector
              kk   = bits 0–7,  immediate byte / sub-selector
              nnn  = bits 0–11, address

A family either maps to one behavior (1nnn, 6xkk, ...) or is split by a
sub-selector (n for 8xyN, kk for 0, E and F). The table below stores
(mask, match) pairs grouped by family; a word decodes to the first entry
where ``word & mask == match``.

Each entry also carries the assembler spelling and operand layout used
by the disassembler and the instruction trace.

0nnn (SYS, call native routine) has no entry. The core does
not execute host machine code, so it decodes as UnsupportedInstruction.
"""

from typing import Dict, List, NamedTuple, Optional

from ..config import ADDRESS_MASK
from ..faults import UnsupportedInstruction


class Fields(NamedTuple):
    """Operand fields extracted from one instruction word."""
    word: int
    family: int
    x: int
    y: int
    n: int
    kk: int
    nnn: int


class OpcodeEntry(NamedTuple):
    mask: int
    match: int
    mnem: str        # dispatch key (unique per behavior)
    asm: str         # assembler mnemonic
    operands: str    # str.format template over Fields


def decode_fields(word: int) -> Fields:
    """Split an instruction word into its operand fields."""
    word &= 0xFFFF
    return Fields(
        word=word,
        family=(word >> 12) & 0xF,
        x=(word >> 8) & 0xF,
        y=(word >> 4) & 0xF,
        n=word & 0xF,
        kk=word & 0xFF,
        nnn=word & ADDRESS_MASK,
    )


# ──────────────────────────────────────────────
# Opcode table
# ──────────────────────────────────────────────
# Format: (mask, match, dispatch key, asm mnemonic, operand template)

OPCODES: List[OpcodeEntry] = [OpcodeEntry(*e) for e in [
    # ── 0: system ──
    (0xFFFF, 0x00E0, 'CLS',       'CLS',  ''),
    (0xFFFF, 0x00EE, 'RET',       'RET',  ''),

    # ── 1–2: flow ──
    (0xF000, 0x1000, 'JP',        'JP',   '${nnn:03X}'),
    (0xF000, 0x2000, 'CALL',      'CALL', '${nnn:03X}'),

    # ── 3–5, 9: skips ──
    (0xF000, 0x3000, 'SE_IMM',    'SE',   'V{x:X}, #{kk:02X}'),
    (0xF000, 0x4000, 'SNE_IMM',   'SNE',  'V{x:X}, #{kk:02X}'),
    (0xF00F, 0x5000, 'SE_REG',    'SE',   'V{x:X}, V{y:X}'),

    # ── 6–7: immediates ──
    (0xF000, 0x6000, 'LD_IMM',    'LD',   'V{x:X}, #{kk:02X}'),
    (0xF000, 0x7000, 'ADD_IMM',   'ADD',  'V{x:X}, #{kk:02X}'),

    # ── 8: register ALU ──
    (0xF00F, 0x8000, 'LD_REG',    'LD',   'V{x:X}, V{y:X}'),
    (0xF00F, 0x8001, 'OR',        'OR',   'V{x:X}, V{y:X}'),
    (0xF00F, 0x8002, 'AND',       'AND',  'V{x:X}, V{y:X}'),
    (0xF00F, 0x8003, 'XOR',       'XOR',  'V{x:X}, V{y:X}'),
    (0xF00F, 0x8004, 'ADD_REG',   'ADD',  'V{x:X}, V{y:X}'),
    (0xF00F, 0x8005, 'SUB',       'SUB',  'V{x:X}, V{y:X}'),
    (0xF00F, 0x8006, 'SHR',       'SHR',  'V{x:X}'),
    (0xF00F, 0x8007, 'SUBN',      'SUBN', 'V{x:X}, V{y:X}'),
    (0xF00F, 0x800E, 'SHL',       'SHL',  'V{x:X}'),

    (0xF00F, 0x9000, 'SNE_REG',   'SNE',  'V{x:X}, V{y:X}'),

    # ── A–D: index, offset jump, random, draw ──
    (0xF000, 0xA000, 'LD_I',      'LD',   'I, ${nnn:03X}'),
    (0xF000, 0xB000, 'JP_V0',     'JP',   'V0, ${nnn:03X}'),
    (0xF000, 0xC000, 'RND',       'RND',  'V{x:X}, #{kk:02X}'),
    (0xF000, 0xD000, 'DRW',       'DRW',  'V{x:X}, V{y:X}, {n}'),

    # ── E: keypad skips ──
    (0xF0FF, 0xE09E, 'SKP',       'SKP',  'V{x:X}'),
    (0xF0FF, 0xE0A1, 'SKNP',      'SKNP', 'V{x:X}'),

    # ── F: timers, keypad wait, index ops ──
    (0xF0FF, 0xF007, 'LD_VX_DT',  'LD',   'V{x:X}, DT'),
    (0xF0FF, 0xF00A, 'LD_VX_K',   'LD',   'V{x:X}, K'),
    (0xF0FF, 0xF015, 'LD_DT',     'LD',   'DT, V{x:X}'),
    (0xF0FF, 0xF018, 'LD_ST',     'LD',   'ST, V{x:X}'),
    (0xF0FF, 0xF01E, 'ADD_I',     'ADD',  'I, V{x:X}'),
    (0xF0FF, 0xF029, 'LD_F',      'LD',   'F, V{x:X}'),
    (0xF0FF, 0xF033, 'LD_B',      'LD',   'B, V{x:X}'),
    (0xF0FF, 0xF055, 'LD_MEM_VX', 'LD',   '[I], V{x:X}'),
    (0xF0FF, 0xF065, 'LD_VX_MEM', 'LD',   'V{x:X}, [I]'),
]]

# family → candidate entries, so a lookup scans at most 9 rows
_BY_FAMILY: Dict[int, List[OpcodeEntry]] = {}
for _entry in OPCODES:
    _BY_FAMILY.setdefault(_entry.match >> 12, []).append(_entry)


def lookup(word: int) -> Optional[OpcodeEntry]:
    """Return the table entry for an instruction word, or None."""
    word &= 0xFFFF
    for entry in _BY_FAMILY.get(word >> 12, ()):
        if word & entry.mask == entry.match:
            return entry
    return None


def decode_opcode(memory, pc: int) -> tuple:
    """Fetch and decode the word at pc.

    Returns: (mnem, fields)
    Raises: UnsupportedInstruction for words with no table entry;
            MemoryFault (from memory) if pc+1 is outside the address space.
    """
    word = memory.read16(pc)
    entry = lookup(word)
    if entry is None:
        raise UnsupportedInstruction(word, pc)
    return entry.mnem, decode_fields(word)


def format_instruction(word: int) -> str:
    """Assembler text for a word, e.g. ``LD V3, #2A``; unknown → ``DW #xxxx``."""
    entry = lookup(word)
    if entry is None:
        return f"DW   #{word & 0xFFFF:04X}"
    operands = entry.operands.format(**decode_fields(word)._asdict())
    return f"{entry.asm:4s} {operands}".rstrip()
