"""
CHIP-8 Virtual Emulator — Main Emulator Class

This is the machine-state aggregate. It integrates:
  - CPU registers + return stack (cpu/regs.py)
  - 4K memory with font table (mem/memory.py, mem/font.py)
  - Opcode decoder (cpu/decoder.py)
  - ALU helpers (cpu/alu.py)
  - Peripherals: delay/sound timers, keypad, display

Execution model (one step() call):
  1. If a wait-for-key (Fx0A) is pending, poll the keypad once and return
  2. Fetch the word at PC, decode it
  3. Execute the handler → update registers, memory, peripherals
  4. Handler leaves PC at an absolute target (JP/CALL/RET) or advances it
     by 2, or by 4 when a skip is taken

Timers are not touched by step(). The host calls tick() at 60 Hz.

Stop reasons from run():
  TIMEOUT:   max_steps executed
  BREAK:     breakpoint address hit
  KEY_WAIT:  Fx0A pending and no key is down
  FAULT:     a Chip8Fault was raised (kept in last_fault)
"""

import logging
import random
from enum import Enum
from pathlib import Path
from typing import Optional, Set, Union

from .config import (
    MEMORY_SIZE, ADDRESS_MASK, PROGRAM_START, DEFAULT_STEPS_PER_TICK,
    INSTRUCTION_BYTES,
)
from .cpu.regs import Registers, VF
from .cpu.decoder import decode_opcode, format_instruction
from .cpu import alu
from .faults import Chip8Fault, MemoryFault
from .mem.font import glyph_address
from .mem.memory import Memory
from .periph.display import Display
from .periph.keypad import Keypad
from .periph.timer import TimerPeripheral

log = logging.getLogger(__name__)

STEP = INSTRUCTION_BYTES
SKIP = INSTRUCTION_BYTES * 2

# Handlers that always set PC to a target instead of falling through
NO_FALLTHROUGH = frozenset({'JP', 'JP_V0', 'RET'})


class StopReason(Enum):
    TIMEOUT = 'TIMEOUT'
    BREAK = 'BREAK'
    KEY_WAIT = 'KEY_WAIT'
    FAULT = 'FAULT'


class Chip8Emulator:
    """CHIP-8 virtual machine.

    Usage:
        emu = Chip8Emulator()
        emu.load_program_file('pong.ch8')
        while running:
            emu.step()                  # as often as the host likes
            if frame_due:
                emu.tick()              # 60 Hz
                if emu.consume_redraw():
                    render(emu.display.rows())
                audio(emu.sound_active)

    Pass ``seed`` (or your own ``rng``) for reproducible RND results.
    """

    def __init__(self, seed: Optional[int] = None,
                 rng: Optional[random.Random] = None):
        # Core components
        self.regs = Registers()
        self.mem = Memory()

        # Peripherals
        self.timer = TimerPeripheral()
        self.keypad = Keypad()
        self.display = Display()

        self.rng = rng if rng is not None else random.Random(seed)

        # Fx0A: destination register while waiting for a key, else None
        self._awaiting_key: Optional[int] = None

        # Breakpoints: set of PC addresses that trigger BREAK
        self._breakpoints: Set[int] = set()

        self.steps: int = 0
        self.last_fault: Optional[Chip8Fault] = None

        # Trace output
        self._trace = False
        self._trace_output = []

        # Instruction dispatch table (built in _build_dispatch)
        self._dispatch = self._build_dispatch()

        self.mem.load_font()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_program(self, data: bytes) -> int:
        """Load a ROM image at $200. Oversized images are truncated."""
        size = self.mem.load_program(data)
        log.info("Program loaded: %d bytes", size)
        return size

    def load_program_file(self, path: Union[str, Path]) -> int:
        """Load a ROM file. Raises ProgramLoadFailure if it can't be read."""
        size = self.mem.load_program_file(path)
        log.info("Program loaded from %s: %d bytes", path, size)
        return size

    # ══════════════════════════════════════════════
    # Host interface
    # ══════════════════════════════════════════════

    @property
    def awaiting_key(self) -> Optional[int]:
        """Destination register of a pending Fx0A, or None."""
        return self._awaiting_key

    @property
    def sound_active(self) -> bool:
        return self.timer.sound_active

    def set_key(self, key: int, pressed: bool):
        self.keypad.set_key(key, pressed)

    def consume_redraw(self) -> bool:
        """True once per display change; clears the dirty flag."""
        return self.display.consume_dirty()

    def tick(self) -> bool:
        """60 Hz timer tick. Returns True on the tick the tone stops."""
        return self.timer.tick()

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction.

        Returns None after executing, KEY_WAIT while Fx0A finds no key,
        BREAK when PC is on a breakpoint (nothing executed). A call that
        only resolves a pending Fx0A returns None and is not counted in
        ``steps``.

        Raises UnsupportedInstruction, StackFault or MemoryFault; the
        machine state is left as it was before the faulting instruction.
        """
        if self._awaiting_key is not None:
            return None if self._poll_key() else StopReason.KEY_WAIT

        pc = self.regs.PC
        if pc in self._breakpoints:
            return StopReason.BREAK

        mnem, fields = decode_opcode(self.mem, pc)
        if mnem not in NO_FALLTHROUGH:
            # the next word must exist before anything is committed
            self._checked_pc(pc + STEP)

        if self._trace:
            line = (f"${pc:03X}: {fields.word:04X}  "
                    f"{format_instruction(fields.word):20s} {self.regs.display()}")
            self._trace_output.append(line)
            log.debug(line)

        self._dispatch[mnem](fields)
        self.steps += 1

        if self._awaiting_key is not None and not self._poll_key():
            return StopReason.KEY_WAIT
        return None

    def run(self, max_steps: int = 1_000_000,
            steps_per_tick: int = DEFAULT_STEPS_PER_TICK) -> StopReason:
        """Headless driver: step until a stop condition, ticking the timers
        once every ``steps_per_tick`` executed instructions.

        Faults are caught, logged and kept in last_fault.
        """
        if steps_per_tick < 1:
            raise ValueError("steps_per_tick must be >= 1")
        executed = 0
        self.last_fault = None
        while executed < max_steps:
            before = self.steps
            try:
                reason = self.step()
            except Chip8Fault as e:
                self.last_fault = e
                log.error("Emulation stopped: %s", e)
                return StopReason.FAULT
            executed += self.steps - before
            if reason is not None:
                log.info("Stopped after %d steps: %s", executed, reason.value)
                return reason
            if self.steps != before and executed % steps_per_tick == 0:
                self.tick()
        log.info("Stopped after %d steps: %s", executed, StopReason.TIMEOUT.value)
        return StopReason.TIMEOUT

    def _poll_key(self) -> bool:
        """Single keypad scan for a pending Fx0A. Resolves it if a key is down."""
        key = self.keypad.first_pressed()
        if key is None:
            return False
        self.regs.V[self._awaiting_key] = key
        self._awaiting_key = None
        self._advance()
        return True

    @staticmethod
    def _checked_pc(new_pc: int) -> int:
        """Validate a PC value before it is committed."""
        if not 0 <= new_pc < MEMORY_SIZE:
            raise MemoryFault(new_pc, MEMORY_SIZE)
        return new_pc

    def _advance(self, delta: int = STEP):
        self.regs.PC = self._checked_pc(self.regs.PC + delta)

    @staticmethod
    def _index_addr(base: int, offset: int = 0) -> int:
        """Index-relative address, wrapped to the 4K space."""
        return (base + offset) % MEMORY_SIZE

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(fields), see cpu/decoder.Fields

    def _build_dispatch(self) -> dict:
        """Build mnemonic → handler dispatch table."""
        return {
            # ── System / flow ──
            'CLS':       self._op_cls,
            'RET':       self._op_ret,
            'JP':        self._op_jp,
            'CALL':      self._op_call,
            'JP_V0':     self._op_jp_v0,

            # ── Skips ──
            'SE_IMM':    self._op_se_imm,
            'SNE_IMM':   self._op_sne_imm,
            'SE_REG':    self._op_se_reg,
            'SNE_REG':   self._op_sne_reg,
            'SKP':       self._op_skp,
            'SKNP':      self._op_sknp,

            # ── Loads / immediates ──
            'LD_IMM':    self._op_ld_imm,
            'ADD_IMM':   self._op_add_imm,
            'LD_REG':    self._op_ld_reg,

            # ── ALU ──
            'OR':        self._op_or,
            'AND':       self._op_and,
            'XOR':       self._op_xor,
            'ADD_REG':   self._op_add_reg,
            'SUB':       self._op_sub,
            'SUBN':      self._op_subn,
            'SHR':       self._op_shr,
            'SHL':       self._op_shl,
            'RND':       self._op_rnd,

            # ── Index / memory ──
            'LD_I':      self._op_ld_i,
            'ADD_I':     self._op_add_i,
            'LD_F':      self._op_ld_f,
            'LD_B':      self._op_ld_b,
            'LD_MEM_VX': self._op_ld_mem_vx,
            'LD_VX_MEM': self._op_ld_vx_mem,

            # ── Peripherals ──
            'DRW':       self._op_drw,
            'LD_VX_DT':  self._op_ld_vx_dt,
            'LD_DT':     self._op_ld_dt,
            'LD_ST':     self._op_ld_st,
            'LD_VX_K':   self._op_ld_vx_k,
        }

    # ── System / flow ──

    def _op_cls(self, f):
        self.display.clear()
        self._advance()

    def _op_ret(self, f):
        self.regs.PC = self.regs.pop_return()

    def _op_jp(self, f):
        self.regs.PC = f.nnn

    def _op_call(self, f):
        self.regs.push_return(self._checked_pc(self.regs.PC + STEP))
        self.regs.PC = f.nnn

    def _op_jp_v0(self, f):
        self.regs.PC = (f.nnn + self.regs.V[0]) & ADDRESS_MASK

    # ── Skips ──

    def _skip_if(self, cond: bool):
        self._advance(SKIP if cond else STEP)

    def _op_se_imm(self, f):
        self._skip_if(self.regs.V[f.x] == f.kk)

    def _op_sne_imm(self, f):
        self._skip_if(self.regs.V[f.x] != f.kk)

    def _op_se_reg(self, f):
        self._skip_if(self.regs.V[f.x] == self.regs.V[f.y])

    def _op_sne_reg(self, f):
        self._skip_if(self.regs.V[f.x] != self.regs.V[f.y])

    def _op_skp(self, f):
        self._skip_if(self.keypad.is_pressed(self.regs.V[f.x] & 0xF))

    def _op_sknp(self, f):
        self._skip_if(not self.keypad.is_pressed(self.regs.V[f.x] & 0xF))

    # ── Loads / immediates ──

    def _op_ld_imm(self, f):
        self.regs.V[f.x] = f.kk
        self._advance()

    def _op_add_imm(self, f):
        # no carry flag for 7xkk
        self.regs.V[f.x] = (self.regs.V[f.x] + f.kk) & 0xFF
        self._advance()

    def _op_ld_reg(self, f):
        self.regs.V[f.x] = self.regs.V[f.y]
        self._advance()

    # ── ALU ──

    def _op_or(self, f):
        self.regs.V[f.x] |= self.regs.V[f.y]
        self._advance()

    def _op_and(self, f):
        self.regs.V[f.x] &= self.regs.V[f.y]
        self._advance()

    def _op_xor(self, f):
        self.regs.V[f.x] ^= self.regs.V[f.y]
        self._advance()

    def _store_with_flag(self, x: int, result: int, flag: int):
        # result first, flag last: VF as destination ends up holding the flag
        self.regs.V[x] = result
        self.regs.V[VF] = flag
        self._advance()

    def _op_add_reg(self, f):
        result, flag = alu.add8(self.regs.V[f.x], self.regs.V[f.y])
        self._store_with_flag(f.x, result, flag)

    def _op_sub(self, f):
        result, flag = alu.sub8(self.regs.V[f.x], self.regs.V[f.y])
        self._store_with_flag(f.x, result, flag)

    def _op_subn(self, f):
        result, flag = alu.sub8(self.regs.V[f.y], self.regs.V[f.x])
        self._store_with_flag(f.x, result, flag)

    def _op_shr(self, f):
        result, flag = alu.shr8(self.regs.V[f.x])
        self._store_with_flag(f.x, result, flag)

    def _op_shl(self, f):
        result, flag = alu.shl8(self.regs.V[f.x])
        self._store_with_flag(f.x, result, flag)

    def _op_rnd(self, f):
        self.regs.V[f.x] = self.rng.randint(0, 0xFF) & f.kk
        self._advance()

    # ── Index / memory ──

    def _op_ld_i(self, f):
        self.regs.I = f.nnn
        self._advance()

    def _op_add_i(self, f):
        self.regs.I = self._index_addr(self.regs.I, self.regs.V[f.x])
        self._advance()

    def _op_ld_f(self, f):
        self.regs.I = glyph_address(self.regs.V[f.x])
        self._advance()

    def _op_ld_b(self, f):
        digits = alu.bcd3(self.regs.V[f.x])
        for i, digit in enumerate(digits):
            self.mem.write8(self._index_addr(self.regs.I, i), digit)
        self._advance()

    def _op_ld_mem_vx(self, f):
        for i in range(f.x + 1):
            self.mem.write8(self._index_addr(self.regs.I, i), self.regs.V[i])
        self.regs.I = self._index_addr(self.regs.I, f.x + 1)
        self._advance()

    def _op_ld_vx_mem(self, f):
        for i in range(f.x + 1):
            self.regs.V[i] = self.mem.read8(self._index_addr(self.regs.I, i))
        self.regs.I = self._index_addr(self.regs.I, f.x + 1)
        self._advance()

    # ── Peripherals ──

    def _op_drw(self, f):
        sprite = bytes(self.mem.read8(self._index_addr(self.regs.I, row))
                       for row in range(f.n))
        collision = self.display.draw_sprite(self.regs.V[f.x], self.regs.V[f.y], sprite)
        self.regs.V[VF] = 1 if collision else 0
        self._advance()

    def _op_ld_vx_dt(self, f):
        self.regs.V[f.x] = self.timer.delay
        self._advance()

    def _op_ld_dt(self, f):
        self.timer.set_delay(self.regs.V[f.x])
        self._advance()

    def _op_ld_st(self, f):
        self.timer.set_sound(self.regs.V[f.x])
        self._advance()

    def _op_ld_vx_k(self, f):
        # PC stays on this instruction until _poll_key resolves the wait
        self._awaiting_key = f.x

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Add a breakpoint at PC address. step() returns BREAK there."""
        self._breakpoints.add(addr % MEMORY_SIZE)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr % MEMORY_SIZE)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Enable instruction trace recording (also logged at DEBUG)."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """Full emulator reset. Memory is cleared and the font reloaded;
        the program must be loaded again."""
        self.regs.reset()
        self.mem.clear()
        self.mem.load_font()
        self.timer.reset()
        self.keypad.reset()
        self.display.reset()
        self._awaiting_key = None
        self.steps = 0
        self.last_fault = None
        self._breakpoints.clear()
        self._trace_output.clear()
