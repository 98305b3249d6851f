#!/usr/bin/env python3
"""
chip8kit — CHIP-8 Emulator Toolkit
==================================

One CLI for everything:
    chip8kit run     — Run a ROM headless and report where it stopped
    chip8kit disasm  — Disassemble a ROM
    chip8kit info    — ROM summary (size, fit, instruction coverage)

Usage:
    python chip8kit.py <command> [options]
    python chip8kit.py <command> --help

Examples:
    python chip8kit.py run pong.ch8 --steps 5000 --screen
    python chip8kit.py run test.ch8 --seed 1 --press 5 --break 0x2A0 --regs
    python chip8kit.py run game.ch8 --trace -v --log-file logs
    python chip8kit.py disasm pong.ch8 --range 0x200-0x240
    python chip8kit.py info pong.ch8
"""

import argparse
import logging
import sys
from pathlib import Path

from chip8_virtual_emulator import Chip8Emulator, StopReason, Chip8Fault
from chip8_virtual_emulator.config import (
    PROGRAM_START, MAX_PROGRAM_SIZE, DEFAULT_STEPS_PER_TICK, TICK_HZ,
)
from chip8_virtual_emulator.disasm import Chip8Disassembler
from chip8_virtual_emulator.log_setup import setup_logging

__version__ = "0.4.0"


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="chip8kit",
        description="CHIP-8 Emulator Toolkit — run, disassemble, inspect ROMs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  run        Run a ROM headless (no window, no audio)
  disasm     Disassemble ROM bytes to CHIP-8 mnemonics
  info       Identify and summarize a ROM file
""",
    )
    parser.add_argument("--version", action="version", version=f"chip8kit {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run a ROM headless")
    p_run.add_argument("rom", help="Input ROM file")
    p_run.add_argument("--steps", type=int, default=100_000,
                       help="Maximum instructions to execute (default: 100000)")
    p_run.add_argument("--steps-per-tick", type=int, default=DEFAULT_STEPS_PER_TICK,
                       help=f"Instructions per 60 Hz timer tick (default: {DEFAULT_STEPS_PER_TICK})")
    p_run.add_argument("--seed", type=int, default=None,
                       help="Seed for RND (default: unseeded)")
    p_run.add_argument("--press", action="append", default=[], metavar="KEY",
                       help="Hold keypad key (hex 0-F) down for the whole run; repeatable")
    p_run.add_argument("--break", dest="breakpoints", action="append", default=[],
                       metavar="ADDR", help="Stop when PC reaches ADDR (hex); repeatable")
    p_run.add_argument("--watch", action="append", default=[], metavar="ADDR",
                       help="Log every write to ADDR (hex); repeatable")
    p_run.add_argument("--trace", action="store_true",
                       help="Print the instruction trace after the run")
    p_run.add_argument("--screen", action="store_true",
                       help="Print the display as text after the run")
    p_run.add_argument("--regs", action="store_true",
                       help="Print registers and timers after the run")
    p_run.add_argument("--log-file", default=None, metavar="DIR",
                       help="Also write a DEBUG log file into DIR")
    p_run.add_argument("-v", "--verbose", action="store_true",
                       help="Show INFO log messages on the console")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble a ROM")
    p_dis.add_argument("input", help="Input ROM file")
    p_dis.add_argument("--range", help="Address range START-END (hex), e.g. 0x200-0x240")
    p_dis.add_argument("-o", "--output", help="Output file (default: stdout)")

    # ── info ─────────────────────────────────────────────────────────────
    p_info = sub.add_parser("info", help="Identify and summarize a ROM file")
    p_info.add_argument("input", help="Input ROM file")

    # ── Parse and dispatch ───────────────────────────────────────────────
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    handler = COMMANDS[args.command]
    try:
        return handler(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def _parse_hex(s):
    """Parse hex string with optional 0x or $ prefix."""
    if s is None:
        return None
    s = s.strip()
    if s.startswith("0x") or s.startswith("0X"):
        return int(s, 16)
    if s.startswith("$"):
        return int(s[1:], 16)
    return int(s, 16)


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args):
    log_dir = Path(args.log_file) if args.log_file else None
    console_level = logging.INFO if args.verbose else logging.WARNING
    log = setup_logging(console_level=console_level, log_dir=log_dir)

    emu = Chip8Emulator(seed=args.seed)
    try:
        emu.load_program_file(args.rom)
    except Chip8Fault as e:
        print(f"Load error: {e}", file=sys.stderr)
        return 1

    try:
        for key in args.press:
            emu.set_key(_parse_hex(key), True)
        for addr in args.breakpoints:
            emu.add_breakpoint(_parse_hex(addr))
        for addr in args.watch:
            emu.mem.add_watchpoint(
                _parse_hex(addr),
                lambda a, old, new: log.info(
                    "write $%03X: %02X -> %02X (PC=$%03X)", a, old, new, emu.regs.PC),
            )
    except (ValueError, Chip8Fault) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    emu.enable_trace(args.trace)
    reason = emu.run(max_steps=args.steps, steps_per_tick=args.steps_per_tick)

    print(f"Stopped: {reason.value} after {emu.steps} instructions at ${emu.regs.PC:03X}")
    if args.regs:
        print(emu.regs.display())
        print(f"DT={emu.timer.delay:02X} ST={emu.timer.sound:02X} "
              f"sound={'on' if emu.sound_active else 'off'} "
              f"ticks={emu.timer.ticks} ({emu.timer.ticks / TICK_HZ:.2f} s emulated)")
    if args.screen:
        print(emu.display.render_text())
    if args.trace:
        print(emu.get_trace())

    if reason is StopReason.FAULT:
        print(f"Fault: {emu.last_fault}", file=sys.stderr)
        return 1
    return 0


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args):
    with open(args.input, "rb") as f:
        data = f.read()

    start_off, end_off = 0, len(data)
    if args.range:
        parts = args.range.replace("-", " ").split()
        start = _parse_hex(parts[0])
        end = _parse_hex(parts[1]) if len(parts) > 1 else start + 64
        start_off = max(start - PROGRAM_START, 0)
        end_off = min(max(end - PROGRAM_START, start_off), len(data))

    chunk = data[start_off:end_off]
    output = Chip8Disassembler().listing(chunk, PROGRAM_START + start_off)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        print(f"Disassembled {len(chunk)} bytes -> {args.output}")
    else:
        print(output)
    return 0


# ── info ─────────────────────────────────────────────────────────────────
def cmd_info(args):
    with open(args.input, "rb") as f:
        data = f.read()

    insts = Chip8Disassembler().disassemble(data)
    known = sum(1 for i in insts if i.known)

    print(f"File:      {args.input}")
    print(f"Size:      {len(data)} bytes (${PROGRAM_START:03X}-${PROGRAM_START + max(len(data), 1) - 1:03X})")
    if len(data) > MAX_PROGRAM_SIZE:
        print(f"Fit:       TOO LARGE, {len(data) - MAX_PROGRAM_SIZE} bytes would be truncated")
    else:
        print(f"Fit:       OK ({MAX_PROGRAM_SIZE - len(data)} bytes free)")
    if insts:
        print(f"Decodable: {known}/{len(insts)} words ({100.0 * known / len(insts):.1f}%)")
        print("Entry:")
        for inst in insts[:8]:
            print(f"  {inst.format()}")
    return 0


COMMANDS = {
    "run": cmd_run,
    "disasm": cmd_disasm,
    "info": cmd_info,
}


if __name__ == "__main__":
    sys.exit(main())
