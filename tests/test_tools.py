"""
CHIP-8 Virtual Emulator — Disassembler, chip8kit CLI and Logging Tests
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest

import chip8kit
from chip8_virtual_emulator.disasm import Chip8Disassembler
from chip8_virtual_emulator.log_setup import setup_logging


def write_rom(tmp_path, *words, tail=b''):
    rom = tmp_path / "test.ch8"
    data = b''.join(w.to_bytes(2, 'big') for w in words) + tail
    rom.write_bytes(data)
    return rom


class TestDisassembler:

    def test_listing(self):
        text = Chip8Disassembler().listing(bytes([0x6A, 0x02, 0xA2, 0x2A, 0x00, 0x00]))
        assert text.splitlines() == [
            "$200: 6A 02   LD   VA, #02",
            "$202: A2 2A   LD   I, $22A",
            "$204: 00 00   DW   #0000",
        ]

    def test_trailing_byte(self):
        insts = Chip8Disassembler().disassemble(bytes([0x00, 0xE0, 0x7F]))
        assert len(insts) == 2
        assert insts[0].mnemonic == 'CLS'
        assert insts[1].mnemonic == 'DB'
        assert not insts[1].known
        assert insts[1].format() == "$202: 7F      DB   #7F"

    def test_base_address(self):
        inst = Chip8Disassembler().decode_one(bytes([0x12, 0x00]), 0, 0x300)
        assert inst.address == 0x300
        assert inst.text == "JP   $200"


class TestCli:

    def test_no_command_prints_help(self, capsys):
        assert chip8kit.main([]) == 0
        assert "commands:" in capsys.readouterr().out

    def test_info(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0x6A02, 0xA22A, tail=b'\x00')
        assert chip8kit.main(["info", str(rom)]) == 0
        out = capsys.readouterr().out
        assert "Size:      5 bytes ($200-$204)" in out
        assert "Fit:       OK" in out
        assert "Decodable: 2/3 words (66.7%)" in out

    def test_info_oversized(self, tmp_path, capsys):
        rom = tmp_path / "big.ch8"
        rom.write_bytes(bytes([0x00, 0xE0]) * 1800)
        assert chip8kit.main(["info", str(rom)]) == 0
        assert "TOO LARGE, 16 bytes" in capsys.readouterr().out

    def test_disasm_range_to_file(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0x00E0, 0x6A02, 0x1202)
        out_file = tmp_path / "out.asm"
        assert chip8kit.main(["disasm", str(rom), "--range", "0x202-0x206",
                              "-o", str(out_file)]) == 0
        lines = out_file.read_text(encoding="utf-8").splitlines()
        assert lines == ["$202: 6A 02   LD   VA, #02", "$204: 12 02   JP   $202"]
        assert "Disassembled 4 bytes" in capsys.readouterr().out

    def test_run_timeout(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0x6A05, 0x1202)
        assert chip8kit.main(["run", str(rom), "--steps", "10", "--regs"]) == 0
        out = capsys.readouterr().out
        assert "Stopped: TIMEOUT after 10 instructions at $202" in out
        assert "PC=202" in out
        assert "ticks=1 (0.02 s emulated)" in out

    def test_run_breakpoint_and_screen(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0x6000, 0xF029, 0xD005, 0x1206)
        assert chip8kit.main(["run", str(rom), "--break", "$206", "--screen"]) == 0
        out = capsys.readouterr().out
        assert "Stopped: BREAK after 3 instructions at $206" in out
        assert "████" in out

    def test_run_pressed_key_resolves_wait(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0xF30A, 0x1202)
        assert chip8kit.main(["run", str(rom), "--press", "B", "--steps", "5",
                              "--regs"]) == 0
        out = capsys.readouterr().out
        assert "V=[00 00 00 0B" in out

    def test_run_waiting_for_key(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0xF30A)
        assert chip8kit.main(["run", str(rom)]) == 0
        assert "Stopped: KEY_WAIT after 1 instructions" in capsys.readouterr().out

    def test_run_fault_exit_code(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0x00EE)
        assert chip8kit.main(["run", str(rom)]) == 1
        captured = capsys.readouterr()
        assert "Stopped: FAULT" in captured.out
        assert "underflow" in captured.err.lower()

    def test_run_missing_rom(self, tmp_path, capsys):
        assert chip8kit.main(["run", str(tmp_path / "missing.ch8")]) == 1
        assert "Load error" in capsys.readouterr().err

    def test_run_bad_key(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0x1200)
        assert chip8kit.main(["run", str(rom), "--press", "10"]) == 1
        assert "out of range" in capsys.readouterr().err

    def test_run_bad_tick_rate(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0x1200)
        assert chip8kit.main(["run", str(rom), "--steps-per-tick", "0"]) == 1
        assert "steps_per_tick" in capsys.readouterr().err

    def test_disasm_bad_range(self, tmp_path, capsys):
        rom = write_rom(tmp_path, 0x00E0)
        assert chip8kit.main(["disasm", str(rom), "--range", "zz"]) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_parse_hex(self):
        assert chip8kit._parse_hex("0x2A0") == 0x2A0
        assert chip8kit._parse_hex("$2A0") == 0x2A0
        assert chip8kit._parse_hex("2a0") == 0x2A0
        assert chip8kit._parse_hex(None) is None


class TestLogSetup:

    def test_plain_console_handler(self):
        logger = setup_logging(name="chip8_test_plain", rich_console=False)
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)
        assert logger.handlers[0].level == logging.WARNING

    def test_log_file_created(self, tmp_path):
        logger = setup_logging(name="chip8_test_file", log_dir=tmp_path / "logs")
        logger.debug("hello file")
        for h in logger.handlers:
            h.flush()
        files = list((tmp_path / "logs").glob("chip8_test_file_*.log"))
        assert len(files) == 1
        assert "hello file" in files[0].read_text(encoding="utf-8")
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)

    def test_second_call_reuses_logger(self):
        first = setup_logging(name="chip8_test_twice", rich_console=False)
        second = setup_logging(name="chip8_test_twice", rich_console=False)
        assert first is second
        assert len(second.handlers) == 1


class TestPackaging:

    def test_pyproject_metadata(self):
        root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        with open(os.path.join(root, "pyproject.toml"), encoding="utf-8") as f:
            lines = [line.strip() for line in f]
        assert 'chip8kit = "chip8kit:main"' in lines
        assert not any(line.startswith("readme") for line in lines)
        assert callable(chip8kit.main)
