"""
CHIP-8 Virtual Emulator — 64×32 Monochrome Display

Cells are stored row-major in a bytearray, one cell per byte, 0 = off,
1 = on. Sprites are XOR-blitted: each sprite row is one byte, MSB is the
leftmost pixel. Pixels that run past the right or bottom edge wrap to
the opposite edge.

Dirty flag protocol:
  - CLS and DRW set it (DRW sets it even if nothing changed)
  - the host calls consume_dirty() once per frame; it returns the flag
    and clears it
  - the core never clears it on its own
"""

from typing import List

from ..config import SCREEN_WIDTH, SCREEN_HEIGHT, SPRITE_WIDTH


class Display:
    """Pixel grid + redraw flag."""

    def __init__(self, width: int = SCREEN_WIDTH, height: int = SCREEN_HEIGHT):
        self.width = width
        self.height = height
        self.pixels = bytearray(width * height)
        self.dirty = True     # first frame always draws

    # --- Instruction side ---

    def clear(self):
        """CLS: all cells off, redraw needed."""
        self.pixels[:] = bytes(len(self.pixels))
        self.dirty = True

    def draw_sprite(self, x: int, y: int, rows: bytes) -> bool:
        """XOR ``rows`` onto the grid with its top-left corner at (x, y).

        Returns True if any lit cell was turned off (collision).
        """
        x %= self.width
        y %= self.height
        collision = False
        for dy, row in enumerate(rows):
            py = (y + dy) % self.height
            base = py * self.width
            for dx in range(SPRITE_WIDTH):
                if not row & (0x80 >> dx):
                    continue
                idx = base + (x + dx) % self.width
                if self.pixels[idx]:
                    collision = True
                self.pixels[idx] ^= 1
        self.dirty = True
        return collision

    # --- Host side ---

    def consume_dirty(self) -> bool:
        """Check-and-clear the redraw flag."""
        dirty = self.dirty
        self.dirty = False
        return dirty

    def pixel(self, x: int, y: int) -> bool:
        return bool(self.pixels[y * self.width + x])

    def rows(self) -> List[List[bool]]:
        """Grid as a list of rows of booleans (row-major)."""
        w = self.width
        return [[bool(c) for c in self.pixels[r * w:(r + 1) * w]]
                for r in range(self.height)]

    def lit_count(self) -> int:
        return sum(self.pixels)

    def render_text(self, on: str = '█', off: str = ' ') -> str:
        """Text rendering, one line per row."""
        w = self.width
        return '\n'.join(
            ''.join(on if c else off for c in self.pixels[r * w:(r + 1) * w])
            for r in range(self.height)
        )

    def reset(self):
        """Power-on state: blank grid, redraw pending."""
        self.pixels[:] = bytes(len(self.pixels))
        self.dirty = True
