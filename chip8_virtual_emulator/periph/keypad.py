"""
CHIP-8 Virtual Emulator — 16-Key Keypad Latches

Sixteen boolean latches ($0–$F). The host writes them from its own key
events at any time; instructions only read them (Ex9E, ExA1, Fx0A).

Conventional layout on a QWERTY keyboard:

  Keypad        Host keys
  1 2 3 C       1 2 3 4
  4 5 6 D       q w e r
  7 8 9 E       a s d f
  A 0 B F       z x c v

The host owns the mapping; DEFAULT_KEYMAP is provided for front ends
that want the usual one.
"""

from typing import Callable, Dict, List, Optional

from ..config import KEY_COUNT

DEFAULT_KEYMAP: Dict[str, int] = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}


class Keypad:
    """Keypad latch model.

    Change callbacks let a test harness or front end watch key state:
      keypad.on_change(lambda key, pressed: print(f"{key:X} {pressed}"))
    """

    def __init__(self, keymap: Optional[Dict[str, int]] = None):
        self._keys: List[bool] = [False] * KEY_COUNT
        self.keymap = dict(DEFAULT_KEYMAP if keymap is None else keymap)
        self._change_callbacks: List[Callable] = []

    # --- Host side ---

    def set_key(self, key: int, pressed: bool):
        """Set latch ``key`` ($0–$F) to pressed/released."""
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"Key index out of range: {key}")
        pressed = bool(pressed)
        old = self._keys[key]
        self._keys[key] = pressed
        if old != pressed:
            for cb in self._change_callbacks:
                cb(key, pressed)

    def press(self, key: int):
        self.set_key(key, True)

    def release(self, key: int):
        self.set_key(key, False)

    def set_host_key(self, host_key: str, pressed: bool) -> bool:
        """Translate a host key through the keymap. Returns False if unmapped."""
        key = self.keymap.get(host_key.lower())
        if key is None:
            return False
        self.set_key(key, pressed)
        return True

    def on_change(self, callback: Callable):
        """Register callback(key, pressed) for any latch change."""
        self._change_callbacks.append(callback)

    # --- Instruction side ---

    def is_pressed(self, key: int) -> bool:
        return self._keys[key & 0xF]

    def first_pressed(self) -> Optional[int]:
        """Lowest-indexed pressed key, or None."""
        for key, pressed in enumerate(self._keys):
            if pressed:
                return key
        return None

    def pressed_keys(self) -> List[int]:
        return [k for k, pressed in enumerate(self._keys) if pressed]

    def reset(self):
        """Release every latch (no callbacks fire)."""
        self._keys = [False] * KEY_COUNT
