"""
CHIP-8 Virtual Emulator — Delay / Sound Timer Peripheral

Two independent 8-bit down-counters:
  DT  — delay timer, read with Fx07, written with Fx15
  ST  — sound timer, written with Fx18; a tone plays while ST > 0

Both only ever move on tick(), which the host calls at a fixed 60 Hz
cadence independent of how many instructions run in between. Counters
stop at 0, they never wrap.

The host drives audio from two signals:
  - sound_active   level signal, True while ST > 0
  - tone stop      one-shot event on the tick where ST reaches 0;
                   returned by tick() and delivered to on_tone_stop()
                   callbacks
"""

import logging
from typing import Callable, List

log = logging.getLogger(__name__)


class TimerPeripheral:
    """Delay + sound timer model."""

    def __init__(self):
        self.delay: int = 0
        self.sound: int = 0
        self.ticks: int = 0            # tick() calls since reset
        self._tone_stop_callbacks: List[Callable] = []

    # --- Register access (Fx07 / Fx15 / Fx18) ---

    def set_delay(self, value: int):
        self.delay = value & 0xFF

    def set_sound(self, value: int):
        self.sound = value & 0xFF

    @property
    def sound_active(self) -> bool:
        """True while the tone should be audible."""
        return self.sound > 0

    # --- 60 Hz tick ---

    def tick(self) -> bool:
        """Decrement both timers once, clamped at 0.

        Returns True when the sound timer reached 0 on this call (the
        one-shot tone-stop event).
        """
        self.ticks += 1
        if self.delay > 0:
            self.delay -= 1

        stopped = False
        if self.sound > 0:
            self.sound -= 1
            if self.sound == 0:
                stopped = True
                log.debug("Tone stop at tick %d", self.ticks)
                for cb in self._tone_stop_callbacks:
                    cb()
        return stopped

    # --- External API ---

    def on_tone_stop(self, callback: Callable):
        """Register callback() for the tick where the sound timer hits 0."""
        self._tone_stop_callbacks.append(callback)

    def reset(self):
        """Zero both counters. Callbacks stay registered."""
        self.delay = 0
        self.sound = 0
        self.ticks = 0
