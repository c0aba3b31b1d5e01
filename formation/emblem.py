# formation/emblem.py
import math

import numpy as np

from formation.layout import EmblemLayout, star_outline
from formation.motion import advance_progress, lerp
from formation.state import FormationMode

SPIN_DISPERSED = 2.0    # rad/s
SPIN_ASSEMBLED = 0.5
TILT_AMPLITUDE = 0.1
PULSE_AMPLITUDE = 0.05
DISPERSED_SIZE = 0.5


class Emblem:
    """The star on top: one body with its own progress, spin, pulse and glow."""

    def __init__(self, layout: EmblemLayout, progress: float = 1.0):
        self.dispersed = np.asarray(layout.dispersed, dtype=np.float32).reshape(3)
        self.assembled = np.asarray(layout.assembled, dtype=np.float32).reshape(3)
        self.outline = star_outline()

        self.progress = float(progress)
        self.position = lerp(self.dispersed, self.assembled, self.progress)
        self.rotation = np.zeros(3, dtype=np.float32)
        self.scale = 1.0
        self.emissive_intensity = 1.5

    def update(self, dt: float, elapsed: float, mode: FormationMode) -> np.ndarray:
        self.progress = float(advance_progress(self.progress, mode, dt))
        self.position = lerp(self.dispersed, self.assembled, self.progress)

        spin = SPIN_DISPERSED if mode == FormationMode.DISPERSED else SPIN_ASSEMBLED
        self.rotation[1] += dt * spin
        self.rotation[2] = math.sin(elapsed) * TILT_AMPLITUDE * self.progress

        pulse = 1 + math.sin(elapsed * 2) * PULSE_AMPLITUDE
        size = DISPERSED_SIZE if mode == FormationMode.DISPERSED else 1.0
        self.scale = pulse * size

        # heartbeat glow between 1.0 and 2.0
        self.emissive_intensity = 1.5 + math.sin(elapsed * 3) * 0.5
        return self.position
