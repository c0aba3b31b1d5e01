# formation/needles.py
import numpy as np

from config import EMERALD, GOLD, ORBIT_SPEED, ORBIT_THRESHOLD
from formation.layout import NeedleLayout
from formation.motion import advance_progress, lerp, rotate_y
from formation.state import FormationMode

WIND_AMPLITUDE = 0.1
WIND_HEIGHT_FREQ = 0.5


class NeedleCloud:
    """
    The needle cloud, stored as parallel arrays (one row per needle).

    Static: dispersed, assembled, size, speed.
    Per frame: progress, positions, colors, yaw.
    """

    def __init__(self, layout: NeedleLayout, progress: float = 1.0):
        n = len(layout.assembled)
        if layout.dispersed.shape != (n, 3) or layout.assembled.shape != (n, 3):
            raise ValueError("needle layout positions must be (N, 3) arrays of equal length")
        if layout.size.shape != (n,) or layout.speed.shape != (n,):
            raise ValueError("needle size/speed must have one entry per needle")

        self.dispersed = layout.dispersed.astype(np.float32)
        self.assembled = layout.assembled.astype(np.float32)
        self.size = layout.size.astype(np.float32)
        self.speed = layout.speed.astype(np.float32)

        self.progress = np.full(n, progress, dtype=np.float32)
        self.yaw = 0.0
        self.positions = lerp(self.dispersed, self.assembled, self.progress)
        self.colors = np.tile(np.asarray(EMERALD, dtype=np.float32), (n, 1))

    def __len__(self):
        return len(self.progress)

    def update(self, dt: float, elapsed: float, mode: FormationMode) -> np.ndarray:
        self.progress = advance_progress(self.progress, mode, dt).astype(np.float32)
        p = self.progress

        pos = lerp(self.dispersed, self.assembled, p)
        # wind sway, strongest when dispersed
        wind = np.sin(elapsed * self.speed + pos[:, 1] * WIND_HEIGHT_FREQ) * WIND_AMPLITUDE
        pos[:, 0] += wind * (1.0 - p)

        # the cloud keeps whatever yaw it reached; it only turns while formed
        if np.any(p > ORBIT_THRESHOLD):
            self.yaw += dt * ORBIT_SPEED
        if self.yaw:
            pos = rotate_y(pos, self.yaw)
        self.positions = pos

        self.colors = needle_colors(elapsed, self.speed)
        return self.positions


def needle_colors(elapsed: float, speed: np.ndarray) -> np.ndarray:
    """Emerald to gold shimmer; depends on time only, never on progress."""
    mix = (np.sin(elapsed * speed) * 0.5 + 0.5)[:, None]
    base = np.asarray(EMERALD, dtype=np.float32)
    glow = np.asarray(GOLD, dtype=np.float32)
    return (base + (glow - base) * mix).astype(np.float32)
