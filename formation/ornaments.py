# formation/ornaments.py
from typing import Optional

import numpy as np

from config import ORBIT_SPEED, ORBIT_THRESHOLD, FLOAT_THRESHOLD, PULSE_THRESHOLD
from formation.layout import OrnamentLayout
from formation.motion import advance_progress, lerp, rotate_y
from formation.state import FormationMode
from gesture.types import GestureClass

FLOAT_AMPLITUDE = 0.1
FLOAT_FREQ = 2.0
PULSE_SCALE = 1.5


class OrnamentGroup:
    """Instanced ornaments: per-instance position, euler rotation and uniform scale."""

    def __init__(self, layout: OrnamentLayout, progress: float = 1.0):
        n = len(layout.assembled)
        for name in ("dispersed", "assembled", "dispersed_rotation", "assembled_rotation", "color"):
            if getattr(layout, name).shape != (n, 3):
                raise ValueError(f"ornament {name} must be an (N, 3) array")

        self.dispersed = layout.dispersed.astype(np.float32)
        self.assembled = layout.assembled.astype(np.float32)
        self.dispersed_rotation = layout.dispersed_rotation.astype(np.float32)
        self.assembled_rotation = layout.assembled_rotation.astype(np.float32)
        self.color = layout.color.astype(np.float32)

        self.progress = np.full(n, progress, dtype=np.float32)
        self.hovered: Optional[int] = None
        self.positions = lerp(self.dispersed, self.assembled, self.progress)
        self.rotations = self._blend_rotation(self.progress)
        self.scales = np.ones(n, dtype=np.float32)

    def __len__(self):
        return len(self.progress)

    def _blend_rotation(self, p: np.ndarray) -> np.ndarray:
        # pitch and yaw only, roll stays at zero
        rot = np.zeros_like(self.dispersed_rotation)
        rot[:, :2] = lerp(self.dispersed_rotation[:, :2], self.assembled_rotation[:, :2], p)
        return rot

    def set_hover(self, index: Optional[int]) -> None:
        if index is not None and not 0 <= index < len(self):
            index = None
        self.hovered = index

    def update(self, dt: float, elapsed: float, mode: FormationMode, gesture: GestureClass) -> np.ndarray:
        self.progress = advance_progress(self.progress, mode, dt).astype(np.float32)
        p = self.progress
        n = len(p)

        pos = lerp(self.dispersed, self.assembled, p)
        rot = self._blend_rotation(p)

        # float while scattered, or under the pointer regardless of mode
        floating = p < FLOAT_THRESHOLD
        if self.hovered is not None:
            floating[self.hovered] = True
        bob = np.sin(elapsed * FLOAT_FREQ + np.arange(n)) * FLOAT_AMPLITUDE
        pos[:, 1] += np.where(floating, bob, 0.0)

        # whole tree turns together once formed
        orbiting = p > ORBIT_THRESHOLD
        if orbiting.any():
            angle = elapsed * ORBIT_SPEED
            pos[orbiting] = rotate_y(pos[orbiting], angle)
            rot[orbiting, 1] += angle

        scales = np.ones(n, dtype=np.float32)
        if gesture == GestureClass.OPEN_PALM:
            scales[p < PULSE_THRESHOLD] = PULSE_SCALE

        self.positions = pos
        self.rotations = rot
        self.scales = scales
        return self.positions
