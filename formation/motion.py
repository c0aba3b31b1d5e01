# formation/motion.py
import numpy as np

from config import PROGRESS_RATE
from formation.state import FormationMode


def target_progress(mode: FormationMode) -> float:
    return 1.0 if mode == FormationMode.ASSEMBLED else 0.0


def approach_factor(dt: float, rate: float = PROGRESS_RATE) -> float:
    """Fraction of the remaining distance covered this frame, in [0, 1]."""
    return min(1.0, max(0.0, dt) * rate)


def approach(current, target, dt: float, rate: float = PROGRESS_RATE):
    """Exponential approach; works on floats and numpy arrays alike."""
    return current + (target - current) * approach_factor(dt, rate)


def advance_progress(progress, mode: FormationMode, dt: float, rate: float = PROGRESS_RATE):
    """
    progress <- progress + (target - progress) * min(1, dt * rate)

    A convex step between two values in [0, 1], so the result stays in
    [0, 1] and never passes the target.
    """
    return approach(progress, target_progress(mode), dt, rate)


def lerp(a, b, t):
    """Row-wise lerp. t may be a scalar or one weight per row."""
    t = np.asarray(t, dtype=np.float32)
    if t.ndim == 1:
        t = t[:, None]
    return a + (b - a) * t


def rotate_y(points: np.ndarray, angle) -> np.ndarray:
    """Rotate (N, 3) points about the vertical axis (x' = x cos - z sin, z' = x sin + z cos)."""
    c = np.cos(angle)
    s = np.sin(angle)
    out = np.array(points, dtype=np.float32, copy=True)
    x = points[..., 0]
    z = points[..., 2]
    out[..., 0] = x * c - z * s
    out[..., 2] = x * s + z * c
    return out
