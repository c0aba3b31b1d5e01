# formation/layout.py
"""
Static layouts: where every entity sits when dispersed and when assembled.

The assembled tree is a cone with its tip at y = +height/2 and its base
(radius = TREE_RADIUS) at y = -height/2. Everything random comes from the
Generator passed in, so a seed reproduces the whole scene.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from config import (
    TREE_HEIGHT, TREE_RADIUS, NEEDLE_COUNT, ORNAMENT_COUNT, ORNAMENT_PALETTE,
)


@dataclass
class NeedleLayout:
    dispersed: np.ndarray   # (N, 3)
    assembled: np.ndarray   # (N, 3)
    size: np.ndarray        # (N,)
    speed: np.ndarray       # (N,)


@dataclass
class OrnamentLayout:
    dispersed: np.ndarray           # (N, 3)
    assembled: np.ndarray           # (N, 3)
    dispersed_rotation: np.ndarray  # (N, 3) euler xyz
    assembled_rotation: np.ndarray  # (N, 3)
    color: np.ndarray               # (N, 3) rgb 0..1


@dataclass
class EmblemLayout:
    dispersed: np.ndarray   # (3,)
    assembled: np.ndarray   # (3,)


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def needle_layout(count: int = NEEDLE_COUNT, rng=None,
                  height: float = TREE_HEIGHT, radius: float = TREE_RADIUS) -> NeedleLayout:
    rng = _rng(rng)
    t = np.arange(count, dtype=np.float32) / max(count, 1)
    angle = t * np.pi * 60          # many turns
    r = t * radius
    assembled = np.stack([
        np.cos(angle) * r,
        (1 - t) * height - height / 2,
        np.sin(angle) * r,
    ], axis=1)
    assembled += rng.random((count, 3)) - 0.5    # volume jitter

    dispersed = (rng.random((count, 3)) - 0.5) * 30
    size = rng.random(count) * 0.3 + 0.1
    speed = rng.random(count) + 0.5
    return NeedleLayout(
        dispersed=dispersed.astype(np.float32),
        assembled=assembled.astype(np.float32),
        size=size.astype(np.float32),
        speed=speed.astype(np.float32),
    )


def ornament_layout(count: int = ORNAMENT_COUNT, rng=None,
                    height: float = TREE_HEIGHT, radius: float = TREE_RADIUS) -> OrnamentLayout:
    rng = _rng(rng)
    t = np.arange(count, dtype=np.float32) / max(count, 1)
    angle = t * np.pi * 25
    r = t * radius + 0.5            # just outside the needles
    assembled = np.stack([
        np.cos(angle) * r,
        (1 - t) * height - height / 2,
        np.sin(angle) * r,
    ], axis=1)
    assembled_rotation = np.zeros((count, 3))
    assembled_rotation[:, :2] = rng.random((count, 2))

    dispersed = (rng.random((count, 3)) - 0.5) * 25
    dispersed_rotation = np.zeros((count, 3))
    dispersed_rotation[:, :2] = rng.random((count, 2)) * np.pi

    palette = np.asarray(ORNAMENT_PALETTE, dtype=np.float32)
    color = palette[rng.integers(0, len(palette), size=count)]
    return OrnamentLayout(
        dispersed=dispersed.astype(np.float32),
        assembled=assembled.astype(np.float32),
        dispersed_rotation=dispersed_rotation.astype(np.float32),
        assembled_rotation=assembled_rotation.astype(np.float32),
        color=color,
    )


def emblem_layout(rng=None, height: float = TREE_HEIGHT) -> EmblemLayout:
    rng = _rng(rng)
    # dispersed: somewhere high above the scene
    dispersed = np.array([
        (rng.random() - 0.5) * 30,
        10 + rng.random() * 10,
        (rng.random() - 0.5) * 30,
    ], dtype=np.float32)
    assembled = np.array([0.0, height / 2, 0.0], dtype=np.float32)
    return EmblemLayout(dispersed=dispersed, assembled=assembled)


def star_outline(points: int = 5, outer: float = 1.5, inner: float = 0.6) -> np.ndarray:
    """Ring of 2*points (x, y) vertices alternating outer/inner radius, first one on -y."""
    i = np.arange(points * 2)
    angle = i / (points * 2) * np.pi * 2 - np.pi / 2
    r = np.where(i % 2 == 0, outer, inner)
    return np.stack([np.cos(angle) * r, np.sin(angle) * r], axis=1).astype(np.float32)


def photo_slot(rng=None) -> Tuple[Tuple[float, float, float], Tuple[float, float, float]]:
    """
    Random spot on the tree surface, slightly outside it, facing outward.
    Returns (position, rotation).
    """
    rng = _rng(rng)
    theta = float(rng.random() * np.pi * 2)
    y = float(rng.random() * 8 - 2)
    r = (1 - (y + 4) / 14) * 5      # cone radius at that height
    x = np.cos(theta) * r
    z = np.sin(theta) * r
    position = (float(x * 1.1), y, float(z * 1.1))
    rotation = (0.0, -theta + np.pi / 2, 0.0)
    return position, rotation
