# formation/engine.py
from dataclasses import dataclass
from typing import Optional

import numpy as np

from config import NEEDLE_COUNT, ORNAMENT_COUNT
from formation.emblem import Emblem
from formation.layout import emblem_layout, needle_layout, ornament_layout
from formation.needles import NeedleCloud
from formation.ornaments import OrnamentGroup
from formation.photos import PhotoPanelRecord, PhotoPanelSet
from formation.state import FormationContext, FormationMode
from gesture.types import GestureClass


@dataclass(frozen=True)
class FrameInfo:
    mode: FormationMode
    gesture: GestureClass
    elapsed: float


class FormationEngine:
    """
    Advances every animated group once per frame from a single read of the
    shared context. Pure arithmetic; never blocks.
    """

    def __init__(self, context: FormationContext,
                 needles: NeedleCloud, ornaments: OrnamentGroup,
                 emblem: Emblem, photos: PhotoPanelSet):
        self.context = context
        self.needles = needles
        self.ornaments = ornaments
        self.emblem = emblem
        self.photos = photos
        self.elapsed = 0.0

    @classmethod
    def build(cls, context: Optional[FormationContext] = None, seed: Optional[int] = None,
              needle_count: int = NEEDLE_COUNT, ornament_count: int = ORNAMENT_COUNT) -> "FormationEngine":
        context = context or FormationContext()
        rng = np.random.default_rng(seed)
        start = 1.0 if context.mode == FormationMode.ASSEMBLED else 0.0
        return cls(
            context,
            NeedleCloud(needle_layout(needle_count, rng), progress=start),
            OrnamentGroup(ornament_layout(ornament_count, rng), progress=start),
            Emblem(emblem_layout(rng), progress=start),
            PhotoPanelSet(rng),
        )

    def step(self, dt: float) -> FrameInfo:
        dt = max(0.0, dt)
        self.elapsed += dt
        mode, gesture = self.context.snapshot()

        self.needles.update(dt, self.elapsed, mode)
        self.ornaments.update(dt, self.elapsed, mode, gesture)
        self.emblem.update(dt, self.elapsed, mode)
        self.photos.update(dt, self.elapsed, mode, gesture)
        return FrameInfo(mode, gesture, self.elapsed)

    # manual / pointer input
    def set_mode(self, mode: FormationMode) -> None:
        self.context.set_mode(mode)

    def add_photo(self, url: str) -> PhotoPanelRecord:
        return self.photos.add(url)

    def hover_ornament(self, index: Optional[int]) -> None:
        self.ornaments.set_hover(index)

    def hover_photo(self, panel_id: Optional[str]) -> None:
        self.photos.set_hover(panel_id)
