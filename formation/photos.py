# formation/photos.py
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from config import ORBIT_SPEED, PROGRESS_RATE
from formation.layout import photo_slot
from formation.motion import approach, rotate_y
from formation.state import FormationMode
from gesture.types import GestureClass

Vec3 = Tuple[float, float, float]

DRIFT_AMPLITUDE = 5.0
DRIFT_RATE = 1.0
SPIN_RATE = 0.2
SCALE_RATE = 5.0
HOVER_SCALE = 1.2
ZOOM_SCALE = 2.5


@dataclass(frozen=True)
class PhotoPanelRecord:
    id: str
    url: str
    position: Vec3
    rotation: Vec3
    scale: float = 1.0


@dataclass
class PhotoPanel:
    """Runtime transform of one panel; the record stays untouched."""
    record: PhotoPanelRecord
    position: np.ndarray = field(init=False)
    rotation: np.ndarray = field(init=False)
    scale: float = field(init=False)
    hovered: bool = False
    zoomed: bool = False

    def __post_init__(self):
        self.position = np.array(self.record.position, dtype=np.float32)
        self.rotation = np.array(self.record.rotation, dtype=np.float32)
        self.scale = float(self.record.scale)

    def update(self, dt: float, elapsed: float, mode: FormationMode, gesture: GestureClass) -> None:
        base = self.record.position
        base_rot = self.record.rotation

        if mode == FormationMode.DISPERSED:
            drift = np.sin(elapsed + base[0]) * DRIFT_AMPLITUDE
            self.position[1] = approach(self.position[1], base[1] + drift, dt, DRIFT_RATE)
            self.rotation[2] += dt * SPIN_RATE
        else:
            angle = elapsed * ORBIT_SPEED
            target = rotate_y(np.array(base, dtype=np.float32), angle)
            self.position = approach(self.position, target, dt, PROGRESS_RATE).astype(np.float32)
            self.rotation[1] = approach(self.rotation[1], base_rot[1] - angle, dt, PROGRESS_RATE)
            self.rotation[2] = approach(self.rotation[2], base_rot[2], dt, PROGRESS_RATE)

        s = 1.0
        if self.hovered:
            s = HOVER_SCALE
        if gesture == GestureClass.PINCH and self.hovered:
            s = ZOOM_SCALE
            self.zoomed = True
        elif gesture != GestureClass.PINCH:
            self.zoomed = False
        self.scale = float(approach(self.scale, s, dt, SCALE_RATE))


class PhotoPanelSet:
    """Append-only list of user photos."""

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.panels: List[PhotoPanel] = []
        self._by_id: Dict[str, PhotoPanel] = {}
        self.hovered: Optional[str] = None

    def __len__(self):
        return len(self.panels)

    def __iter__(self):
        return iter(self.panels)

    @property
    def records(self) -> List[PhotoPanelRecord]:
        return [p.record for p in self.panels]

    def add(self, url: str) -> PhotoPanelRecord:
        position, rotation = photo_slot(self.rng)
        panel_id = uuid.uuid4().hex[:9]
        while panel_id in self._by_id:
            panel_id = uuid.uuid4().hex[:9]
        record = PhotoPanelRecord(id=panel_id, url=url, position=position, rotation=rotation)
        panel = PhotoPanel(record)
        self.panels.append(panel)
        self._by_id[panel_id] = panel
        return record

    def get(self, panel_id: str) -> Optional[PhotoPanel]:
        return self._by_id.get(panel_id)

    def set_hover(self, panel_id: Optional[str]) -> None:
        if self.hovered is not None and self.hovered in self._by_id:
            self._by_id[self.hovered].hovered = False
        self.hovered = panel_id if panel_id in self._by_id else None
        if self.hovered is not None:
            self._by_id[self.hovered].hovered = True

    def update(self, dt: float, elapsed: float, mode: FormationMode, gesture: GestureClass) -> None:
        for panel in self.panels:
            panel.update(dt, elapsed, mode, gesture)
