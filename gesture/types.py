# gesture/types.py
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class GestureClass(str, Enum):
    OPEN_PALM = "OPEN_PALM"
    CLOSED_FIST = "CLOSED_FIST"
    PINCH = "PINCH"
    NONE = "NONE"


class ControllerState(str, Enum):
    DISABLED = "DISABLED"
    ACQUIRING = "ACQUIRING"
    STREAMING = "STREAMING"
    RETRY_WAIT = "RETRY_WAIT"
    IDLE = "IDLE"              # enabled, but acquisition gave up


@dataclass(frozen=True)
class CameraConstraints:
    """Which devices to try and what to ask of them. None means "don't care"."""
    indices: List[int] = field(default_factory=lambda: [0])
    backends: List[Tuple[str, Optional[int]]] = field(default_factory=lambda: [("DEFAULT", None)])
    width: Optional[int] = None
    height: Optional[int] = None
