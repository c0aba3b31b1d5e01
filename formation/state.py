# formation/state.py
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from gesture.types import GestureClass


class FormationMode(str, Enum):
    DISPERSED = "DISPERSED"
    ASSEMBLED = "ASSEMBLED"


# Gestures that drive the mode; anything else leaves it alone
GESTURE_MODES = {
    GestureClass.OPEN_PALM: FormationMode.DISPERSED,
    GestureClass.CLOSED_FIST: FormationMode.ASSEMBLED,
}


def mode_after_gesture(mode: FormationMode, gesture: GestureClass) -> FormationMode:
    return GESTURE_MODES.get(gesture, mode)


@dataclass
class FormationContext:
    """
    Mode and gesture shared by the frame loop and the gesture controller.

    Writers: mode by anyone (last write wins), gesture only by the
    controller via publish_gesture(). Readers take snapshot() once per frame.
    """
    mode: FormationMode = FormationMode.ASSEMBLED
    gesture: GestureClass = GestureClass.NONE
    vision_enabled: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def set_mode(self, mode: FormationMode) -> None:
        with self.lock:
            self.mode = FormationMode(mode)

    def publish_gesture(self, gesture: GestureClass) -> FormationMode:
        with self.lock:
            self.gesture = gesture
            self.mode = mode_after_gesture(self.mode, gesture)
            return self.mode

    def clear_gesture(self) -> None:
        with self.lock:
            self.gesture = GestureClass.NONE

    def toggle_vision(self) -> bool:
        with self.lock:
            self.vision_enabled = not self.vision_enabled
            return self.vision_enabled

    def snapshot(self) -> Tuple[FormationMode, GestureClass]:
        with self.lock:
            return self.mode, self.gesture
