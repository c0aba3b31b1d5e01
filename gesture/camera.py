# gesture/camera.py
import logging
import threading
from typing import Callable, Optional

import cv2
import numpy as np

from config import (
    CAM_PREFERRED_INDEX, CAM_W, CAM_H,
    CAM_INDEX_CANDIDATES, CAP_BACKENDS, MIRROR,
    SAMPLE_W, SAMPLE_H, JPEG_QUALITY,
)
from gesture.types import CameraConstraints

logger = logging.getLogger(__name__)

# Low resolution, front camera
PREFERRED = CameraConstraints(
    indices=[CAM_PREFERRED_INDEX],
    backends=list(CAP_BACKENDS),
    width=CAM_W,
    height=CAM_H,
)
# Any available video source
PERMISSIVE = CameraConstraints(
    indices=list(CAM_INDEX_CANDIDATES),
    backends=list(CAP_BACKENDS),
)


class CameraError(Exception):
    pass


class CameraBusyError(CameraError):
    """Device opened but cannot deliver frames (usually held by another process)."""


class CameraUnavailableError(CameraError):
    pass


def _release(cap) -> None:
    if cap is None:
        return
    try:
        cap.release()
    except Exception as e:
        logger.debug("Ignoring camera release error: %s", e)


class CameraStream:
    """
    Exclusive handle on one opened capture device.

    stop() is idempotent, never raises and never waits for a read. If a
    read is in flight it only detaches the device, and the reader
    releases it once cap.read() returns.
    """

    def __init__(self, cap, info: str = "", mirror: bool = MIRROR):
        self._cap = cap
        self._lock = threading.Lock()   # short holds only, never across cap.read()
        self._reading = False
        self._latest: Optional[np.ndarray] = None
        self.info = info
        self.mirror = mirror

    @property
    def live(self) -> bool:
        return self._cap is not None

    def _read(self):
        with self._lock:
            cap = self._cap
            if cap is None or self._reading:
                return None
            self._reading = True
        try:
            ok, frame = cap.read()
        finally:
            with self._lock:
                self._reading = False
                stopped = self._cap is None
            if stopped:
                self._release(cap)
        if stopped or not ok:
            return None
        return frame

    def _release(self, cap) -> None:
        _release(cap)
        logger.debug("Camera released: %s", self.info)

    def has_enough_data(self) -> bool:
        """True when a fresh frame is buffered and ready for read_still()."""
        try:
            frame = self._read()
        except cv2.error as e:
            logger.debug("Camera read error: %s", e)
            return False
        if frame is None:
            return False
        with self._lock:
            if self._cap is None:
                return False
            self._latest = frame
        return True

    def read_still(self, width: int = SAMPLE_W, height: int = SAMPLE_H) -> np.ndarray:
        with self._lock:
            frame, self._latest = self._latest, None
        if frame is None:
            frame = self._read()
        if frame is None:
            raise CameraError("no frame available")

        if self.mirror:
            frame = cv2.flip(frame, 1)
        h, w = frame.shape[:2]
        if (w, h) != (width, height):
            frame = cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)
        return frame

    def stop(self) -> None:
        with self._lock:
            cap, self._cap = self._cap, None
            self._latest = None
            reading = self._reading
        if cap is not None and not reading:
            self._release(cap)


def encode_jpeg(frame: np.ndarray, quality: int = JPEG_QUALITY) -> bytes:
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise CameraError("JPEG encode failed")
    return buf.tobytes()


def open_camera(constraints: CameraConstraints) -> CameraStream:
    """
    Try every index/backend pair allowed by the constraints.
    Raises CameraBusyError if something opened but could not be read.
    """
    busy_info = ""
    for idx in constraints.indices:
        for name, backend in constraints.backends:
            if backend is None:
                cap = cv2.VideoCapture(idx)
            else:
                cap = cv2.VideoCapture(idx, backend)

            if cap is not None and cap.isOpened():
                if constraints.width:
                    cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
                if constraints.height:
                    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
                ok, _ = cap.read()
                info = f"CAM idx={idx}, backend={name}"
                if ok:
                    return CameraStream(cap, info)
                busy_info = info

            _release(cap)

    if busy_info:
        raise CameraBusyError(f"{busy_info} opened but is not readable (device in use?)")
    raise CameraUnavailableError("no camera could be opened")


CameraOpener = Callable[[CameraConstraints], CameraStream]


def acquire_camera(opener: CameraOpener = open_camera) -> CameraStream:
    """Preferred constraints first, then any video source."""
    try:
        return opener(PREFERRED)
    except CameraError as e:
        logger.warning("Preferred camera constraints failed (%s), falling back to any video source", e)
    return opener(PERMISSIVE)
