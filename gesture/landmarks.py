# gesture/landmarks.py
from enum import IntEnum

import numpy as np

from config import PINCH_DIST_RATIO, OPEN_THUMB_SEP_RATIO
from gesture.types import GestureClass


class HandLandmark(IntEnum):
    """The 21-point hand model returned by MediaPipe's hand landmarker."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


def lm_xy(lm, w, h):
    return np.array([lm.x * w, lm.y * h], dtype=np.float32)

def dist(a, b) -> float:
    return float(np.linalg.norm(a - b))


def fingers_extended(landmarks, w, h):
    """
    Four fingers: extended when tip is above pip (image y grows downward).
    """
    lm = HandLandmark
    pts = {i: lm_xy(landmarks[i], w, h) for i in range(len(HandLandmark))}
    ext = {}
    for name, tip, pip in [
        ("index", lm.INDEX_FINGER_TIP, lm.INDEX_FINGER_PIP),
        ("middle", lm.MIDDLE_FINGER_TIP, lm.MIDDLE_FINGER_PIP),
        ("ring", lm.RING_FINGER_TIP, lm.RING_FINGER_PIP),
        ("pinky", lm.PINKY_TIP, lm.PINKY_PIP),
    ]:
        ext[name] = bool(pts[tip][1] < pts[pip][1])
    return ext, pts

def estimate_hand_size(pts):
    lm = HandLandmark
    return max(1e-6, dist(pts[lm.WRIST], pts[lm.MIDDLE_FINGER_MCP]))

def detect_pinch(pts, hand_size) -> bool:
    lm = HandLandmark
    d = dist(pts[lm.THUMB_TIP], pts[lm.INDEX_FINGER_TIP]) / hand_size
    return d < PINCH_DIST_RATIO

def detect_open_palm(ext, pts, hand_size) -> bool:
    if not all(ext.values()):
        return False
    # four fingers up but closed together is not an open palm
    lm = HandLandmark
    sep = dist(pts[lm.THUMB_TIP], pts[lm.INDEX_FINGER_TIP]) / hand_size
    return sep > OPEN_THUMB_SEP_RATIO

def detect_closed_fist(ext) -> bool:
    return not any(ext.values())


def classify_landmarks(landmarks, w, h) -> GestureClass:
    # Priority: open palm > fist > pinch (a fist also brings thumb and index together)
    ext, pts = fingers_extended(landmarks, w, h)
    hand_size = estimate_hand_size(pts)
    if detect_open_palm(ext, pts, hand_size):
        return GestureClass.OPEN_PALM
    if detect_closed_fist(ext):
        return GestureClass.CLOSED_FIST
    if detect_pinch(pts, hand_size):
        return GestureClass.PINCH
    return GestureClass.NONE
