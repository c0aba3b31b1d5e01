# config.py
import cv2

# Camera: preferred source is the front (user-facing) camera at low resolution
CAM_PREFERRED_INDEX = 0
CAM_W, CAM_H = 320, 240

# Permissive fallback: any of these indices, any of these backends
CAM_INDEX_CANDIDATES = [0, 1, 2]
CAP_BACKENDS = [
    ("DSHOW", cv2.CAP_DSHOW),
    ("MSMF", cv2.CAP_MSMF),
    ("V4L2", cv2.CAP_V4L2),
    ("DEFAULT", None),
]
MIRROR = True

# Acquisition lifecycle
CAMERA_SETTLE_SEC = 0.1       # let a previous camera release at OS level
CAMERA_RETRY_SEC = 1.0        # wait after "device busy"
CAMERA_MAX_RETRIES = 2

# Sampling / backoff (milliseconds unless noted)
SAMPLE_TICK_SEC = 1.0
SAMPLE_BASE_INTERVAL_MS = 3000   # keeps the classifier under rate limits
BACKOFF_STEP_MS = 5000
BACKOFF_MAX_MS = 60000
SAMPLE_W, SAMPLE_H = 320, 240
JPEG_QUALITY = 60

# Remote classifier
GEMINI_MODEL = "gemini-2.5-flash"
GEMINI_API_KEY_ENV = ("GEMINI_API_KEY", "API_KEY")

# Local classifier: MediaPipe hand landmarker model bundle (download from the
# MediaPipe model zoo, "hand_landmarker.task")
HAND_LANDMARKER_MODEL = "models/hand_landmarker.task"
HAND_MIN_DETECTION_CONFIDENCE = 0.5
# thresholds (normalized by hand size)
PINCH_DIST_RATIO = 0.30
OPEN_THUMB_SEP_RATIO = 0.42

# Formation
PROGRESS_RATE = 2.0           # per second
ORBIT_SPEED = 0.1             # rad/s, whole tree
ORBIT_THRESHOLD = 0.8         # progress above which the tree orbits
FLOAT_THRESHOLD = 0.5         # ornaments float below this progress
PULSE_THRESHOLD = 0.1         # open palm pulses ornaments below this progress

TREE_HEIGHT = 14.0
TREE_RADIUS = 5.0
NEEDLE_COUNT = 15000
ORNAMENT_COUNT = 150

# Colors (RGB, 0..1)
EMERALD = (0.0, 0.34, 0.29)
GOLD = (1.0, 0.84, 0.0)
ORNAMENT_PALETTE = [
    (1.0, 0.843, 0.0),      # gold
    (0.753, 0.753, 0.753),  # silver
    (0.698, 0.133, 0.133),  # deep red
    (0.0, 0.341, 0.294),    # emerald
]

# Preview window
WIN_W, WIN_H = 960, 720
CAMERA_DISTANCE = 22.0
FOV_DEG = 50.0
FPS = 60
PREVIEW_NEEDLE_STRIDE = 5     # draw every Nth needle
HOVER_PICK_PX = 18
