# gesture/classifier.py
"""
Gesture classifiers: one encoded JPEG in, one GestureClass out.

Any failure (network, quota, unparseable answer, undecodable image) raises;
the controller treats every exception as a sampling failure and backs off.
"""
import json
import logging
import os
from typing import Optional

import cv2
import mediapipe as mp
import numpy as np
from google import genai
from google.genai import types

from config import (
    GEMINI_MODEL, GEMINI_API_KEY_ENV, HAND_LANDMARKER_MODEL, HAND_MIN_DETECTION_CONFIDENCE,
)
from gesture.landmarks import classify_landmarks
from gesture.types import GestureClass

logger = logging.getLogger(__name__)

GESTURE_PROMPT = """
Analyze the hand gesture. Return JSON.
- OPEN_PALM (fingers spread)
- CLOSED_FIST
- PINCH (thumb+index)
- NONE
"""


class ClassificationError(Exception):
    pass


class GestureClassifier:
    def classify(self, jpeg: bytes) -> GestureClass:
        raise NotImplementedError

    def close(self) -> None:
        pass


def parse_gesture_response(text: Optional[str]) -> GestureClass:
    """Decode the model's JSON answer. Empty answers mean no gesture."""
    if not text:
        return GestureClass.NONE
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"unparseable classifier response: {text[:80]!r}") from e
    if not isinstance(data, dict):
        raise ClassificationError(f"unexpected classifier response: {text[:80]!r}")
    value = data.get("gesture")
    if value is None:
        return GestureClass.NONE
    try:
        return GestureClass(value)
    except ValueError as e:
        raise ClassificationError(f"unknown gesture {value!r}") from e


def find_api_key() -> str:
    for name in GEMINI_API_KEY_ENV:
        key = os.environ.get(name)
        if key:
            return key
    return ""


class GeminiGestureClassifier(GestureClassifier):
    """Remote multimodal model; the answer is constrained to the gesture enum."""

    def __init__(self, api_key: Optional[str] = None, model: str = GEMINI_MODEL, client=None):
        self.api_key = find_api_key() if api_key is None else api_key
        self.model = model
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _config(self):
        return types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "gesture": types.Schema(
                        type=types.Type.STRING,
                        enum=[g.value for g in GestureClass],
                    ),
                },
            ),
        )

    def classify(self, jpeg: bytes) -> GestureClass:
        if not self.api_key and self._client is None:
            logger.warning("No API key found for Gemini, reporting NONE")
            return GestureClass.NONE

        response = self._get_client().models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_bytes(data=jpeg, mime_type="image/jpeg"),
                GESTURE_PROMPT,
            ],
            config=self._config(),
        )
        return parse_gesture_response(response.text)


def create_hand_landmarker(model_path: str, min_detection_confidence: float):
    """MediaPipe Tasks hand landmarker in single-image mode."""
    if not os.path.isfile(model_path):
        raise ClassificationError(f"hand landmarker model not found: {model_path}")
    options = mp.tasks.vision.HandLandmarkerOptions(
        base_options=mp.tasks.BaseOptions(model_asset_path=model_path),
        running_mode=mp.tasks.vision.RunningMode.IMAGE,
        num_hands=1,
        min_hand_detection_confidence=min_detection_confidence,
    )
    return mp.tasks.vision.HandLandmarker.create_from_options(options)


class LandmarkGestureClassifier(GestureClassifier):
    """Offline classifier: MediaPipe hand landmarks plus finger heuristics."""

    def __init__(
        self,
        model_path: str = HAND_LANDMARKER_MODEL,
        min_detection_confidence: float = HAND_MIN_DETECTION_CONFIDENCE,
        landmarker=None,
    ):
        if landmarker is None:
            landmarker = create_hand_landmarker(model_path, min_detection_confidence)
        self._landmarker = landmarker

    def classify(self, jpeg: bytes) -> GestureClass:
        frame = cv2.imdecode(np.frombuffer(jpeg, dtype=np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            raise ClassificationError("could not decode JPEG frame")

        h, w = frame.shape[:2]
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect(image)
        if not result.hand_landmarks:
            return GestureClass.NONE
        return classify_landmarks(result.hand_landmarks[0], w, h)

    def close(self) -> None:
        self._landmarker.close()
