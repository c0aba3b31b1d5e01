# gesture/controller.py
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import cv2

from config import (
    CAMERA_SETTLE_SEC, CAMERA_RETRY_SEC, CAMERA_MAX_RETRIES, SAMPLE_TICK_SEC,
)
from formation.state import FormationContext
from gesture.backoff import BackoffState
from gesture.camera import (
    CameraBusyError, CameraError, CameraOpener, CameraStream,
    acquire_camera, encode_jpeg, open_camera,
)
from gesture.classifier import GestureClassifier
from gesture.types import ControllerState, GestureClass

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Session:
    """One enable() call. Stale once its generation is no longer current."""
    generation: int
    cancelled: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None


class GestureController:
    """
    Owns the camera and the sampling timer; publishes classified gestures
    into the FormationContext.

    Every enable() starts a new session with a fresh generation number.
    Blocking steps (settle delay, camera open, retry wait, classification)
    run on the session's worker thread, and the generation is re-checked
    after each of them, so a session that was disabled or replaced in the
    meantime never attaches a stream or publishes a result.
    """

    def __init__(
        self,
        context: FormationContext,
        classifier: GestureClassifier,
        opener: CameraOpener = open_camera,
        clock: Callable[[], int] = now_ms,
        settle_sec: float = CAMERA_SETTLE_SEC,
        retry_sec: float = CAMERA_RETRY_SEC,
        max_retries: int = CAMERA_MAX_RETRIES,
        tick_sec: float = SAMPLE_TICK_SEC,
        backoff: Optional[BackoffState] = None,
    ):
        self.context = context
        self.classifier = classifier
        self.opener = opener
        self.clock = clock
        self.settle_sec = settle_sec
        self.retry_sec = retry_sec
        self.max_retries = max_retries
        self.tick_sec = tick_sec
        self.backoff = backoff or BackoffState()

        self.lock = threading.RLock()
        self.state = ControllerState.DISABLED
        self.stream: Optional[CameraStream] = None
        self.retry_count = 0
        self._generation = 0
        self._session: Optional[Session] = None

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def enable(self, start: bool = True) -> Session:
        """Start (or restart) acquisition. start=False leaves driving to the caller."""
        with self.lock:
            self._end_session()
            self._teardown()
            self._generation += 1
            session = Session(self._generation)
            self._session = session
            self.state = ControllerState.ACQUIRING
            self.retry_count = 0

        if start:
            session.thread = threading.Thread(
                target=self._run, args=(session,),
                name=f"GestureController-{session.generation}", daemon=True,
            )
            session.thread.start()
        return session

    def disable(self) -> None:
        with self.lock:
            self._end_session()
            self._generation += 1
            self._teardown()
            self.state = ControllerState.DISABLED
            self.retry_count = 0
            self.backoff.reset()
        # A gesture seen before the camera went away no longer describes the user
        self.context.clear_gesture()
        logger.info("Gesture controller disabled")

    def close(self) -> None:
        self.disable()
        self.classifier.close()

    def is_current(self, session: Session) -> bool:
        return session.generation == self._generation and not session.cancelled.is_set()

    def _end_session(self) -> None:
        if self._session is not None:
            self._session.cancelled.set()
            self._session = None

    def _teardown(self) -> None:
        stream, self.stream = self.stream, None
        if stream is not None:
            stream.stop()

    def _run(self, session: Session) -> None:
        try:
            if session.cancelled.wait(self.settle_sec):
                return
            if not self.acquire(session):
                return
            while not session.cancelled.wait(self.tick_sec):
                self.sample(session)
        except Exception:
            logger.exception("Gesture controller session %d crashed", session.generation)
            with self.lock:
                if self.is_current(session):
                    self._teardown()
                    self.state = ControllerState.IDLE

    # ------------------------------------------------------------------
    # acquisition
    # ------------------------------------------------------------------
    def acquire(self, session: Session) -> bool:
        """
        ACQUIRING / RETRY_WAIT loop. Returns True once STREAMING.
        Gives up (IDLE) on a non-busy error or when retries run out.
        """
        retry_count = 0
        while True:
            with self.lock:
                if not self.is_current(session):
                    return False
                self._teardown()
                self.state = ControllerState.ACQUIRING
                self.retry_count = retry_count

            try:
                stream = acquire_camera(self.opener)
            except CameraBusyError as e:
                if retry_count >= self.max_retries:
                    logger.error("Camera still busy after %d retries: %s", retry_count, e)
                    self._give_up(session)
                    return False
                with self.lock:
                    if not self.is_current(session):
                        return False
                    self.state = ControllerState.RETRY_WAIT
                logger.info("Camera locked (%s), retrying in %.1fs (attempt %d)",
                            e, self.retry_sec, retry_count + 1)
                if session.cancelled.wait(self.retry_sec):
                    return False
                retry_count += 1
                continue
            except CameraError as e:
                logger.error("Error accessing camera: %s", e)
                self._give_up(session)
                return False

            with self.lock:
                if self.is_current(session):
                    self.stream = stream
                    self.state = ControllerState.STREAMING
                    logger.info("Camera streaming: %s", stream.info)
                    return True

            # Disabled or restarted while the device was opening
            stream.stop()
            logger.info("Discarded camera opened for stale session %d", session.generation)
            return False

    def _give_up(self, session: Session) -> None:
        with self.lock:
            if self.is_current(session):
                self._teardown()
                self.state = ControllerState.IDLE

    # ------------------------------------------------------------------
    # sampling
    # ------------------------------------------------------------------
    def sample(self, session: Optional[Session] = None) -> Optional[GestureClass]:
        """
        One sampling tick. Returns the published gesture, or None when the
        tick was skipped or the classification failed.
        """
        now = self.clock()
        with self.lock:
            if self.state != ControllerState.STREAMING or self.stream is None:
                return None
            if session is not None and not self.is_current(session):
                return None
            if not self.backoff.due(now):
                return None
            stream = self.stream
            generation = self._generation

        if not stream.has_enough_data():
            return None
        try:
            jpeg = encode_jpeg(stream.read_still())
        except (CameraError, cv2.error) as e:
            logger.warning("Frame capture failed: %s", e)
            return None

        with self.lock:
            # admission: check and stamp together so two ticks cannot both dispatch
            if generation != self._generation or not self.backoff.due(now):
                return None
            self.backoff.mark(now)

        try:
            gesture = self.classifier.classify(jpeg)
        except Exception as e:
            with self.lock:
                if generation != self._generation:
                    return None
                delay = self.backoff.failure()
            logger.warning("Vision classifier error, backing off to %d ms: %s", delay, e)
            return None

        with self.lock:
            if generation != self._generation:
                return None
            self.backoff.success()
            mode = self.context.publish_gesture(gesture)
        logger.info("Gesture %s -> mode %s", gesture.value, mode.value)
        return gesture

    def status(self) -> str:
        with self.lock:
            info = self.stream.info if self.stream is not None else "-"
            return f"{self.state.value} | backoff {self.backoff.backoff_ms} ms | {info}"
