import numpy as np
import pytest

from formation.state import FormationContext
from gesture.camera import CameraBusyError, CameraUnavailableError
from gesture.classifier import GestureClassifier
from gesture.controller import GestureController
from gesture.types import GestureClass


class FakeStream:
    def __init__(self, info="fake", ready=True):
        self.info = info
        self.ready = ready
        self.stop_calls = 0

    @property
    def stopped(self):
        return self.stop_calls > 0

    def has_enough_data(self):
        return self.ready and not self.stopped

    def read_still(self, width=320, height=240):
        return np.zeros((height, width, 3), dtype=np.uint8)

    def stop(self):
        self.stop_calls += 1


class FakeOpener:
    """Plays back a script of results: a FakeStream or an exception per call."""

    def __init__(self, *script, hook=None):
        self.script = list(script)
        self.calls = []
        self.opened = []
        self.hook = hook

    def __call__(self, constraints):
        self.calls.append(constraints)
        if self.hook is not None:
            self.hook(len(self.calls))
        result = self.script.pop(0) if self.script else CameraUnavailableError("no camera")
        if isinstance(result, Exception):
            raise result
        self.opened.append(result)
        return result


class FakeClassifier(GestureClassifier):
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0
        self.closed = False

    def classify(self, jpeg):
        assert jpeg[:2] == b"\xff\xd8"    # JPEG SOI marker
        self.calls += 1
        result = self.results.pop(0) if self.results else GestureClass.NONE
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, now=10_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def context():
    return FormationContext()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_controller(context, clock):
    def make(opener, classifier=None, **kwargs):
        kwargs.setdefault("settle_sec", 0.0)
        kwargs.setdefault("retry_sec", 0.0)
        return GestureController(
            context,
            classifier or FakeClassifier(),
            opener=opener,
            clock=clock,
            **kwargs,
        )
    return make


def busy():
    return CameraBusyError("device in use")
