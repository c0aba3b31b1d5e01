import time

import cv2

from conftest import FakeClassifier, FakeOpener, FakeStream, busy
from formation.state import FormationMode
from gesture.camera import PERMISSIVE, PREFERRED, CameraUnavailableError
from gesture.classifier import ClassificationError
from gesture.types import ControllerState, GestureClass


def streaming(make_controller, classifier=None, **kwargs):
    stream = FakeStream()
    controller = make_controller(FakeOpener(stream), classifier, **kwargs)
    session = controller.enable(start=False)
    assert controller.acquire(session)
    return controller, session, stream


# --- acquisition ------------------------------------------------------------

def test_preferred_constraints_first(make_controller):
    opener = FakeOpener(FakeStream())
    controller = make_controller(opener)
    session = controller.enable(start=False)

    assert controller.acquire(session)
    assert controller.state == ControllerState.STREAMING
    assert opener.calls == [PREFERRED]


def test_falls_back_to_permissive_constraints(make_controller):
    stream = FakeStream()
    opener = FakeOpener(CameraUnavailableError("no 320x240"), stream)
    controller = make_controller(opener)
    session = controller.enable(start=False)

    assert controller.acquire(session)
    assert opener.calls == [PREFERRED, PERMISSIVE]
    assert controller.stream is stream


def test_busy_camera_retried_then_streams(make_controller):
    stream = FakeStream()
    opener = FakeOpener(busy(), busy(), stream)
    controller = make_controller(opener)
    session = controller.enable(start=False)

    assert controller.acquire(session)
    assert controller.state == ControllerState.STREAMING
    assert controller.retry_count == 1


def test_busy_camera_gives_up_after_two_retries(make_controller):
    opener = FakeOpener(*[busy() for _ in range(6)])
    controller = make_controller(opener)
    session = controller.enable(start=False)

    assert not controller.acquire(session)
    assert controller.state == ControllerState.IDLE
    assert controller.stream is None
    # three attempts, each preferred + permissive
    assert len(opener.calls) == 6


def test_non_busy_failure_goes_idle_without_retry(make_controller):
    opener = FakeOpener(CameraUnavailableError("a"), CameraUnavailableError("b"))
    controller = make_controller(opener)
    session = controller.enable(start=False)

    assert not controller.acquire(session)
    assert controller.state == ControllerState.IDLE
    assert len(opener.calls) == 2


def test_disable_during_open_releases_new_stream(make_controller, context):
    stream = FakeStream()
    controller = None

    def disable_mid_open(call_no):
        controller.disable()

    opener = FakeOpener(stream, hook=disable_mid_open)
    controller = make_controller(opener)
    session = controller.enable(start=False)

    assert not controller.acquire(session)
    assert stream.stopped
    assert controller.stream is None
    assert controller.state == ControllerState.DISABLED


def test_reenable_during_open_discards_old_session_stream(make_controller):
    first, second = FakeStream("first"), FakeStream("second")
    controller = None
    sessions = []

    def restart_once(call_no):
        if call_no == 1:
            sessions.append(controller.enable(start=False))

    opener = FakeOpener(first, second, hook=restart_once)
    controller = make_controller(opener)
    old = controller.enable(start=False)

    assert not controller.acquire(old)
    assert first.stopped

    assert controller.acquire(sessions[0])
    assert controller.stream is second
    assert not second.stopped


def test_disable_releases_stream_and_is_idempotent(make_controller):
    controller, _, stream = streaming(make_controller)

    controller.disable()
    controller.disable()

    assert stream.stop_calls == 1
    assert controller.stream is None
    assert controller.state == ControllerState.DISABLED


def test_reacquire_tears_down_previous_stream(make_controller):
    first, second = FakeStream("first"), FakeStream("second")
    controller = make_controller(FakeOpener(first, second))
    assert controller.acquire(controller.enable(start=False))

    assert controller.acquire(controller.enable(start=False))
    assert first.stopped
    assert controller.stream is second


# --- sampling ---------------------------------------------------------------

def test_sample_publishes_gesture_and_mode(make_controller, context, clock):
    context.set_mode(FormationMode.DISPERSED)
    classifier = FakeClassifier(GestureClass.CLOSED_FIST, GestureClass.NONE)
    controller, session, _ = streaming(make_controller, classifier)

    assert controller.sample(session) == GestureClass.CLOSED_FIST
    assert context.mode == FormationMode.ASSEMBLED

    clock.advance(3000)
    assert controller.sample(session) == GestureClass.NONE
    assert context.mode == FormationMode.ASSEMBLED
    assert context.gesture == GestureClass.NONE


def test_open_palm_disperses(make_controller, context):
    controller, session, _ = streaming(make_controller, FakeClassifier(GestureClass.OPEN_PALM))
    controller.sample(session)
    assert context.mode == FormationMode.DISPERSED
    assert context.gesture == GestureClass.OPEN_PALM


def test_pinch_keeps_mode(make_controller, context):
    controller, session, _ = streaming(make_controller, FakeClassifier(GestureClass.PINCH))
    controller.sample(session)
    assert context.mode == FormationMode.ASSEMBLED
    assert context.gesture == GestureClass.PINCH


def test_sample_respects_interval(make_controller, clock):
    classifier = FakeClassifier()
    controller, session, _ = streaming(make_controller, classifier)

    controller.sample(session)
    clock.advance(2999)
    assert controller.sample(session) is None
    clock.advance(1)
    controller.sample(session)
    assert classifier.calls == 2


def test_timestamp_recorded_before_classifier_returns(make_controller, clock):
    controller = None
    seen = []

    class ReentrantClassifier(FakeClassifier):
        def classify(self, jpeg):
            seen.append(controller.backoff.last_sample_ms)
            # a tick arriving while this call is outstanding must not dispatch
            seen.append(controller.sample())
            return GestureClass.NONE

    controller, session, _ = streaming(make_controller, ReentrantClassifier())
    controller.sample(session)

    assert seen == [clock.now, None]


def test_failure_backs_off_and_keeps_gesture(make_controller, context, clock):
    classifier = FakeClassifier(GestureClass.PINCH, ClassificationError("quota"))
    controller, session, _ = streaming(make_controller, classifier)

    controller.sample(session)
    clock.advance(3000)
    assert controller.sample(session) is None

    assert context.gesture == GestureClass.PINCH
    assert controller.backoff.backoff_ms == 5000

    clock.advance(3000 + 4999)
    assert controller.sample(session) is None
    assert classifier.calls == 2


def test_any_exception_from_classifier_is_a_sampling_failure(make_controller):
    controller, session, _ = streaming(make_controller, FakeClassifier(RuntimeError("network down")))
    assert controller.sample(session) is None
    assert controller.backoff.backoff_ms == 5000


def test_backoff_saturates_and_resets(make_controller, clock):
    failures = [ClassificationError("x") for _ in range(13)]
    classifier = FakeClassifier(*failures, GestureClass.NONE)
    controller, session, _ = streaming(make_controller, classifier)

    for _ in range(13):
        controller.sample(session)
        clock.advance(3000 + controller.backoff.backoff_ms)
    assert controller.backoff.backoff_ms == 60000

    controller.sample(session)
    assert classifier.calls == 14
    assert controller.backoff.backoff_ms == 0


def test_no_sample_when_stream_not_ready(make_controller):
    classifier = FakeClassifier()
    controller, session, stream = streaming(make_controller, classifier)
    stream.ready = False

    assert controller.sample(session) is None
    assert classifier.calls == 0
    # not ready does not consume the slot
    stream.ready = True
    controller.sample(session)
    assert classifier.calls == 1


def test_bad_frame_skips_tick_and_keeps_streaming(make_controller):
    class BrokenFrameStream(FakeStream):
        broken = True

        def read_still(self, width=320, height=240):
            if self.broken:
                self.broken = False
                raise cv2.error("resize failed")
            return super().read_still(width, height)

    classifier = FakeClassifier(GestureClass.PINCH)
    stream = BrokenFrameStream()
    controller = make_controller(FakeOpener(stream), classifier)
    session = controller.enable(start=False)
    assert controller.acquire(session)

    assert controller.sample(session) is None
    assert controller.state == ControllerState.STREAMING
    assert controller.backoff.backoff_ms == 0
    # the slot was not consumed, so the next tick samples right away
    assert controller.sample(session) == GestureClass.PINCH


def test_no_sample_unless_streaming(make_controller):
    classifier = FakeClassifier()
    controller = make_controller(FakeOpener(), classifier)
    assert controller.sample() is None
    controller.enable(start=False)
    assert controller.sample() is None
    assert classifier.calls == 0


def test_result_after_disable_is_dropped(make_controller, context):
    controller = None

    class DisablingClassifier(FakeClassifier):
        def classify(self, jpeg):
            controller.disable()
            return GestureClass.OPEN_PALM

    controller, session, _ = streaming(make_controller, DisablingClassifier())
    assert controller.sample(session) is None
    assert context.mode == FormationMode.ASSEMBLED
    assert context.gesture == GestureClass.NONE


def test_disable_resets_gesture_and_backoff(make_controller, context, clock):
    classifier = FakeClassifier(GestureClass.PINCH, ClassificationError("x"))
    controller, session, _ = streaming(make_controller, classifier)
    controller.sample(session)
    clock.advance(3000)
    controller.sample(session)

    controller.disable()

    assert context.gesture == GestureClass.NONE
    assert controller.backoff.backoff_ms == 0


def test_manual_mode_wins_regardless_of_controller(make_controller, context):
    controller = make_controller(FakeOpener(*[busy() for _ in range(6)]))
    assert not controller.acquire(controller.enable(start=False))

    context.set_mode(FormationMode.DISPERSED)
    assert context.mode == FormationMode.DISPERSED


def test_close_disables_and_closes_classifier(make_controller):
    classifier = FakeClassifier()
    controller, _, stream = streaming(make_controller, classifier)
    controller.close()
    assert stream.stopped
    assert classifier.closed


# --- threaded session -------------------------------------------------------

def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_background_session_samples_and_stops(make_controller, context):
    stream = FakeStream()
    classifier = FakeClassifier(GestureClass.OPEN_PALM)
    controller = make_controller(FakeOpener(stream), classifier, tick_sec=0.01)

    session = controller.enable()
    assert wait_for(lambda: context.mode == FormationMode.DISPERSED)

    controller.disable()
    session.thread.join(timeout=2.0)
    assert not session.thread.is_alive()
    assert stream.stopped
