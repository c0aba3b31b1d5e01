# gesture_tree.py
import argparse
import logging

from config import HAND_LANDMARKER_MODEL
from formation.engine import FormationEngine
from formation.state import FormationContext
from gesture.classifier import (
    ClassificationError, GeminiGestureClassifier, LandmarkGestureClassifier,
)
from gesture.controller import GestureController
from scene.preview import run_preview

logger = logging.getLogger("gesture_tree")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Tree that assembles and scatters on hand gestures")
    parser.add_argument("photos", nargs="*", help="image files to hang on the tree (P key)")
    parser.add_argument("--classifier", choices=["gemini", "landmarks"], default="gemini",
                        help="remote Gemini model or local MediaPipe landmarks")
    parser.add_argument("--hand-model", default=HAND_LANDMARKER_MODEL,
                        help="MediaPipe hand_landmarker.task bundle for --classifier landmarks")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(levelname)s: %(message)s",
    )

    if args.classifier == "landmarks":
        try:
            classifier = LandmarkGestureClassifier(args.hand_model)
        except ClassificationError as e:
            logger.error("Cannot start the local classifier: %s", e)
            return 1
    else:
        classifier = GeminiGestureClassifier()

    context = FormationContext()
    engine = FormationEngine.build(context, seed=args.seed)
    controller = GestureController(context, classifier)

    run_preview(engine, controller, args.photos)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
