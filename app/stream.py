# stream.py: live webcam happiness meter
import sys
import time
import logging

import cv2
import numpy as np

from happylens.config import load_config
from happylens.core import HappinessAnalyzer, first_face
from happylens.detector import FaceMeshDetector

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("happylens.stream")

WINDOW_NAME = "HappyLens"


def main() -> int:
    scoring, stream = load_config()
    logger.info("Using camera: %s, window size: %s", stream.camera, stream.window_size)

    cap = cv2.VideoCapture(stream.camera)
    if not cap.isOpened():
        logger.error("Cannot open camera %s", stream.camera)
        return 1

    detector = FaceMeshDetector(static_image_mode=False, max_num_faces=stream.max_num_faces)
    analyzer = HappinessAnalyzer(config=scoring, detector=detector)
    analyzer.renderer.mirror = stream.mirror
    show_landmarks = stream.show_landmarks
    paused = False
    score, face = 0, None
    last_update = 0.0

    try:
        with detector:
            while True:
                key = cv2.waitKey(1) & 0xFF
                if key == ord("q"):
                    break
                if key == ord("l"):
                    show_landmarks = not show_landmarks
                if key == ord(" "):
                    paused = not paused
                    logger.info("Camera %s", "paused" if paused else "resumed")
                if paused:
                    continue

                ret, frame = cap.read()
                if not ret:
                    logger.warning("No frame received, check the camera.")
                    break
                frame = cv2.resize(frame, tuple(stream.window_size))
                h, w = frame.shape[:2]

                now = time.monotonic()
                if now - last_update >= stream.min_interval_s:
                    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                    face = first_face(analyzer.detect(rgb))
                    score = analyzer.score(face.landmarks, w, h).score if face else 0
                    last_update = now

                # detection runs on the raw frame; display and overlay are mirrored
                view = np.ascontiguousarray(cv2.flip(frame, 1)) if stream.mirror else frame
                if show_landmarks:
                    view = analyzer.annotate(view, face)
                view = analyzer.draw_meter(view, score)

                cv2.imshow(WINDOW_NAME, view)
    finally:
        cap.release()
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    sys.exit(main())
