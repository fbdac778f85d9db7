# happylens/core.py
import math
import logging
from typing import Iterable, Optional, Tuple
from datetime import datetime, timezone

import cv2
import numpy as np
from PIL import Image

from happylens.config import ScoringConfig
from happylens.geometry import (
    check_frame_size,
    classify_points,
    coerce_landmarks,
    eye_narrowing,
    mouth_curvature,
    mouth_width_ratio,
    normalize_curvature,
    summarize_region,
)
from happylens.models import AnalysisResult, Face, ScoreResult, ScoreStatus
from happylens.render import LandmarkRenderer, blend

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = ScoringConfig()


# ---------- scoring ----------
def combine_signals(mouth_curv: float, eye_narrow: float, mouth_width: float,
                    config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """
    Weighted sum -> clamp [0,1] -> logistic around 0.5 -> nearest multiple of 10.
    Raises ArithmeticError on non-finite input so callers can fall back to 0.
    """
    raw = (config.mouth_weight * mouth_curv
           + config.eye_weight * eye_narrow
           + config.width_weight * mouth_width)
    if not math.isfinite(raw):
        raise ArithmeticError(f"non-finite raw score: {raw}")
    raw = float(np.clip(raw, 0.0, 1.0))
    adjusted = 100.0 / (1.0 + math.exp(-config.logistic_steepness * (raw - 0.5)))
    # half-up rounding to 0, 10, 20, ...
    stepped = math.floor(adjusted / 10.0 + 0.5) * 10
    return int(np.clip(stepped, 0, 100))


def score_landmarks(landmarks, width: float, height: float,
                    config: ScoringConfig = DEFAULT_CONFIG) -> ScoreResult:
    """
    Score one LandmarkSet. Sparse or degenerate input never raises: it comes
    back as a ScoreResult with score 0 and a non-OK status. Only structurally
    malformed calls raise MalformedInputError.
    """
    points = coerce_landmarks(landmarks)
    check_frame_size(width, height)

    groups = classify_points(points)
    if len(groups.mouth) < config.min_region_points or len(groups.eyes) < config.min_region_points:
        logger.debug("Insufficient landmarks for happiness analysis: mouth=%d, eyes=%d",
                     len(groups.mouth), len(groups.eyes))
        return ScoreResult(score=0, status=ScoreStatus.INSUFFICIENT_LANDMARKS)

    mouth = summarize_region(groups.mouth)
    eyes = summarize_region(groups.eyes)

    try:
        if mouth is None:
            curv, width_sig = 0.0, 0.0
        else:
            raw_curv = mouth_curvature(mouth.left_corner, mouth.top_center, mouth.right_corner,
                                       min_distance=config.min_distance)
            if not math.isfinite(raw_curv):
                raise ArithmeticError(f"non-finite mouth curvature: {raw_curv}")
            curv = normalize_curvature(raw_curv, config.curvature_limit)
            width_sig = mouth_width_ratio(mouth.left_corner, mouth.right_corner, width)

        eye_sig = eye_narrowing(eyes, config.eye_ratio_narrow, config.eye_ratio_wide,
                                min_distance=config.min_distance)

        signals = (curv, eye_sig, width_sig)
        if not all(math.isfinite(s) for s in signals):
            raise ArithmeticError(f"non-finite signal in {signals}")
        score = combine_signals(curv, eye_sig, width_sig, config)
    except ArithmeticError as e:
        logger.warning("Happiness score calculation failed, defaulting to 0: %s", e)
        return ScoreResult(score=0, status=ScoreStatus.NON_FINITE)

    return ScoreResult(
        score=score,
        status=ScoreStatus.OK,
        mouth_curvature=round(curv, 4),
        eye_narrowing=round(eye_sig, 4),
        mouth_width=round(width_sig, 4),
    )


def calculate_happiness_score(landmarks, width: float, height: float,
                              config: ScoringConfig = DEFAULT_CONFIG) -> int:
    return score_landmarks(landmarks, width, height, config).score


def first_face(candidates: Optional[Iterable[Face]]) -> Optional[Face]:
    """First candidate (in preference order) whose landmark set is non-empty."""
    for face in candidates or ():
        if face is not None and face.landmarks:
            return face
    return None


# ---------- presentation ----------
def label_for(score: int) -> Tuple[str, str]:
    if score < 20:
        return "Feeling down", "😔"
    elif score < 40:
        return "Neutral", "😐"
    elif score < 60:
        return "Slightly happy", "🙂"
    elif score < 80:
        return "Happy", "😊"
    else:
        return "Very happy", "😁"


def meter_color(score: int) -> Tuple[int, int, int]:
    """BGR gradient: red at 0, yellow at 50, green at 100."""
    value = float(np.clip(score, 0, 100))
    if value < 50:
        r, g = 255, round(value / 50 * 255)
    else:
        r, g = round((1 - (value - 50) / 50) * 255), 255
    return 0, int(g), int(r)


class HappinessAnalyzer:
    """
    Landmark-geometry happiness pipeline:
      - mouth curvature (smile / frown)
      - eye narrowing (Duchenne marker)
      - mouth width relative to the frame
      - combined, logistic-smoothed 0..100 score in steps of 10

    The detector is borrowed, never owned: open and close it outside.
    """

    def __init__(self, config: Optional[ScoringConfig] = None, detector=None,
                 renderer: Optional[LandmarkRenderer] = None):
        self.config = (config or ScoringConfig()).validate()
        self.detector = detector
        self.renderer = renderer or LandmarkRenderer()

    # ---------- utils ----------
    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

    # ---------- scoring ----------
    def score(self, landmarks, width: float, height: float) -> ScoreResult:
        return score_landmarks(landmarks, width, height, self.config)

    def detect(self, image_rgb: np.ndarray) -> list:
        if self.detector is None:
            raise RuntimeError("No landmark detector attached to this analyzer.")
        return self.detector.detect(image_rgb)

    # ---------- pipeline ----------
    def analyze_image(self, pil_img: Image.Image, origin_name: str, source: str) -> AnalysisResult:
        img_rgb = np.array(pil_img.convert("RGB"))
        h, w = img_rgb.shape[:2]
        return self.analyze_faces(self.detect(img_rgb), w, h, origin_name, source)

    def analyze_faces(self, faces: list, width: int, height: int,
                      origin_name: str, source: str) -> AnalysisResult:
        """Score an existing detection, so callers can reuse it for the overlay."""
        w, h = width, height
        face = first_face(faces)
        if face is None:
            result = ScoreResult(score=0, status=ScoreStatus.INSUFFICIENT_LANDMARKS)
        else:
            result = self.score(face.landmarks, w, h)
        label, emoji = label_for(result.score)

        return AnalysisResult(
            timestamp_utc=self._now_iso(),
            source=source,
            image_filename=origin_name,
            width=w,
            height=h,
            faces_detected=len(faces),
            score=result.score,
            status=result.status.value,
            mouth_curvature=result.mouth_curvature,
            eye_narrowing=result.eye_narrowing,
            mouth_width=result.mouth_width,
            label=label,
            emoji=emoji,
        )

    # ---------- drawing ----------
    def annotate(self, frame_bgr: np.ndarray, face: Optional[Face]) -> np.ndarray:
        """Repaint the landmark overlay for ``face`` and blend it onto a copy of the frame."""
        overlay = np.zeros_like(frame_bgr)
        if face is not None:
            self.renderer.draw(overlay, face.landmarks, face.box)
        return blend(frame_bgr, overlay)

    def draw_meter(self, frame_bgr: np.ndarray, score: int, origin=(20, 20), size=(200, 16)) -> np.ndarray:
        x, y = origin
        bw, bh = size
        fill = int(bw * float(np.clip(score, 0, 100)) / 100)
        cv2.rectangle(frame_bgr, (x, y), (x + bw, y + bh), (80, 80, 80), -1)
        if fill > 0:
            cv2.rectangle(frame_bgr, (x, y), (x + fill, y + bh), meter_color(score), -1)
        label, _ = label_for(score)
        cv2.putText(frame_bgr, f"{label} ({score}%)", (x, y + bh + 22),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1)
        return frame_bgr
