# happylens/geometry.py
"""
Landmark geometry for the happiness score:
  - region classification (mouth / eyes) from point tags
  - four-point region summaries (corners + top/bottom centers)
  - mouth curvature, eye narrowing (Duchenne marker), mouth width
"""
import math
import numbers
import logging
from collections.abc import Iterable, Mapping
from typing import Optional, Sequence

import numpy as np

from happylens.models import (
    ClassifiedLandmarks,
    LandmarkPoint,
    LandmarkSet,
    MalformedInputError,
    Region,
    RegionPoints,
)

logger = logging.getLogger(__name__)

MIN_DISTANCE = 1e-3
NEUTRAL_EYE_NARROWING = 0.5


def _check_coord(value, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise MalformedInputError(f"Landmark {field} must be a number, got {type(value).__name__}")
    return float(value)


def _to_point(item) -> LandmarkPoint:
    if isinstance(item, LandmarkPoint):
        _check_coord(item.x, "x")
        _check_coord(item.y, "y")
        return item
    if isinstance(item, Mapping):
        if "x" not in item or "y" not in item:
            raise MalformedInputError(f"Landmark is missing x/y: {dict(item)!r}")
        name = item.get("name")
        if name is not None and not isinstance(name, str):
            raise MalformedInputError(f"Landmark name must be a string, got {type(name).__name__}")
        region = item.get("region")
        try:
            region = Region(region) if region is not None else None
        except ValueError as e:
            raise MalformedInputError(str(e)) from e
        return LandmarkPoint(
            x=_check_coord(item["x"], "x"),
            y=_check_coord(item["y"], "y"),
            name=name,
            region=region,
        )
    raise MalformedInputError(f"Unsupported landmark type: {type(item).__name__}")


def coerce_landmarks(landmarks) -> LandmarkSet:
    """Validate detector output into an immutable LandmarkSet. ``None`` is an empty set."""
    if landmarks is None:
        return ()
    if isinstance(landmarks, (str, bytes, Mapping)) or not isinstance(landmarks, Iterable):
        raise MalformedInputError(f"Landmarks must be a sequence of points, got {type(landmarks).__name__}")
    return tuple(_to_point(p) for p in landmarks)


def check_frame_size(width, height) -> None:
    for label, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise MalformedInputError(f"Frame {label} must be a number, got {type(value).__name__}")
        if not math.isfinite(value) or value <= 0:
            raise MalformedInputError(f"Frame {label} must be positive and finite, got {value}")


# ---------- classification ----------
def classify_points(landmarks: LandmarkSet) -> ClassifiedLandmarks:
    mouth = tuple(p for p in landmarks if p.region is Region.LIPS)
    eyes = tuple(p for p in landmarks if p.region is Region.EYE)
    return ClassifiedLandmarks(mouth=mouth, eyes=eyes)


# ---------- region summary ----------
def summarize_region(points: Sequence[LandmarkPoint]) -> Optional[RegionPoints]:
    """Reduce a region to (left, right, top-center, bottom-center). ``None`` when empty."""
    if not points:
        return None

    # min()/max() keep the first point on ties
    left = min(points, key=lambda p: p.x)
    right = max(points, key=lambda p: p.x)
    top = min(points, key=lambda p: p.y)
    bottom = max(points, key=lambda p: p.y)

    center_x = (left.x + right.x) / 2
    center_y = (top.y + bottom.y) / 2

    above = [p for p in points if p.y < center_y]
    below = [p for p in points if p.y > center_y]
    top_center = min(above, key=lambda p: abs(p.x - center_x)) if above else points[0]
    bottom_center = min(below, key=lambda p: abs(p.x - center_x)) if below else points[0]

    return RegionPoints(
        left_corner=left,
        right_corner=right,
        top_center=top_center,
        bottom_center=bottom_center,
    )


# ---------- signals ----------
def _finite(value: float, what: str) -> float:
    if not math.isfinite(value):
        raise ArithmeticError(f"non-finite {what}: {value}")
    return value


def mouth_curvature(left: LandmarkPoint, apex: LandmarkPoint, right: LandmarkPoint,
                    min_distance: float = MIN_DISTANCE) -> float:
    """
    Signed curvature of left-apex-right. Image y grows downward, so a positive
    value means the apex sits above the corner midpoint (smile), negative a frown.
    """
    mid_y = (left.y + right.y) / 2
    diff = _finite(mid_y - apex.y, "mouth curvature offset")
    distance = _finite(math.hypot(right.x - left.x, right.y - left.y), "mouth corner distance")
    if distance < min_distance:
        logger.debug("Collocated mouth corners (distance=%.6f), curvature=0", distance)
        return 0.0
    return diff / distance


def normalize_curvature(raw: float, limit: float = 0.5) -> float:
    """Clamp to [-limit, limit] and rescale onto [0, 1]."""
    clamped = float(np.clip(raw, -limit, limit))
    return (clamped + limit) / (2 * limit)


def eye_narrowing(region: Optional[RegionPoints], narrow: float = 0.2, wide: float = 0.5,
                  min_distance: float = MIN_DISTANCE) -> float:
    """Eye aspect ratio mapped so narrow eyes (genuine smile) -> 1 and wide eyes -> 0."""
    if region is None or not all((region.left_corner, region.right_corner,
                                  region.top_center, region.bottom_center)):
        return NEUTRAL_EYE_NARROWING

    eye_height = _finite(abs(region.top_center.y - region.bottom_center.y), "eye height")
    eye_width = _finite(abs(region.right_corner.x - region.left_corner.x), "eye width")
    if eye_width < min_distance:
        logger.debug("Degenerate eye width (%.6f), using neutral narrowing", eye_width)
        return NEUTRAL_EYE_NARROWING

    aspect_ratio = eye_height / eye_width
    return 1.0 - float(np.clip((aspect_ratio - narrow) / (wide - narrow), 0.0, 1.0))


def mouth_width_ratio(left: LandmarkPoint, right: LandmarkPoint, frame_width: float) -> float:
    width = _finite(math.hypot(right.x - left.x, right.y - left.y) / frame_width, "mouth width")
    return float(np.clip(width * 2, 0.0, 1.0))
