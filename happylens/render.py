# happylens/render.py
"""Landmark overlay drawing (OpenCV, BGR rasters)."""
import math
import logging
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

from happylens.geometry import coerce_landmarks
from happylens.models import BoundingBox, MalformedInputError, Region

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]

# BGR
REGION_COLORS: Dict[Region, Color] = {
    Region.LIPS: (0, 0, 255),       # red
    Region.EYE: (255, 0, 0),        # blue
    Region.NOSE: (0, 255, 0),       # green
    Region.OTHER: (0, 255, 255),    # yellow
    Region.UNKNOWN: (255, 255, 255),
}
BOX_COLOR: Color = (0, 255, 0)


def mirror_x(x: float, width: int) -> float:
    return width - x


def _gray(color: Color) -> int:
    b, g, r = color
    return int(round(0.114 * b + 0.587 * g + 0.299 * r))


class LandmarkRenderer:
    """
    Draws classified landmarks (and an optional face box) onto a caller-owned
    raster. Every call is a full repaint: the target is zeroed first and the
    drawing is mirrored horizontally to match a selfie-style preview.
    """

    def __init__(self, radius: int = 2, box_thickness: int = 2,
                 colors: Optional[Dict[Region, Color]] = None, mirror: bool = True):
        self.radius = radius
        self.box_thickness = box_thickness
        self.colors = dict(REGION_COLORS)
        self.colors.update(colors or {})
        self.mirror = mirror

    def color_for(self, region: Region, target: np.ndarray):
        color = self.colors[region]
        return _gray(color) if target.ndim == 2 else color

    def draw(self, target: np.ndarray, landmarks, box: Optional[BoundingBox] = None) -> np.ndarray:
        if not isinstance(target, np.ndarray) or target.ndim not in (2, 3):
            raise MalformedInputError("Render target must be a 2D or 3-channel numpy array")
        if not target.flags.c_contiguous:
            raise MalformedInputError("Render target must be C-contiguous to be drawn in place")
        points = coerce_landmarks(landmarks)

        target[...] = 0
        width = target.shape[1]

        if box is not None:
            x0 = box.x_min
            x1 = box.x_min + box.width
            if self.mirror:
                x0, x1 = mirror_x(x1, width), mirror_x(x0, width)
            corners = (x0, box.y_min, x1, box.y_min + box.height)
            if all(math.isfinite(v) for v in corners):
                cv2.rectangle(
                    target,
                    (int(round(corners[0])), int(round(corners[1]))),
                    (int(round(corners[2])), int(round(corners[3]))),
                    _gray(BOX_COLOR) if target.ndim == 2 else BOX_COLOR,
                    self.box_thickness,
                )

        skipped = 0
        for p in points:
            if not (math.isfinite(p.x) and math.isfinite(p.y)):
                skipped += 1
                continue
            x = mirror_x(p.x, width) if self.mirror else p.x
            cv2.circle(target, (int(round(x)), int(round(p.y))), self.radius,
                       self.color_for(p.region, target), -1)
        if skipped:
            logger.debug("Skipped %d non-finite landmarks while drawing", skipped)
        return target


def blend(frame: np.ndarray, overlay: np.ndarray, alpha: float = 0.7) -> np.ndarray:
    """Alpha-blend the non-zero pixels of ``overlay`` onto a copy of ``frame``."""
    if frame.shape != overlay.shape:
        raise MalformedInputError(f"Overlay shape {overlay.shape} does not match frame {frame.shape}")
    out = frame.copy()
    mask = overlay.any(axis=2) if overlay.ndim == 3 else overlay > 0
    if mask.any():
        mixed = cv2.addWeighted(frame, 1.0 - alpha, overlay, alpha, 0)
        out[mask] = mixed[mask]
    return out
