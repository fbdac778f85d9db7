"""Shared fixtures for happylens tests.

All landmark sets are synthetic, so NO ML models are needed.
"""

import math
from types import SimpleNamespace

import numpy as np
import pytest

from happylens.models import BoundingBox, Face, LandmarkPoint


def mouth_arc(cx=320.0, cy=300.0, half_width=50.0, depth=10.0, upward=True, name="lipsUpperOuter"):
    """12 lip points on a parabola; corners at cx +/- half_width, apex at cx.

    ``depth`` is how far the apex sits from the corner line (above it when
    ``upward``, below it otherwise).
    """
    ts = list(np.linspace(-1.0, 1.0, 11)) + [0.5]
    sign = -1.0 if upward else 1.0
    return [
        LandmarkPoint(x=cx + t * half_width, y=cy + sign * depth * (1 - t * t), name=f"{name}{i}")
        for i, t in enumerate(ts)
    ]


def eye_ellipse(cx=320.0, cy=200.0, width=100.0, aspect=0.2, n=12, name="leftEyeUpper"):
    """n eye points on an ellipse with height / width == aspect."""
    a, b = width / 2, width * aspect / 2
    return [
        LandmarkPoint(
            x=cx + a * math.cos(2 * math.pi * k / n),
            y=cy + b * math.sin(2 * math.pi * k / n),
            name=f"{name}{k}",
        )
        for k in range(n)
    ]


@pytest.fixture
def make_mouth():
    return mouth_arc


@pytest.fixture
def make_eyes():
    return eye_ellipse


@pytest.fixture
def smiling_face():
    """Upward mouth arc + narrow eyes + a couple of unclassified points."""
    points = (
        mouth_arc(depth=10.0, upward=True)
        + eye_ellipse(aspect=0.2)
        + [LandmarkPoint(x=320, y=250, name="noseTip"), LandmarkPoint(x=300, y=150)]
    )
    box = BoundingBox(x_min=250, y_min=140, width=140, height=180)
    return Face(landmarks=tuple(points), box=box)


class FakeDetector:
    """Stands in for FaceMeshDetector: returns canned faces for any frame."""

    def __init__(self, faces=None):
        self.faces = list(faces or [])
        self.calls = 0
        self.is_open = True

    def detect(self, image_rgb):
        self.calls += 1
        return list(self.faces)


@pytest.fixture
def fake_detector(smiling_face):
    return FakeDetector([smiling_face])


def normalized_landmarks(points, width, height):
    """FaceMesh-style normalized landmark objects from pixel points."""
    return [SimpleNamespace(x=x / width, y=y / height, z=0.0) for x, y in points]
