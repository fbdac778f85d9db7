"""Tests for the landmark overlay renderer."""

import math

import numpy as np
import pytest

from happylens.models import BoundingBox, LandmarkPoint, MalformedInputError, Region
from happylens.render import REGION_COLORS, LandmarkRenderer, blend, mirror_x


def P(x, y, name=None):
    return LandmarkPoint(x=x, y=y, name=name)


@pytest.fixture
def canvas():
    return np.zeros((100, 100, 3), dtype=np.uint8)


class TestLandmarkRenderer:
    def test_clears_target(self):
        target = np.full((50, 50, 3), 7, dtype=np.uint8)
        LandmarkRenderer().draw(target, [])
        assert not target.any()

    def test_no_ghosting_between_calls(self, canvas):
        renderer = LandmarkRenderer()
        renderer.draw(canvas, [P(10, 10, "lips0")])
        assert canvas[10, 90].any()

        renderer.draw(canvas, [P(80, 80, "lips0")])
        footprint = np.zeros(canvas.shape[:2], dtype=bool)
        footprint[75:86, 15:26] = True
        assert not canvas[~footprint].any()
        assert canvas[80, 20].any()

    def test_mirrors_horizontally(self, canvas):
        LandmarkRenderer().draw(canvas, [P(10, 50, "lipsUpper")])
        assert tuple(canvas[50, 90]) == REGION_COLORS[Region.LIPS]
        assert not canvas[50, 10].any()

    def test_mirror_disabled(self, canvas):
        LandmarkRenderer(mirror=False).draw(canvas, [P(10, 50, "lipsUpper")])
        assert canvas[50, 10].any()
        assert not canvas[50, 90].any()

    @pytest.mark.parametrize("name, region", [
        ("lipsLower", Region.LIPS),
        ("leftEye", Region.EYE),
        ("noseTip", Region.NOSE),
        ("faceOval", Region.OTHER),
        (None, Region.UNKNOWN),
    ])
    def test_color_by_region(self, canvas, name, region):
        LandmarkRenderer().draw(canvas, [P(50, 50, name)])
        assert tuple(canvas[50, 50]) == REGION_COLORS[region]

    def test_colors_are_distinct(self):
        assert len(set(REGION_COLORS.values())) == len(Region)

    def test_draws_mirrored_box_outline(self, canvas):
        box = BoundingBox(x_min=10, y_min=20, width=30, height=40)
        LandmarkRenderer().draw(canvas, [], box)
        # mirrored x range: [100-40, 100-10] = [60, 90]
        assert canvas[40, 60].any()
        assert canvas[40, 90].any()
        assert canvas[20, 75].any()
        # outline only
        assert not canvas[40, 75].any()

    def test_grayscale_target(self):
        target = np.zeros((40, 40), dtype=np.uint8)
        LandmarkRenderer().draw(target, [P(20, 20)])
        assert target[20, 20] == 255

    def test_returns_same_target(self, canvas):
        assert LandmarkRenderer().draw(canvas, []) is canvas

    def test_skips_non_finite_points(self, canvas):
        LandmarkRenderer().draw(canvas, [P(math.nan, 10), P(50, 50)])
        assert canvas[50, 50].any()

    def test_out_of_frame_points_are_clipped(self, canvas):
        LandmarkRenderer().draw(canvas, [P(-500, 5000)])
        assert not canvas.any()

    @pytest.mark.parametrize("target", [None, [[0, 0]], np.zeros((2, 2, 2, 2), dtype=np.uint8)])
    def test_bad_target_raises(self, target):
        with pytest.raises(MalformedInputError):
            LandmarkRenderer().draw(target, [])

    def test_non_contiguous_target_raises(self):
        target = np.zeros((20, 20, 3), dtype=np.uint8)[:, ::2]
        with pytest.raises(MalformedInputError):
            LandmarkRenderer().draw(target, [])

    def test_custom_colors(self, canvas):
        renderer = LandmarkRenderer(colors={Region.LIPS: (1, 2, 3)})
        renderer.draw(canvas, [P(50, 50, "lips")])
        assert tuple(canvas[50, 50]) == (1, 2, 3)


class TestBlend:
    def test_only_overlay_pixels_change(self):
        frame = np.full((10, 10, 3), 100, dtype=np.uint8)
        overlay = np.zeros_like(frame)
        overlay[5, 5] = (0, 0, 255)
        out = blend(frame, overlay, alpha=0.5)
        assert (out[0, 0] == 100).all()
        assert tuple(out[5, 5]) != (100, 100, 100)
        assert (frame == 100).all()

    def test_shape_mismatch_raises(self):
        with pytest.raises(MalformedInputError):
            blend(np.zeros((4, 4, 3), np.uint8), np.zeros((5, 5, 3), np.uint8))


def test_mirror_x():
    assert mirror_x(10, 100) == 90
    assert mirror_x(0, 100) == 100
