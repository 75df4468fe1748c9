from PySide6.QtCore import QPointF, QRectF

from autonate.editor.geometry import (
    clamp,
    dist_sq,
    midpoint,
    normalized_rect,
    point_segment_dist_sq,
)


def test_clamp_saturates_both_ends():
    assert clamp(5, 0, 10) == 5
    assert clamp(-3, 0, 10) == 0
    assert clamp(42, 0, 10) == 10


def test_dist_sq():
    assert dist_sq(QPointF(0, 0), QPointF(3, 4)) == 25


def test_point_segment_distance_perpendicular():
    d = point_segment_dist_sq(QPointF(50, 7), QPointF(0, 0), QPointF(100, 0))
    assert d == 49


def test_point_segment_distance_past_the_end_uses_endpoint():
    d = point_segment_dist_sq(QPointF(103, 4), QPointF(0, 0), QPointF(100, 0))
    assert d == 25


def test_point_segment_distance_degenerate_segment():
    a = QPointF(10, 10)
    assert point_segment_dist_sq(QPointF(13, 14), a, QPointF(a)) == 25


def test_midpoint_and_normalized_rect():
    a, b = QPointF(300, 400), QPointF(100, 200)
    assert midpoint(a, b) == QPointF(200, 300)
    assert normalized_rect(a, b) == QRectF(100, 200, 200, 200)
