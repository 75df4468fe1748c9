"""
Geometry helpers used by hit-testing and the focus region.

All functions work on QPointF in viewport pixel coordinates.
"""

from PySide6.QtCore import QPointF, QRectF


def clamp(value, low, high):
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def dist_sq(a: QPointF, b: QPointF) -> float:
    """Squared distance between two points."""
    dx = a.x() - b.x()
    dy = a.y() - b.y()
    return dx * dx + dy * dy


def point_segment_dist_sq(p: QPointF, a: QPointF, b: QPointF) -> float:
    """
    Squared distance from point p to the segment a-b.

    A degenerate segment (a == b) measures the distance to a.
    """
    abx = b.x() - a.x()
    aby = b.y() - a.y()
    length_sq = abx * abx + aby * aby
    if length_sq == 0:
        return dist_sq(p, a)

    t = ((p.x() - a.x()) * abx + (p.y() - a.y()) * aby) / length_sq
    t = clamp(t, 0.0, 1.0)
    closest = QPointF(a.x() + t * abx, a.y() + t * aby)
    return dist_sq(p, closest)


def midpoint(a: QPointF, b: QPointF) -> QPointF:
    return QPointF((a.x() + b.x()) / 2, (a.y() + b.y()) / 2)


def normalized_rect(a: QPointF, b: QPointF) -> QRectF:
    """Rectangle spanning two corner points in any order."""
    return QRectF(a, b).normalized()
