"""Directed angles in the depiction plane.

Angles are measured clockwise from the +y axis: a step of length ``d`` in
direction ``a`` moves by ``(d * sin(a), d * cos(a))``.
"""

# External imports
import math
from typing import NamedTuple, Sequence


class DirectedAngle(NamedTuple):
    """A 2D vector stored as direction and weight."""
    angle: float
    length: float

    @classmethod
    def between(cls, x1: float, y1: float, x2: float, y2: float) -> "DirectedAngle":
        """Vector pointing from ``(x1, y1)`` to ``(x2, y2)``."""
        return cls(get_angle(x1, y1, x2, y2), math.hypot(x2 - x1, y2 - y1))


def get_angle(x1: float, y1: float, x2: float, y2: float) -> float:
    """Direction from ``(x1, y1)`` to ``(x2, y2)`` in ``(-pi, pi]``."""
    return math.atan2(x2 - x1, y2 - y1)


def angle_dif(angle1: float, angle2: float) -> float:
    """Signed difference ``angle1 - angle2`` wrapped into ``[-pi, pi]``."""
    dif = angle1 - angle2
    while dif < -math.pi:
        dif += 2 * math.pi
    while dif > math.pi:
        dif -= 2 * math.pi
    return dif


def mean_angle(angles: Sequence[DirectedAngle]) -> DirectedAngle:
    """Circular mean of weighted directions.

    The returned length is the norm of the summed vectors divided by their
    count, so it drops towards zero when the directions disagree.
    """
    if not angles:
        return DirectedAngle(0.0, 0.0)

    sin_sum = sum(a.length * math.sin(a.angle) for a in angles)
    cos_sum = sum(a.length * math.cos(a.angle) for a in angles)
    return DirectedAngle(math.atan2(sin_sum, cos_sum),
                         math.hypot(sin_sum, cos_sum) / len(angles))
