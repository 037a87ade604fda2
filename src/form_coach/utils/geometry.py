"""
2D joint geometry used by the exercise rules.

All functions take objects exposing ``.x`` and ``.y`` in image pixel
coordinates (y grows downward) and are pure.
"""

import numpy as np


def angle(a, b, c) -> float:
    """Angle at vertex *b* formed by the rays b→a and b→c.

    Computed from the difference of the two ``atan2`` headings, so the
    result is symmetric in *a* and *c* and folded into [0, 180].

    Args:
        a, b, c: Keypoints with ``.x`` and ``.y`` attributes.

    Returns:
        float: Angle in degrees (0-180), NaN if any coordinate is NaN.
    """
    radians = np.arctan2(c.y - b.y, c.x - b.x) - np.arctan2(a.y - b.y, a.x - b.x)
    value = abs(float(np.degrees(radians)))
    if value > 180.0:
        value = 360.0 - value
    return value


def distance(p, q) -> float:
    """Euclidean distance between two keypoints."""
    return float(np.hypot(q.x - p.x, q.y - p.y))


def vertical_deviation(upper, lower) -> float:
    """Heading of the segment upper→lower in degrees, as a positive magnitude.

    Computed as ``|atan2(dy, dx)|``: 90 when *lower* sits directly below
    *upper*, 0 or 180 for a horizontal segment. Used as the torso-lean
    signal for shoulder→hip segments.
    """
    dx = lower.x - upper.x
    dy = lower.y - upper.y
    return abs(float(np.degrees(np.arctan2(dy, dx))))
