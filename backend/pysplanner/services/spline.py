"""
Curve interpolation for run waypoints.

A run's waypoints are joined by a cardinal (Catmull–Rom style) spline
evaluated with the cubic Hermite basis.  Each segment is sampled in
proportion to its length, so long and short segments end up with a
similar spacing between drawn points.

Open curves get a mirrored virtual point before the first and after
the last waypoint (``2*p0 - p1`` and ``2*p[n-1] - p[n-2]``).  Closed
curves wrap to the opposite end of the sequence instead and include
the segment from the last waypoint back to the first.

The arithmetic below is written out term by term in a fixed order so
identical input always produces bit-identical output.
"""

from __future__ import annotations

import math
from typing import Iterator, List, Sequence

from ..config import CURVE_DENSITY, CURVE_TENSION
from .plan_model import Point

MIN_SEGMENT_STEPS = 2


def segment_steps(p1: Point, p2: Point, density: float = CURVE_DENSITY) -> int:
    """Return the number of sampling steps for the segment ``p1 -> p2``."""
    length = math.sqrt((p2.x - p1.x) ** 2 + (p2.y - p1.y) ** 2)
    return max(MIN_SEGMENT_STEPS, math.floor(length * density))


def _control_polygon(points: Sequence[Point], closed: bool) -> List[Point]:
    first, last = points[0], points[-1]
    if closed:
        return [last] + list(points) + [first, points[1]]
    virtual_start = Point(2 * first.x - points[1].x, 2 * first.y - points[1].y)
    virtual_end = Point(2 * last.x - points[-2].x, 2 * last.y - points[-2].y)
    return [virtual_start] + list(points) + [virtual_end]


def iter_curve_points(
    points: Sequence[Point],
    tension: float = CURVE_TENSION,
    density: float = CURVE_DENSITY,
    closed: bool = False,
) -> Iterator[Point]:
    """Lazily yield the interpolated curve through ``points``.

    Args:
        points: Ordered waypoints of one run.
        tension: Tangent scale; 0.5 gives the classic Catmull–Rom curve.
        density: Samples per unit of segment length.
        closed: Whether to join the last waypoint back to the first.

    Yields:
        Points along the curve.  Each segment yields ``steps + 1``
        samples, so the first sample of a segment repeats the last
        sample of the previous one.

    With fewer than two waypoints there is no curve and the input is
    yielded unchanged.
    """
    if len(points) < 2:
        yield from points
        return

    ctrl = _control_polygon(points, closed)
    # ctrl[0] and ctrl[-1] are virtual; segment i spans ctrl[i]..ctrl[i + 1].
    segment_count = len(ctrl) - 3
    for i in range(1, segment_count + 1):
        p0, p1, p2, p3 = ctrl[i - 1], ctrl[i], ctrl[i + 1], ctrl[i + 2]
        t1x = (p2.x - p0.x) * tension
        t1y = (p2.y - p0.y) * tension
        t2x = (p3.x - p1.x) * tension
        t2y = (p3.y - p1.y) * tension
        steps = segment_steps(p1, p2, density)
        for t in range(steps + 1):
            s = t / steps
            c1 = 2 * s ** 3 - 3 * s ** 2 + 1
            c2 = -2 * s ** 3 + 3 * s ** 2
            c3 = s ** 3 - 2 * s ** 2 + s
            c4 = s ** 3 - s ** 2
            x = c1 * p1.x + c2 * p2.x + c3 * t1x + c4 * t2x
            y = c1 * p1.y + c2 * p2.y + c3 * t1y + c4 * t2y
            yield Point(x, y)


def interpolate_curve(
    points: Sequence[Point],
    tension: float = CURVE_TENSION,
    density: float = CURVE_DENSITY,
    closed: bool = False,
) -> List[Point]:
    """Return the full interpolated curve as a list.

    See :func:`iter_curve_points` for the meaning of the arguments.
    """
    return list(iter_curve_points(points, tension=tension, density=density, closed=closed))
