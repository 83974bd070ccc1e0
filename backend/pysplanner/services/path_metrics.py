"""
Summary statistics for interpolated curves.

Used by the curve preview endpoint to report how long a run is and how
far it reaches on the field map.
"""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np

from .plan_model import Point


def curve_metrics(points: Sequence[Point]) -> Dict[str, object]:
    """Return length, bounding box and sample count for a polyline.

    Args:
        points: Points of the polyline in drawing order.

    Returns:
        A dictionary with ``length`` (sum of segment lengths),
        ``bboxMin``/``bboxMax`` (``[x, y]`` pairs, ``None`` when empty),
        ``maxSpacing`` (longest single segment) and ``samples``.
    """
    if not points:
        return {"length": 0.0, "bboxMin": None, "bboxMax": None, "maxSpacing": 0.0, "samples": 0}
    coords = np.array([p.as_pair() for p in points], dtype=np.float64)
    if len(coords) > 1:
        deltas = np.diff(coords, axis=0)
        seg_lengths = np.hypot(deltas[:, 0], deltas[:, 1])
        length = float(seg_lengths.sum())
        max_spacing = float(seg_lengths.max())
    else:
        length = 0.0
        max_spacing = 0.0
    return {
        "length": length,
        "bboxMin": coords.min(axis=0).tolist(),
        "bboxMax": coords.max(axis=0).tolist(),
        "maxSpacing": max_spacing,
        "samples": len(points),
    }
