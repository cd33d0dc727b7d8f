"""
Curve flattening into dense polygon rings.

Segments produced by earlier boolean operations are straight lines stored
as degenerate beziers. Those emit only their endpoint; subdividing them
would multiply the vertex count on every erase.
"""

import math
from collections import OrderedDict

from freehandmap.config import FlattenConfig


DEFAULT_STEPS = FlattenConfig().steps_per_segment
DEFAULT_LINEAR_EPSILON = FlattenConfig().linear_epsilon


def is_linear_bezier(p0, cp1, cp2, p3, epsilon=DEFAULT_LINEAR_EPSILON):
    """
    True when both control points lie within epsilon of the chord p0 -> p3.

    For a chord shorter than epsilon, both control points must lie within
    epsilon of p0.
    """
    dx = p3[0] - p0[0]
    dy = p3[1] - p0[1]
    len_sq = dx * dx + dy * dy

    if len_sq < epsilon * epsilon:
        return (
            (cp1[0] - p0[0]) ** 2 + (cp1[1] - p0[1]) ** 2 < epsilon * epsilon and
            (cp2[0] - p0[0]) ** 2 + (cp2[1] - p0[1]) ** 2 < epsilon * epsilon
        )

    length = math.sqrt(len_sq)
    d1 = abs(dx * (p0[1] - cp1[1]) - dy * (p0[0] - cp1[0])) / length
    d2 = abs(dx * (p0[1] - cp2[1]) - dy * (p0[0] - cp2[0])) / length

    return d1 < epsilon and d2 < epsilon


def _eval(p0, p1, p2, p3, t):
    mt = 1 - t
    w0 = mt * mt * mt
    w1 = 3 * mt * mt * t
    w2 = 3 * mt * t * t
    w3 = t * t * t
    return [
        w0 * p0[0] + w1 * p1[0] + w2 * p2[0] + w3 * p3[0],
        w0 * p0[1] + w1 * p1[1] + w2 * p2[1] + w3 * p3[1],
    ]


def flatten_curve(curve, steps_per_segment=DEFAULT_STEPS, linear_epsilon=DEFAULT_LINEAR_EPSILON):
    """
    Flatten a curve's outer boundary into a closed ring.

    Linear segments contribute their endpoint only; true curves contribute
    steps_per_segment samples. The ring always ends with a copy of its
    first point (when it has more than one point).
    """
    prev = curve.start
    pts = [[prev[0], prev[1]]]

    for seg in curve.segments:
        if is_linear_bezier(prev, seg.cp1, seg.cp2, seg.end, linear_epsilon):
            pts.append([seg.end[0], seg.end[1]])
        else:
            for step in range(1, steps_per_segment + 1):
                pts.append(_eval(prev, seg.cp1, seg.cp2, seg.end, step / steps_per_segment))
        prev = seg.end

    if len(pts) > 1:
        first = pts[0]
        last = pts[-1]
        if first[0] != last[0] or first[1] != last[1]:
            pts.append([first[0], first[1]])

    return pts


class FlatPolygonCache:
    """
    Memoizes flattened rings per (curve id, geometry version, steps).

    Bumping a curve's geometry_version makes its old entry unreachable; the
    entry is evicted once the cache is full, or right away through
    invalidate().
    """

    def __init__(self, max_entries=1024):
        self.max_entries = max_entries
        self._entries = OrderedDict()

    def __len__(self):
        return len(self._entries)

    def get(self, curve, steps_per_segment=DEFAULT_STEPS):
        key = (curve.id, curve.geometry_version, steps_per_segment)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            return cached

        ring = flatten_curve(curve, steps_per_segment)
        self._entries[key] = ring
        if len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return ring

    def invalidate(self, curve_id):
        """Drop every cached ring for a curve id."""
        for key in [k for k in self._entries if k[0] == curve_id]:
            del self._entries[key]

    def clear(self):
        self._entries.clear()
