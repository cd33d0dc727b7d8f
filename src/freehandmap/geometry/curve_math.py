"""
Pure math for curve evaluation and hit testing.

Evaluation, closest-point search, Catmull-Rom conversion for live strokes
that have not been fitted yet, and bounding boxes. Everything here is
stateless and side-effect free.
"""

import math
from typing import List, NamedTuple, Optional

from freehandmap.models import CubicBezier, CurveBounds


CLOSEST_POINT_SAMPLES = 20
CLOSEST_POINT_REFINEMENTS = 10


class ClosestPoint(NamedTuple):
    point: List[float]
    distance: float
    t: float


def evaluate_bezier(bezier, t):
    """
    Evaluate a cubic bezier at parameter t.

    t is clamped to [0, 1].
    """
    tc = max(0.0, min(1.0, t))
    mt = 1 - tc

    # B(t) = (1-t)^3 P0 + 3(1-t)^2 t P1 + 3(1-t) t^2 P2 + t^3 P3
    w0 = mt * mt * mt
    w1 = 3 * mt * mt * tc
    w2 = 3 * mt * tc * tc
    w3 = tc * tc * tc

    return [
        w0 * bezier.p0[0] + w1 * bezier.p1[0] + w2 * bezier.p2[0] + w3 * bezier.p3[0],
        w0 * bezier.p0[1] + w1 * bezier.p1[1] + w2 * bezier.p2[1] + w3 * bezier.p3[1],
    ]


def _dist(a, b):
    return math.hypot(a[0] - b[0], a[1] - b[1])


def closest_point_on_bezier(bezier, point):
    """
    Find the point on a cubic bezier closest to a query point.

    Uniform sampling brackets the minimum, then ternary search refines it
    within one sample step on either side.

    Returns:
        ClosestPoint(point, distance, t)
    """
    min_dist = math.inf
    min_t = 0.0
    min_point = list(bezier.p0)

    for i in range(CLOSEST_POINT_SAMPLES + 1):
        t = i / CLOSEST_POINT_SAMPLES
        curve_point = evaluate_bezier(bezier, t)
        dist = _dist(point, curve_point)
        if dist < min_dist:
            min_dist = dist
            min_t = t
            min_point = curve_point

    low = max(0.0, min_t - 1 / CLOSEST_POINT_SAMPLES)
    high = min(1.0, min_t + 1 / CLOSEST_POINT_SAMPLES)

    for _ in range(CLOSEST_POINT_REFINEMENTS):
        mid1 = low + (high - low) / 3
        mid2 = low + (high - low) * 2 / 3

        p1 = evaluate_bezier(bezier, mid1)
        p2 = evaluate_bezier(bezier, mid2)
        d1 = _dist(point, p1)
        d2 = _dist(point, p2)

        if d1 < d2:
            high = mid2
            if d1 < min_dist:
                min_dist, min_t, min_point = d1, mid1, p1
        else:
            low = mid1
            if d2 < min_dist:
                min_dist, min_t, min_point = d2, mid2, p2

    return ClosestPoint(point=min_point, distance=min_dist, t=min_t)


def catmull_rom_to_bezier(points, tension, closed):
    """
    Convert Catmull-Rom control points to cubic bezier segments.

    The spline passes through every control point. Higher tension gives the
    neighbouring points more pull on the tangents.
    """
    n = len(points)
    if n < 2:
        return []

    if n == 2:
        p0, p1 = points
        return [CubicBezier(
            p0=list(p0),
            p1=[p0[0] + (p1[0] - p0[0]) / 3, p0[1] + (p1[1] - p0[1]) / 3],
            p2=[p0[0] + (p1[0] - p0[0]) * 2 / 3, p0[1] + (p1[1] - p0[1]) * 2 / 3],
            p3=list(p1),
        )]

    alpha = tension / 6
    num_segments = n if closed else n - 1
    beziers = []

    for i in range(num_segments):
        p0 = points[(i - 1) % n if closed else max(0, i - 1)]
        p1 = points[i]
        p2 = points[(i + 1) % n]
        p3 = points[(i + 2) % n if closed else min(n - 1, i + 2)]

        beziers.append(CubicBezier(
            p0=list(p1),
            p1=[p1[0] + alpha * (p2[0] - p0[0]), p1[1] + alpha * (p2[1] - p0[1])],
            p2=[p2[0] - alpha * (p3[0] - p1[0]), p2[1] - alpha * (p3[1] - p1[1])],
            p3=list(p2),
        ))

    return beziers


def is_point_near_curve(points, point, threshold, tension):
    """
    Check whether a point lies within threshold of a live (unfitted) stroke.

    A single-point stroke is a plain distance test.
    """
    if not points:
        return False

    if len(points) == 1:
        return _dist(point, points[0]) <= threshold

    for bezier in catmull_rom_to_bezier(points, tension, closed=False):
        if closest_point_on_bezier(bezier, point).distance <= threshold:
            return True

    return False


def distance_to_line_segment(point, line_start, line_end):
    """Shortest distance from point to the segment (not the infinite line)."""
    dx = line_end[0] - line_start[0]
    dy = line_end[1] - line_start[1]
    len_sq = dx * dx + dy * dy

    if len_sq == 0:
        return _dist(point, line_start)

    t = ((point[0] - line_start[0]) * dx + (point[1] - line_start[1]) * dy) / len_sq
    t = max(0.0, min(1.0, t))

    return math.hypot(point[0] - (line_start[0] + t * dx), point[1] - (line_start[1] + t * dy))


def get_curve_bounds(points) -> Optional[CurveBounds]:
    """Axis-aligned bounding box of a flat point sequence, or None if empty."""
    if len(points) == 0:
        return None

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return CurveBounds(min_x=min(xs), min_y=min(ys), max_x=max(xs), max_y=max(ys))
