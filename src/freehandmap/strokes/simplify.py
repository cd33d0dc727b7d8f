"""
Stroke simplification using the Ramer-Douglas-Peucker algorithm.

Raw pointer traces carry far more samples than their shape needs; reducing
them first keeps the bezier fit (quadratic in the worst case) inside a
single frame.
"""

import numpy as np

from freehandmap.tracer import get_tracer, trace


@trace(label="simplify_strokes")
def simplify_strokes(strokes, epsilon):
    """
    Simplify several strokes with the same tolerance.

    Args:
        strokes: list of point lists, each [[x, y], ...]
        epsilon: maximum perpendicular distance threshold

    Returns:
        list of simplified point lists
    """
    tracer = get_tracer()

    simplified = []
    total_points_before = 0
    total_points_after = 0

    for stroke in strokes:
        simple = simplify_path(stroke, epsilon)
        simplified.append(simple)
        total_points_before += len(stroke)
        total_points_after += len(simple)

    reduction = 1 - (total_points_after / total_points_before) if total_points_before > 0 else 0
    tracer.event(f"Simplified: {total_points_before} -> {total_points_after} points ({reduction:.1%} reduction)")

    return simplified


def simplify_path(points, epsilon, distance_fn=None):
    """
    Ramer-Douglas-Peucker simplification.

    The result is an ordered subsequence of the input that always keeps the
    first and last point. Inputs of fewer than 3 points come back unchanged.
    Uses an explicit work stack, so very long strokes do not run into the
    interpreter's recursion limit.

    Args:
        points: list of [x, y] points
        epsilon: maximum perpendicular distance threshold
        distance_fn: distances(points, start, end) -> array; defaults to
            perpendicular_distances (infinite line through the chord)

    Returns:
        simplified list of points (the original point objects)
    """
    n = len(points)
    if n < 3:
        return list(points)

    distance_fn = distance_fn or perpendicular_distances

    points_arr = np.asarray(points, dtype=float)

    keep = np.zeros(n, dtype=bool)
    keep[0] = True
    keep[-1] = True

    stack = [(0, n - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue

        distances = distance_fn(
            points_arr[first + 1:last], points_arr[first], points_arr[last]
        )
        offset = int(np.argmax(distances))
        if distances[offset] > epsilon:
            split = first + 1 + offset
            keep[split] = True
            stack.append((split, last))
            stack.append((first, split))

    return [points[i] for i in np.flatnonzero(keep)]


def perpendicular_distances(points, start, end):
    """
    Distances from each point to the infinite line through start and end.

    Falls back to plain point distance when start and end coincide.
    """
    line_vec = end - start
    line_len = np.hypot(line_vec[0], line_vec[1])

    if line_len == 0:
        return np.linalg.norm(points - start, axis=1)

    # |cross| is the parallelogram area; divide by the base to get height
    rel = points - start
    cross = np.abs(rel[:, 0] * line_vec[1] - rel[:, 1] * line_vec[0])
    return cross / line_len


def segment_distances(points, start, end):
    """
    Distances from each point to the segment between start and end.

    The projection is clamped to the segment, so a stroke that runs past its
    chord and doubles back keeps its far end.
    """
    line_vec = end - start
    len_sq = float(np.dot(line_vec, line_vec))

    if len_sq < 1e-10:
        return np.linalg.norm(points - start, axis=1)

    t = np.clip((points - start) @ line_vec / len_sq, 0.0, 1.0)
    proj = start + t[:, None] * line_vec
    return np.linalg.norm(points - proj, axis=1)


def remove_duplicate_points(points, tolerance=0.0):
    """
    Remove consecutive duplicate or near-duplicate points.

    Pointer events frequently repeat the same sample; with the default
    tolerance only exact repeats are dropped.
    """
    if len(points) <= 1:
        return list(points)

    result = [points[0]]

    for point in points[1:]:
        last = result[-1]
        if tolerance <= 0:
            if point[0] != last[0] or point[1] != last[1]:
                result.append(point)
        elif np.hypot(point[0] - last[0], point[1] - last[1]) > tolerance:
            result.append(point)

    return result
