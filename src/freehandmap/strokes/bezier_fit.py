"""
Cubic bezier fitting for freehand strokes.

Implements Schneider's algorithm: least-squares placement of the two
control points along fixed end tangents, Newton-Raphson reparameterization
when the fit is close, and splitting at the worst sample otherwise.
"""

import numpy as np

from freehandmap.config import FitConfig, SimplifyConfig
from freehandmap.models import BezierSegment, FitResult
from freehandmap.strokes.simplify import remove_duplicate_points, segment_distances, simplify_path
from freehandmap.tracer import get_tracer, trace


DEFAULT_SIMPLIFY_TOLERANCE = SimplifyConfig().epsilon
DEFAULT_FIT_ERROR = FitConfig().max_squared_error

# Below this the least-squares system is treated as singular
DET_EPSILON = 1e-12


@trace(label="fit_points_to_bezier")
def fit_points_to_bezier(raw_points, simplify_tolerance=DEFAULT_SIMPLIFY_TOLERANCE,
                         fit_error=DEFAULT_FIT_ERROR, fit_config=None):
    """
    Convert raw pointer samples into a start point and bezier segments.

    Args:
        raw_points: sequence of {"x": .., "y": ..} mappings or [x, y] pairs
        simplify_tolerance: RDP tolerance in world units
        fit_error: maximum squared fitting error in world units squared
        fit_config: FitConfig supplying the reparameterization settings

    Returns:
        FitResult, or None when fewer than 2 distinct points remain
    """
    tracer = get_tracer()
    fit_config = fit_config or FitConfig()

    if len(raw_points) < 2:
        return None

    points = [_as_xy(p) for p in raw_points]
    deduped = remove_duplicate_points(points)
    if len(deduped) < 2:
        return None

    simplified = simplify_path(deduped, simplify_tolerance, distance_fn=segment_distances)
    if len(simplified) < 2:
        return None

    segments = fit_cubic_bezier(
        simplified,
        fit_error,
        reparam_error_factor=fit_config.reparam_error_factor,
        max_reparam_iterations=fit_config.max_reparam_iterations,
    )

    tracer.event(
        f"Fitted {len(segments)} segments from {len(raw_points)} samples "
        f"({len(simplified)} after simplification)"
    )

    return FitResult(start=list(simplified[0]), segments=segments)


def _as_xy(point):
    if isinstance(point, dict):
        return [float(point["x"]), float(point["y"])]
    return [float(point[0]), float(point[1])]


def fit_cubic_bezier(points, max_squared_error, reparam_error_factor=4.0,
                     max_reparam_iterations=4):
    """
    Fit one or more cubic bezier segments through a point sequence.

    The first segment starts at points[0] and the last ends at points[-1];
    split points become the end of one segment and the implicit start of the
    next. Pieces are processed from an explicit stack, left half first, so
    the output order follows the input.
    """
    pts = np.asarray(points, dtype=float)

    if len(pts) < 2:
        return []

    if len(pts) == 2:
        return [_line_to_segment(pts[0], pts[1])]

    tangent_start = _unit(pts[1] - pts[0])
    tangent_end = _unit(pts[-2] - pts[-1])

    segments = []
    stack = [(0, len(pts) - 1, tangent_start, tangent_end)]

    while stack:
        first, last, tangent_left, tangent_right = stack.pop()
        piece = pts[first:last + 1]

        if len(piece) == 2:
            segments.append(_line_to_segment(piece[0], piece[1]))
            continue

        bezier, split = _fit_piece(
            piece, tangent_left, tangent_right,
            max_squared_error, reparam_error_factor, max_reparam_iterations,
        )
        if bezier is not None:
            segments.append(_to_segment(bezier))
            continue

        split_index = first + split
        tangent_center = _center_tangent(pts, split_index)
        stack.append((split_index, last, tangent_center, tangent_right))
        stack.append((first, split_index, tangent_left, -tangent_center))

    return segments


def _fit_piece(piece, tangent_left, tangent_right, max_squared_error,
               reparam_error_factor, max_reparam_iterations):
    """
    Try to fit a single bezier to piece.

    Returns (bezier, split): bezier is None when the piece must be split,
    and split is the index of the worst-fitting sample.
    """
    u = _chord_length_parameterize(piece)
    bezier = _generate_bezier(piece, u, tangent_left, tangent_right)
    max_error, split = _compute_max_error(piece, bezier, u)

    if max_error < max_squared_error:
        return bezier, split

    # Close enough that reparameterizing may rescue the fit
    if max_error < max_squared_error * reparam_error_factor:
        for _ in range(max_reparam_iterations):
            u_prime = _reparameterize(piece, u, bezier)
            bezier = _generate_bezier(piece, u_prime, tangent_left, tangent_right)
            max_error, split = _compute_max_error(piece, bezier, u_prime)

            if max_error < max_squared_error:
                return bezier, split
            u = u_prime

    return None, split


def _line_to_segment(p0, p1):
    """Create a degenerate bezier for a straight line segment."""
    p0 = np.asarray(p0, dtype=float)
    p1 = np.asarray(p1, dtype=float)

    # Control points at 1/3 and 2/3 along the line
    c1 = p0 + (p1 - p0) / 3
    c2 = p0 + 2 * (p1 - p0) / 3

    return BezierSegment(cp1=c1.tolist(), cp2=c2.tolist(), end=p1.tolist())


def _to_segment(bezier):
    if not np.all(np.isfinite(bezier)):
        return _line_to_segment(bezier[0], bezier[3])
    return BezierSegment(
        cp1=bezier[1].tolist(),
        cp2=bezier[2].tolist(),
        end=bezier[3].tolist(),
    )


def _unit(vec):
    norm = np.hypot(vec[0], vec[1])
    if norm < 1e-10:
        return np.zeros(2)
    return vec / norm


def _center_tangent(points, center):
    """Average of the incoming and outgoing chord directions at center."""
    incoming = points[center] - points[center - 1]
    outgoing = points[center + 1] - points[center]
    return _unit((incoming + outgoing) / 2)


def _chord_length_parameterize(points):
    """Parameter values in [0, 1] proportional to cumulative chord length."""
    lengths = np.linalg.norm(np.diff(points, axis=0), axis=1)
    u = np.concatenate([[0.0], np.cumsum(lengths)])

    total = u[-1]
    if total > 0:
        u = u / total

    return u


def _bernstein_basis(u):
    mu = 1 - u
    return mu ** 3, 3 * u * mu ** 2, 3 * u ** 2 * mu, u ** 3


def _generate_bezier(points, u, tangent_left, tangent_right):
    """
    Solve for the control point offsets along the end tangents.

    The 2x2 normal equations are solved with Cramer's rule. Near-singular
    systems and alphas outside (eps, chord) fall back to the chord/3
    heuristic, which also keeps NaN and Inf out of the result.
    """
    first = points[0]
    last = points[-1]

    b0, b1, b2, b3 = _bernstein_basis(u)
    a1 = b1[:, None] * tangent_left
    a2 = b2[:, None] * tangent_right

    c00 = np.sum(a1 * a1)
    c01 = np.sum(a1 * a2)
    c11 = np.sum(a2 * a2)

    tmp = points - (np.outer(b0 + b1, first) + np.outer(b2 + b3, last))
    x0 = np.sum(a1 * tmp)
    x1 = np.sum(a2 * tmp)

    det = c00 * c11 - c01 * c01
    if abs(det) < DET_EPSILON:
        alpha_l = alpha_r = 0.0
    else:
        alpha_l = (x0 * c11 - x1 * c01) / det
        alpha_r = (c00 * x1 - c01 * x0) / det

    seg_len = np.hypot(*(last - first))
    epsilon = 1e-6 * seg_len

    if (not np.isfinite(alpha_l) or not np.isfinite(alpha_r) or
            alpha_l < epsilon or alpha_r < epsilon or
            alpha_l > seg_len or alpha_r > seg_len):
        alpha_l = alpha_r = seg_len / 3

    return np.array([
        first,
        first + tangent_left * alpha_l,
        last + tangent_right * alpha_r,
        last,
    ])


def _de_casteljau(ctrl, t):
    """Evaluate a bezier of any degree at one or many parameters."""
    t = np.asarray(t, dtype=float)[..., None]
    pts = [np.broadcast_to(c, t.shape[:-1] + (2,)) for c in ctrl]
    while len(pts) > 1:
        pts = [(1 - t) * a + t * b for a, b in zip(pts[:-1], pts[1:])]
    return pts[0]


def _compute_max_error(points, bezier, u):
    """
    Maximum squared distance over the interior samples and where it occurs.

    The split index always falls strictly inside the piece, so both halves
    of a split are shorter than the piece itself.
    """
    n = len(points)
    if n < 3:
        return 0.0, n // 2

    fitted = _de_casteljau(bezier, u[1:-1])
    diff = fitted - points[1:-1]
    dist = np.sum(diff * diff, axis=1)

    # Last occurrence of the maximum
    worst = len(dist) - 1 - int(np.argmax(dist[::-1]))
    return float(dist[worst]), worst + 1


def _reparameterize(points, u, bezier):
    """One Newton-Raphson step per sample towards its closest curve point."""
    d1 = 3 * np.diff(bezier, axis=0)
    d2 = 2 * np.diff(d1, axis=0)

    q = _de_casteljau(bezier, u)
    q1 = _de_casteljau(d1, u)
    q2 = _de_casteljau(d2, u)

    diff = q - points
    numerator = np.sum(diff * q1, axis=1)
    denominator = np.sum(q1 * q1, axis=1) + np.sum(diff * q2, axis=1)

    u_prime = u.copy()
    safe = np.abs(denominator) >= DET_EPSILON
    u_prime[safe] = u[safe] - numerator[safe] / denominator[safe]
    return u_prime
