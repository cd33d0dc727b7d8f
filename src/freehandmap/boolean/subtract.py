"""
Boolean subtraction of grid cells and rectangles from closed curves.

After an erase, the curve's start and segments ARE the modified geometry:
the boundary becomes straight segments stored as degenerate beziers and any
holes are kept on inner_rings. There is no side list of erased cells.
"""

from freehandmap.boolean.clipping import shapely_difference
from freehandmap.config import EngineConfig
from freehandmap.geometry.flatten import flatten_curve
from freehandmap.geometry.polygon import (
    cell_overlaps_curve, close_ring, ensure_ccw, ensure_cw, open_ring,
    polygon_area, simplify_ring,
)
from freehandmap.models import BezierSegment, Curve, generate_split_id
from freehandmap.tracer import get_tracer, trace


def curve_to_polygon(curve, config=None):
    """
    Build the subject polygon [outer, *holes] for a curve.

    The outer ring is the flattened boundary, counter-clockwise; holes with
    at least 3 points are closed and made clockwise.
    """
    config = config or EngineConfig()

    outer = ensure_ccw(flatten_curve(
        curve, config.flatten.steps_per_segment, config.flatten.linear_epsilon
    ))
    rings = [outer]

    for ring in curve.inner_rings or []:
        if len(ring) < 3:
            continue
        rings.append(ensure_cw(close_ring(ring)))

    return rings


def polygon_to_curve(rings, template, new_id=None, geometry_version=0):
    """
    Convert one polygon of a difference result back into a Curve.

    Outer ring edges become linear beziers (control points at 1/3 and 2/3);
    remaining rings become open inner_rings. Style comes from template.
    """
    outer = open_ring(rings[0]) if rings else []

    fields = dict(
        id=new_id or template.id,
        closed=True,
        color=template.color,
        opacity=template.opacity,
        stroke_color=template.stroke_color,
        stroke_width=template.stroke_width,
        geometry_version=geometry_version,
    )

    if len(outer) < 3:
        # Degenerate piece: keep a placeholder rather than fail
        start = outer[0] if outer else [0.0, 0.0]
        return Curve(start=list(start), segments=[], **fields)

    segments = []
    for prev, curr in zip(outer, outer[1:]):
        dx = curr[0] - prev[0]
        dy = curr[1] - prev[1]
        segments.append(BezierSegment(
            cp1=[prev[0] + dx / 3, prev[1] + dy / 3],
            cp2=[prev[0] + 2 * dx / 3, prev[1] + 2 * dy / 3],
            end=list(curr),
        ))

    inner_rings = []
    for ring in rings[1:]:
        ring = open_ring(ring)
        if len(ring) >= 3:
            inner_rings.append(ring)

    return Curve(
        start=list(outer[0]),
        segments=segments,
        inner_rings=inner_rings or None,
        **fields,
    )


def rect_polygon(min_x, min_y, max_x, max_y):
    """Counter-clockwise clip polygon for a rectangle: 4 corners and closing point."""
    x0, x1 = sorted((min_x, max_x))
    y0, y1 = sorted((min_y, max_y))
    return [[[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]]]


def _rect_misses_ring(ring, min_x, min_y, max_x, max_y):
    """True when the ring's bounding box does not overlap the rectangle's interior."""
    xs = [p[0] for p in ring]
    ys = [p[1] for p in ring]
    x0, x1 = sorted((min_x, max_x))
    y0, y1 = sorted((min_y, max_y))
    return max(xs) <= x0 or min(xs) >= x1 or max(ys) <= y0 or min(ys) >= y1


def _total_area(multi):
    return sum(polygon_area(poly) for poly in multi or [] if poly)


def _difference_pieces(curve, rect, min_area, difference, config):
    """
    Subtract the rectangle (min_x, min_y, max_x, max_y) from a closed curve.

    Returns the non-sliver polygons of the difference with simplified rings,
    or None when the curve must be kept as it is: a degenerate subject, a
    failing primitive, or a rectangle that removes no area. The last case
    compares against the repaired subject, so self-crossing outlines that
    the primitive splits into several polygons are still seen as untouched.
    """
    tracer = get_tracer()

    subject = curve_to_polygon(curve, config)
    if len(subject[0]) < 4:
        return None

    if _rect_misses_ring(subject[0], *rect):
        return None

    try:
        result = difference(subject, rect_polygon(*rect))
        repaired = difference(subject)
    except Exception as e:
        tracer.event(
            f"Difference failed for {curve.id}, keeping curve: {type(e).__name__}: {str(e)[:100]}",
            level="WARN",
        )
        return None

    result = result or []
    kept_area = _total_area(repaired)
    if abs(_total_area(result) - kept_area) <= 1e-6 * max(kept_area, 1.0):
        return None

    epsilon = config.boolean.ring_simplify_epsilon

    pieces = []
    for poly in result:
        if not poly or polygon_area(poly) < min_area:
            continue
        pieces.append([simplify_ring(ring, epsilon) for ring in poly])

    return pieces


def _pieces_to_curves(pieces, curve):
    curves = []
    for i, rings in enumerate(pieces):
        if i == 0:
            curves.append(polygon_to_curve(rings, curve, curve.id, curve.geometry_version + 1))
        else:
            curves.append(polygon_to_curve(rings, curve, generate_split_id(curve.id)))
    return curves


def subtract_rect_from_curve(curve, min_x, min_y, max_x, max_y, min_area,
                             difference=shapely_difference, config=None):
    """
    Subtract an axis-aligned rectangle from a curve.

    Returns an empty list when the curve is fully erased, one curve when it
    was cut, and several when it was split apart. Open curves and curves the
    primitive cannot process come back unchanged as [curve], as do curves
    the rectangle removes no area from.
    """
    config = config or EngineConfig()

    if not curve.closed:
        return [curve]

    pieces = _difference_pieces(curve, (min_x, min_y, max_x, max_y), min_area, difference, config)
    if pieces is None:
        return [curve]

    return _pieces_to_curves(pieces, curve)


def subtract_cell_from_curve(curve, cell_x, cell_y, cell_size,
                             difference=shapely_difference, config=None):
    """
    Subtract one grid cell from a curve.

    Result polygons smaller than sliver_area_ratio of the cell area are
    discarded as floating-point slivers.
    """
    config = config or EngineConfig()

    x0 = cell_x * cell_size
    y0 = cell_y * cell_size
    min_area = cell_size * cell_size * config.boolean.sliver_area_ratio

    return subtract_rect_from_curve(
        curve, x0, y0, x0 + cell_size, y0 + cell_size, min_area,
        difference=difference, config=config,
    )


def find_curve_at_cell(curves, cell_x, cell_y, cell_size, cache=None, config=None):
    """
    Index of the first closed curve whose fill overlaps the cell, or -1.

    Cells whose center sits inside a hole are not matched. Curves are
    flattened with config.flatten, the same ring the subtraction uses.
    """
    flat = (config or EngineConfig()).flatten

    for i, curve in enumerate(curves or []):
        if curve is None or not curve.closed:
            continue

        if cache is not None:
            outer = cache.get(curve, flat.steps_per_segment)
        else:
            outer = flatten_curve(curve, flat.steps_per_segment, flat.linear_epsilon)
        if len(outer) < 3:
            continue

        holes = [ring for ring in curve.inner_rings or [] if len(ring) >= 3]

        if cell_overlaps_curve(cell_x, cell_y, cell_size, outer, holes):
            return i

    return -1


@trace(label="erase_cell_from_curves")
def erase_cell_from_curves(curves, cell_x, cell_y, cell_size,
                           difference=shapely_difference, config=None, cache=None):
    """
    Erase a grid cell from the curve it falls in.

    Returns:
        new list with that curve replaced by its subtraction result, or None
        when no curve overlaps the cell or the cell removes no area from it
    """
    tracer = get_tracer()

    if not curves:
        return None

    idx = find_curve_at_cell(curves, cell_x, cell_y, cell_size, cache=cache, config=config)
    if idx == -1:
        return None

    affected = curves[idx]
    result = subtract_cell_from_curve(
        affected, cell_x, cell_y, cell_size, difference=difference, config=config,
    )

    if len(result) == 1 and result[0] is affected:
        return None

    tracer.event(f"Erased cell ({cell_x},{cell_y}) from {affected.id}: {len(result)} pieces left")

    return list(curves[:idx]) + result + list(curves[idx + 1:])


@trace(label="erase_rectangle_from_curves")
def erase_rectangle_from_curves(curves, min_x, min_y, max_x, max_y,
                                difference=shapely_difference, config=None):
    """
    Subtract a world-space rectangle from every closed curve in one pass.

    Curves the rectangle does not touch keep their original object.

    Returns:
        new curve list, or None when no curve changed
    """
    tracer = get_tracer()
    config = config or EngineConfig()

    if not curves:
        return None

    rect = (min_x, min_y, max_x, max_y)
    min_area = config.boolean.rectangle_min_area

    changed = 0
    new_curves = []

    for curve in curves:
        if not curve.closed:
            new_curves.append(curve)
            continue

        pieces = _difference_pieces(curve, rect, min_area, difference, config)
        if pieces is None:
            new_curves.append(curve)
            continue

        changed += 1
        new_curves.extend(_pieces_to_curves(pieces, curve))

    if not changed:
        return None

    tracer.event(f"Rectangle erase changed {changed} of {len(curves)} curves")
    return new_curves
