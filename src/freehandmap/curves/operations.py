"""
Pure operations on curve collections.

Every function returns a new list and leaves its inputs untouched, so a
caller can keep the previous collection as an undo snapshot.
"""

from freehandmap.boolean.subtract import erase_cell_from_curves, erase_rectangle_from_curves
from freehandmap.geometry.curve_math import closest_point_on_bezier, get_curve_bounds
from freehandmap.models import Curve, generate_curve_id
from freehandmap.tracer import get_tracer, trace


GEOMETRY_FIELDS = ("start", "segments", "inner_rings", "closed")


def create_curve(fit_result, color=None, opacity=1.0, closed=False,
                 stroke_color=None, stroke_width=None, curve_id=None):
    """Build a persisted Curve from a fitted stroke."""
    return Curve(
        id=curve_id or generate_curve_id(),
        start=list(fit_result.start),
        segments=list(fit_result.segments),
        closed=closed,
        color=color,
        opacity=opacity,
        stroke_color=stroke_color,
        stroke_width=stroke_width,
    )


def add_curve(curves, curve):
    """Append a curve; curves may be None."""
    return list(curves or []) + [curve]


def remove_curve(curves, curve_id):
    """Drop the curve with the given id."""
    return [c for c in curves or [] if c.id != curve_id]


def update_curve(curves, curve_id, **updates):
    """
    Replace properties of one curve.

    Changing start, segments, inner_rings or closed bumps geometry_version so
    caches keyed on it are invalidated.
    """
    result = []
    for curve in curves or []:
        if curve.id == curve_id:
            if any(name in updates for name in GEOMETRY_FIELDS):
                updates = dict(updates, geometry_version=curve.geometry_version + 1)
            # Re-validate so updates get the same checks as construction
            curve = Curve.model_validate({**curve.model_dump(), **updates})
        result.append(curve)
    return result


def get_curve_by_id(curves, curve_id):
    """The curve with the given id, or None."""
    for curve in curves or []:
        if curve.id == curve_id:
            return curve
    return None


def get_curves_in_bounds(curves, bounds):
    """Curves whose control-point bounding box overlaps bounds."""
    found = []
    for curve in curves or []:
        curve_bounds = get_curve_bounds(curve.control_points())
        if curve_bounds is not None and curve_bounds.intersects(bounds):
            found.append(curve)
    return found


def get_curve_at_point(curves, point, threshold):
    """First curve whose outline passes within threshold of point, or None."""
    for curve in curves or []:
        for bezier in curve.iter_beziers():
            if closest_point_on_bezier(bezier, point).distance <= threshold:
                return curve
        # A curve with no segments is a lone point
        if not curve.segments:
            start = curve.start
            if (start[0] - point[0]) ** 2 + (start[1] - point[1]) ** 2 <= threshold ** 2:
                return curve
    return None


def clear_all_curves():
    return []


@trace(label="apply_operations")
def apply_operations(curves, operations, cell_size, config=None):
    """
    Apply a list of edit operations to a curve collection.

    Operations format:
    [
        {"op": "erase_cell", "x": 3, "y": 4},
        {"op": "erase_rect", "min_x": 0, "min_y": 0, "max_x": 64, "max_y": 32},
        {"op": "remove_curve", "curve_id": "curve-..."},
    ]

    Returns the updated list.
    """
    tracer = get_tracer()
    curves = list(curves or [])

    for i, op in enumerate(operations):
        op_type = op.get("op")

        with tracer.span(f"operation_{i}", module="operations", op_type=op_type):
            if op_type == "erase_cell":
                result = erase_cell_from_curves(
                    curves, op["x"], op["y"], cell_size, config=config,
                )
            elif op_type == "erase_rect":
                result = erase_rectangle_from_curves(
                    curves, op["min_x"], op["min_y"], op["max_x"], op["max_y"], config=config,
                )
            elif op_type == "remove_curve":
                result = remove_curve(curves, op.get("curve_id"))
            else:
                tracer.event(f"Unknown operation: {op_type}", level="WARN")
                result = None

            if result is None:
                tracer.event(f"Operation {op_type} changed nothing")
            else:
                curves = result

    return curves
