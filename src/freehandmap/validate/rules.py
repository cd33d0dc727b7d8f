"""
Validation rules for curve collections.

Checks the data-model invariants that the editing operations are meant to
preserve, so a loaded or edited scene can be audited.
"""

import math

from shapely.geometry import Polygon
from shapely.validation import make_valid

from freehandmap.geometry.flatten import flatten_curve
from freehandmap.models import CheckResult, Severity, ValidationReport
from freehandmap.tracer import get_tracer, trace


@trace(label="run_validation")
def run_validation(curves):
    """
    Run all validation checks on a curve collection.

    Returns ValidationReport with all check results.
    """
    tracer = get_tracer()

    checks = [
        check_finite_geometry(curves),
        check_holes_inside_outer(curves),
        check_holes_disjoint(curves),
        check_degenerate_closed_curves(curves),
    ]

    report = ValidationReport(checks=checks)
    tracer.event(f"Validation complete: {report.error_count} errors, {report.warning_count} warnings")

    return report


def check_finite_geometry(curves):
    """Every stored coordinate must be a finite number."""
    bad = []
    for curve in curves:
        if not all(math.isfinite(v) for p in curve.control_points() for v in p):
            bad.append(curve.id)

    return CheckResult(
        rule_id="finite_geometry",
        severity=Severity.ERROR,
        passed=not bad,
        message=(f"{len(bad)} curves contain NaN or infinite coordinates" if bad
                 else "All curve coordinates are finite"),
        evidence={"curve_ids": bad},
    )


def _outer_polygon(curve):
    ring = flatten_curve(curve)
    if len(ring) < 4:
        return None
    poly = Polygon(ring)
    if not poly.is_valid:
        poly = make_valid(poly)
    return poly


def _hole_polygons(curve):
    return [Polygon(ring) for ring in curve.inner_rings or [] if len(ring) >= 3]


def check_holes_inside_outer(curves):
    """Inner rings must lie inside their curve's outer boundary."""
    bad = []
    for curve in curves:
        if not curve.closed or not curve.inner_rings:
            continue
        outer = _outer_polygon(curve)
        if outer is None:
            bad.append(curve.id)
            continue
        if any(not outer.contains(hole) for hole in _hole_polygons(curve)):
            bad.append(curve.id)

    return CheckResult(
        rule_id="holes_inside_outer",
        severity=Severity.ERROR,
        passed=not bad,
        message=(f"{len(bad)} curves have holes outside their boundary" if bad
                 else "All holes lie inside their curve boundary"),
        evidence={"curve_ids": bad},
    )


def check_holes_disjoint(curves):
    """Inner rings of a curve must not overlap each other."""
    bad = []
    for curve in curves:
        holes = _hole_polygons(curve)
        overlapping = any(
            holes[i].intersection(holes[j]).area > 0
            for i in range(len(holes))
            for j in range(i + 1, len(holes))
        )
        if overlapping:
            bad.append(curve.id)

    return CheckResult(
        rule_id="holes_disjoint",
        severity=Severity.WARN,
        passed=not bad,
        message=(f"{len(bad)} curves have overlapping holes" if bad
                 else "No overlapping holes"),
        evidence={"curve_ids": bad},
    )


def check_degenerate_closed_curves(curves):
    """Closed curves without segments are placeholders left by bad input."""
    bad = [c.id for c in curves if c.closed and not c.segments]

    return CheckResult(
        rule_id="degenerate_closed_curves",
        severity=Severity.WARN,
        passed=not bad,
        message=(f"{len(bad)} closed curves have no segments" if bad
                 else "All closed curves have segments"),
        evidence={"curve_ids": bad},
    )
