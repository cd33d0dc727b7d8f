"""
SVG emission for curve layers.

Closed curves are filled with the even-odd rule so inner rings render as
holes. Path data is cached per (curve id, geometry version), the same
invalidation contract a canvas renderer follows.
"""

from collections import OrderedDict

import svgwrite

from freehandmap.tracer import get_tracer, trace


def _fmt(point):
    return f"{point[0]:.2f} {point[1]:.2f}"


def bezier_to_svg_path(start, segments, closed=False):
    """Path data for a start point and its bezier segments."""
    parts = [f"M {_fmt(start)}"]
    for seg in segments:
        parts.append(f"C {_fmt(seg.cp1)} {_fmt(seg.cp2)} {_fmt(seg.end)}")
    if closed:
        parts.append("Z")
    return " ".join(parts)


def curve_to_svg_path(curve):
    """
    Path data for a curve, holes included as extra subpaths.

    Holes are only emitted for closed curves; an open stroke has no fill to
    cut them from.
    """
    d = bezier_to_svg_path(curve.start, curve.segments, curve.closed)

    if curve.closed:
        for ring in curve.inner_rings or []:
            if len(ring) < 3:
                continue
            hole = [f"M {_fmt(ring[0])}"]
            hole.extend(f"L {_fmt(p)}" for p in ring[1:])
            hole.append("Z")
            d += " " + " ".join(hole)

    return d


class SvgPathCache:
    """Path data memoized per (curve id, geometry version)."""

    def __init__(self, max_entries=1024):
        self.max_entries = max_entries
        self._entries = OrderedDict()

    def __len__(self):
        return len(self._entries)

    def get(self, curve):
        key = (curve.id, curve.geometry_version)
        d = self._entries.get(key)
        if d is None:
            d = curve_to_svg_path(curve)
            self._entries[key] = d
            if len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        else:
            self._entries.move_to_end(key)
        return d


def _svg_id(curve_id):
    # XML ids may not start with a digit
    return curve_id if curve_id[:1].isalpha() else f"c-{curve_id}"


@trace(label="emit_curves_svg")
def emit_curves_svg(curves, width, height, stroke_width=1.5, stroke_color="black", path_cache=None):
    """
    Create an SVG document containing all curves.

    Args:
        curves: list of Curve objects, drawn in order
        width: canvas width in world units
        height: canvas height in world units
        stroke_width: default line width for curves without their own
        stroke_color: default stroke color for curves without their own
        path_cache: optional SvgPathCache reused across renders

    Returns:
        svgwrite.Drawing object
    """
    tracer = get_tracer()

    # Colors come straight from user data; skip svgwrite's attribute validator
    dwg = svgwrite.Drawing(size=(f"{width}px", f"{height}px"), debug=False)
    dwg.viewbox(0, 0, width, height)

    dwg.defs.add(dwg.style("""
        .curve { stroke-linecap: round; stroke-linejoin: round; }
    """))

    group = dwg.g(id="curves", class_="curve")

    for curve in curves:
        d = path_cache.get(curve) if path_cache is not None else curve_to_svg_path(curve)
        filled = curve.closed and curve.is_filled

        group.add(dwg.path(
            d=d,
            id=_svg_id(curve.id),
            fill=curve.color if filled else "none",
            fill_opacity=curve.opacity,
            fill_rule="evenodd",
            stroke=curve.stroke_color or stroke_color,
            stroke_width=curve.stroke_width if curve.stroke_width is not None else stroke_width,
        ))

    dwg.add(group)

    tracer.event(f"SVG emitted with {len(curves)} curves")

    return dwg
