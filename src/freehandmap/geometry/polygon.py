"""
Polygon ring utilities shared by the boolean engine and the overlap index.

Rings are lists of [x, y] points. A closed ring repeats its first point at
the end; helpers that care say which form they expect.
"""

import numpy as np


def ring_is_closed(ring):
    return len(ring) > 1 and ring[0][0] == ring[-1][0] and ring[0][1] == ring[-1][1]


def close_ring(ring):
    """Return the ring with its first point repeated at the end."""
    ring = [list(p) for p in ring]
    if ring and not ring_is_closed(ring):
        ring.append(list(ring[0]))
    return ring


def open_ring(ring):
    """Return the ring without a trailing copy of its first point."""
    ring = [list(p) for p in ring]
    if ring_is_closed(ring):
        ring = ring[:-1]
    return ring


def signed_area(ring):
    """
    Shoelace area of a ring.

    Positive for counter-clockwise winding in a y-up frame. Works on open or
    closed rings; the duplicated closing point contributes nothing.
    """
    if len(ring) < 3:
        return 0.0

    pts = np.asarray(ring, dtype=float)
    x = pts[:, 0]
    y = pts[:, 1]
    return float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)) / 2


def ensure_ccw(ring):
    """Ring with counter-clockwise (positive area) winding."""
    if signed_area(ring) < 0:
        return ring[::-1]
    return ring


def ensure_cw(ring):
    """Ring with clockwise (negative area) winding."""
    if signed_area(ring) > 0:
        return ring[::-1]
    return ring


def polygon_area(rings):
    """Absolute filled area of [outer, *holes]."""
    if not rings:
        return 0.0
    area = abs(signed_area(rings[0]))
    for hole in rings[1:]:
        area -= abs(signed_area(hole))
    return abs(area)


def simplify_ring(ring, epsilon=0.1):
    """
    Remove collinear vertices from a ring.

    A vertex is dropped when the cross product of the vectors to its
    neighbours is within epsilon. Keeps vertex counts bounded across repeated
    boolean operations. If fewer than 3 vertices would survive, the ring is
    returned as is.
    """
    if len(ring) < 4:
        return ring

    closed = ring_is_closed(ring)
    pts = ring[:-1] if closed else ring
    if len(pts) < 3:
        return ring

    result = []
    n = len(pts)
    for i in range(n):
        prev = pts[i - 1]
        curr = pts[i]
        nxt = pts[(i + 1) % n]

        cross = ((curr[0] - prev[0]) * (nxt[1] - prev[1]) -
                 (curr[1] - prev[1]) * (nxt[0] - prev[0]))
        if abs(cross) > epsilon:
            result.append(curr)

    if len(result) < 3:
        return ring

    if closed:
        result.append(list(result[0]))

    return result


def point_in_polygon(px, py, poly):
    """Ray-casting point-in-polygon test; poly may be open or closed."""
    inside = False
    n = len(poly)
    j = n - 1
    for i in range(n):
        xi, yi = poly[i][0], poly[i][1]
        xj, yj = poly[j][0], poly[j][1]
        if (yi > py) != (yj > py) and px < (xj - xi) * (py - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def point_in_fill(px, py, outer, holes=None):
    """True when the point is inside the outer ring and outside every hole."""
    if not point_in_polygon(px, py, outer):
        return False
    for hole in holes or []:
        if point_in_polygon(px, py, hole):
            return False
    return True


_LEFT, _RIGHT, _BOTTOM, _TOP = 1, 2, 4, 8


def segment_intersects_rect(x1, y1, x2, y2, rx0, ry0, rx1, ry1):
    """Cohen-Sutherland segment versus axis-aligned rectangle test."""

    def outcode(x, y):
        code = 0
        if x < rx0:
            code |= _LEFT
        elif x > rx1:
            code |= _RIGHT
        if y < ry0:
            code |= _BOTTOM
        elif y > ry1:
            code |= _TOP
        return code

    oc1 = outcode(x1, y1)
    oc2 = outcode(x2, y2)

    for _ in range(20):
        if not (oc1 | oc2):
            return True
        if oc1 & oc2:
            return False

        oc_out = oc1 or oc2

        if oc_out & _TOP:
            x = x1 + (x2 - x1) * (ry1 - y1) / (y2 - y1)
            y = ry1
        elif oc_out & _BOTTOM:
            x = x1 + (x2 - x1) * (ry0 - y1) / (y2 - y1)
            y = ry0
        elif oc_out & _RIGHT:
            y = y1 + (y2 - y1) * (rx1 - x1) / (x2 - x1)
            x = rx1
        else:
            y = y1 + (y2 - y1) * (rx0 - x1) / (x2 - x1)
            x = rx0

        if oc_out == oc1:
            x1, y1 = x, y
            oc1 = outcode(x1, y1)
        else:
            x2, y2 = x, y
            oc2 = outcode(x2, y2)

    return False


def polygon_intersects_rect(poly, rx0, ry0, rx1, ry1):
    """True when any edge of the polygon touches the rectangle."""
    n = len(poly)
    for i in range(n):
        a = poly[i]
        b = poly[(i + 1) % n]
        if segment_intersects_rect(a[0], a[1], b[0], b[1], rx0, ry0, rx1, ry1):
            return True
    return False


def cell_overlaps_curve(cell_x, cell_y, cell_size, outer, holes=None):
    """
    Check whether a grid cell overlaps a curve's filled region.

    A center inside the outer ring counts unless it sits in a hole. A center
    outside still counts if a corner is inside or an outer edge crosses the
    cell, which errs towards reporting overlap for cells the boundary only
    grazes.
    """
    x0 = cell_x * cell_size
    y0 = cell_y * cell_size
    cx = x0 + cell_size * 0.5
    cy = y0 + cell_size * 0.5

    if point_in_polygon(cx, cy, outer):
        for hole in holes or []:
            if point_in_polygon(cx, cy, hole):
                return False
        return True

    x1 = x0 + cell_size
    y1 = y0 + cell_size
    corners = ((x0, y0), (x1, y0), (x0, y1), (x1, y1))
    if any(point_in_polygon(x, y, outer) for x, y in corners):
        return True

    return polygon_intersects_rect(outer, x0, y0, x1, y1)
