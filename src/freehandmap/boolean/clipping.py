"""
Polygon difference primitive backed by shapely.

The subtraction engine only depends on the PolygonDifference call shape:
difference(subject, *clips) -> MultiPolygon, over closed [x, y] rings.
Any other polygon boolean library can be injected in its place.
"""

from typing import Callable

from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry.polygon import orient
from shapely.ops import unary_union
from shapely.validation import make_valid

from freehandmap.models import MultiPolygon


PolygonDifference = Callable[..., MultiPolygon]


def shapely_difference(subject, *clips):
    """
    Subtract clips from subject.

    Args:
        subject: Polygon ([outer, *holes]) or MultiPolygon (list of Polygons)
        clips: further Polygons or MultiPolygons

    Returns:
        MultiPolygon with closed rings: outer rings counter-clockwise, holes
        clockwise. Empty when nothing is left.

    Raises whatever shapely raises for rings it cannot build (for example
    fewer than 4 coordinates).
    """
    result = _to_shapely(subject)
    if clips:
        result = result.difference(unary_union([_to_shapely(c) for c in clips]))
    return _from_shapely(result)


def _is_single_polygon(geom):
    return isinstance(geom[0][0][0], (int, float))


def _to_shapely(geom):
    if not geom or not geom[0]:
        return ShapelyPolygon()

    polygons = [geom] if _is_single_polygon(geom) else geom

    shapes = []
    for rings in polygons:
        if not rings:
            continue
        poly = ShapelyPolygon(rings[0], rings[1:])
        # Freehand outlines can cross themselves
        if not poly.is_valid:
            # make_valid may add stray lines and points; keep the areas only
            poly = unary_union(list(_iter_polygons(make_valid(poly))))
        shapes.append(poly)

    if len(shapes) == 1:
        return shapes[0]
    return unary_union(shapes)


def _iter_polygons(geom):
    if geom.is_empty:
        return
    if geom.geom_type == "Polygon":
        yield geom
    elif hasattr(geom, "geoms"):
        for part in geom.geoms:
            yield from _iter_polygons(part)


def _from_shapely(geom):
    result = []
    for poly in _iter_polygons(geom):
        poly = orient(poly, sign=1.0)
        rings = [[[x, y] for x, y, *_ in poly.exterior.coords]]
        for hole in poly.interiors:
            rings.append([[x, y] for x, y, *_ in hole.coords])
        result.append(rings)
    return result
