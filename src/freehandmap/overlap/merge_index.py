"""
Spatial merge index for same-colored cells and curves.

Where a painted cell and a filled curve share a color and overlap, their
interior borders are suppressed at render time so the two read as one
region. This is a rendering-time computation only; no curve or cell is
modified.
"""

import math

from freehandmap.config import OverlapConfig
from freehandmap.geometry.flatten import FlatPolygonCache
from freehandmap.geometry.polygon import cell_overlaps_curve, point_in_fill
from freehandmap.models import BorderSide, CellRect, MergeIndex, cell_key
from freehandmap.tracer import get_tracer, trace


# (side, midpoint x/y as a fraction of the cell, outward direction)
EDGE_OFFSETS = (
    (BorderSide.TOP, 0.5, 0.0, 0, -1),
    (BorderSide.RIGHT, 1.0, 0.5, 1, 0),
    (BorderSide.BOTTOM, 0.5, 1.0, 0, 1),
    (BorderSide.LEFT, 0.0, 0.5, -1, 0),
)

_flat_poly_cache = FlatPolygonCache()


def get_flat_poly_cache():
    """The module-wide cache used when build_merge_index gets none."""
    return _flat_poly_cache


@trace(label="build_merge_index")
def build_merge_index(cells, curves, cell_size, config=None, cache=None):
    """
    Build the merge index for a set of painted cells and curves.

    For every closed, filled curve, each same-colored cell overlapping it is
    recorded under the curve's index (as a world rect) and gets the border
    sides whose outward test point lands in the curve's fill suppressed.

    Args:
        cells: MergeCell objects (or anything with x, y and color)
        curves: list of Curve
        cell_size: grid cell size in world units
        config: OverlapConfig
        cache: FlatPolygonCache; defaults to the module-wide cache

    Returns:
        MergeIndex
    """
    tracer = get_tracer()
    config = config or OverlapConfig()
    cache = cache if cache is not None else _flat_poly_cache

    index = MergeIndex()
    if not cells or not curves:
        return index

    cell_colors = {cell_key(c.x, c.y): c.color for c in cells}
    offset = cell_size * config.edge_offset_ratio

    for ci, curve in enumerate(curves):
        if curve is None or not curve.closed or not curve.is_filled:
            continue

        outer = cache.get(curve)
        if len(outer) < 3:
            continue

        holes = [ring for ring in curve.inner_rings or [] if len(ring) >= 3]

        xs = [p[0] for p in outer]
        ys = [p[1] for p in outer]

        # Grid range of the curve, grown by one cell to catch adjacency
        grid_min_x = math.floor(min(xs) / cell_size) - 1
        grid_min_y = math.floor(min(ys) / cell_size) - 1
        grid_max_x = math.ceil(max(xs) / cell_size)
        grid_max_y = math.ceil(max(ys) / cell_size)

        for gx in range(grid_min_x, grid_max_x + 1):
            for gy in range(grid_min_y, grid_max_y + 1):
                key = cell_key(gx, gy)
                if cell_colors.get(key) != curve.color:
                    continue

                if not cell_overlaps_curve(gx, gy, cell_size, outer, holes):
                    continue

                world_x = gx * cell_size
                world_y = gy * cell_size

                index.curve_cell_rects.setdefault(ci, []).append(
                    CellRect(x=world_x, y=world_y, w=cell_size, h=cell_size)
                )

                for side, mx, my, dx, dy in EDGE_OFFSETS:
                    test_x = world_x + mx * cell_size + dx * offset
                    test_y = world_y + my * cell_size + dy * offset
                    if point_in_fill(test_x, test_y, outer, holes):
                        index.cell_borders_to_suppress.setdefault(key, set()).add(side)

    tracer.event(
        f"Merge index: {len(index.cell_borders_to_suppress)} cells with suppressed borders, "
        f"{len(index.curve_cell_rects)} curves with merged cells",
        level="DEBUG",
    )

    return index
