"""Tests for the cell/curve merge index."""

from freehandmap.config import OverlapConfig
from freehandmap.geometry.flatten import FlatPolygonCache
from freehandmap.models import BorderSide, MergeCell
from freehandmap.overlap.merge_index import build_merge_index, get_flat_poly_cache


class TestBuildMergeIndex:
    """Tests for border suppression and merged cell rects."""

    def test_borders_facing_fill_are_suppressed(self, make_curve):
        curve = make_curve([[0, 0], [64, 0], [64, 64], [0, 64]])
        cells = [
            MergeCell(x=0, y=0, color="red"),
            MergeCell(x=1, y=1, color="red"),
            MergeCell(x=0, y=1, color="blue"),
        ]

        index = build_merge_index(cells, [curve], 32, cache=FlatPolygonCache())

        assert index.cell_borders_to_suppress["0,0"] == {BorderSide.RIGHT, BorderSide.BOTTOM}
        assert index.cell_borders_to_suppress["1,1"] == {BorderSide.TOP, BorderSide.LEFT}
        assert "0,1" not in index.cell_borders_to_suppress

    def test_cell_rects_recorded_per_curve_index(self, make_curve):
        other = make_curve([[500, 500], [510, 500], [510, 510]], curve_id="other", color="green")
        curve = make_curve([[0, 0], [64, 0], [64, 64], [0, 64]])
        cells = [MergeCell(x=0, y=0, color="red"), MergeCell(x=1, y=1, color="red")]

        index = build_merge_index(cells, [other, curve], 32, cache=FlatPolygonCache())

        assert list(index.curve_cell_rects) == [1]
        rects = index.curve_cell_rects[1]
        assert [(r.x, r.y, r.w, r.h) for r in rects] == [(0, 0, 32, 32), (32, 32, 32, 32)]

    def test_colors_must_match_exactly(self, make_curve):
        curve = make_curve([[0, 0], [64, 0], [64, 64], [0, 64]], color="#ff0000")
        cells = [MergeCell(x=0, y=0, color="#FF0000")]

        index = build_merge_index(cells, [curve], 32, cache=FlatPolygonCache())

        assert index.cell_borders_to_suppress == {}
        assert index.curve_cell_rects == {}

    def test_unfilled_and_open_curves_skipped(self, make_curve, open_stroke):
        unfilled = make_curve([[0, 0], [64, 0], [64, 64], [0, 64]], color=None)
        cells = [MergeCell(x=0, y=0, color="red")]

        index = build_merge_index(cells, [unfilled, open_stroke], 32, cache=FlatPolygonCache())

        assert index.curve_cell_rects == {}

    def test_cells_in_hole_not_merged(self, make_curve):
        curve = make_curve(
            [[0, 0], [96, 0], [96, 96], [0, 96]],
            inner_rings=[[[32, 32], [64, 32], [64, 64], [32, 64]]],
        )
        cells = [MergeCell(x=1, y=1, color="red"), MergeCell(x=0, y=1, color="red")]

        index = build_merge_index(cells, [curve], 32, cache=FlatPolygonCache())

        assert "1,1" not in index.cell_borders_to_suppress
        # The neighbour's test point in the hole is not suppressed
        assert BorderSide.RIGHT not in index.cell_borders_to_suppress["0,1"]
        assert BorderSide.TOP in index.cell_borders_to_suppress["0,1"]

    def test_edge_offset_is_configurable(self, make_curve):
        # Fill ends 1 unit past the cell's right edge
        curve = make_curve([[0, 0], [33, 0], [33, 32], [0, 32]])
        cells = [MergeCell(x=0, y=0, color="red")]

        near = build_merge_index(cells, [curve], 32, cache=FlatPolygonCache())
        far = build_merge_index(
            cells, [curve], 32, config=OverlapConfig(edge_offset_ratio=0.1), cache=FlatPolygonCache(),
        )

        assert BorderSide.RIGHT in near.cell_borders_to_suppress["0,0"]
        assert "0,0" not in far.cell_borders_to_suppress

    def test_empty_inputs(self, square_curve):
        assert build_merge_index([], [square_curve], 32).curve_cell_rects == {}
        assert build_merge_index([MergeCell(x=0, y=0, color="red")], [], 32).curve_cell_rects == {}

    def test_module_cache_used_by_default(self, make_curve):
        cache = get_flat_poly_cache()
        cache.clear()
        curve = make_curve([[0, 0], [64, 0], [64, 64], [0, 64]], curve_id="cached")

        build_merge_index([MergeCell(x=0, y=0, color="red")], [curve], 32)

        assert len(cache) == 1
