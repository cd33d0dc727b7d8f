"""Tests for cell and rectangle erasing."""

import pytest

from freehandmap.boolean.clipping import shapely_difference
from freehandmap.boolean.subtract import (
    curve_to_polygon, erase_cell_from_curves, erase_rectangle_from_curves,
    find_curve_at_cell, polygon_to_curve, rect_polygon, subtract_cell_from_curve,
    subtract_rect_from_curve,
)
from freehandmap.config import EngineConfig
from freehandmap.geometry.flatten import FlatPolygonCache
from freehandmap.geometry.polygon import polygon_area, signed_area
from freehandmap.models import BezierSegment, Curve


def _area(curve):
    return polygon_area(curve_to_polygon(curve))


def _failing_difference(subject, *clips):
    raise RuntimeError("boolean engine exploded")


@pytest.fixture
def bowtie_curve(make_curve):
    """Self-crossing outline: two triangles of area 100 meeting at (10, 10)."""
    return make_curve([[0, 0], [20, 20], [20, 0], [0, 20]], curve_id="bowtie")


@pytest.fixture
def arch_curve():
    """Closed arch: a straight base from (0, 0) to (40, 0) and a cubic back over the top."""
    return Curve(
        id="arch",
        start=[0, 0],
        segments=[
            BezierSegment(cp1=[40 / 3, 0], cp2=[80 / 3, 0], end=[40, 0]),
            BezierSegment(cp1=[40, 40], cp2=[0, 40], end=[0, 0]),
        ],
        closed=True,
        color="red",
    )


class TestShapelyDifference:
    """Tests for the polygon difference primitive."""

    def test_hole_punched(self):
        square = [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]]

        result = shapely_difference(square, rect_polygon(4, 4, 6, 6))

        assert len(result) == 1
        outer, hole = result[0]
        assert signed_area(outer) == pytest.approx(100)
        assert signed_area(hole) == pytest.approx(-4)
        assert outer[0] == outer[-1]

    def test_full_cover_is_empty(self):
        square = [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]]

        assert shapely_difference(square, rect_polygon(-1, -1, 11, 11)) == []

    def test_self_intersecting_subject(self):
        bowtie = [[[0, 0], [10, 10], [10, 0], [0, 10], [0, 0]]]

        result = shapely_difference(bowtie, rect_polygon(20, 20, 30, 30))

        assert sum(polygon_area(p) for p in result) == pytest.approx(50)


class TestRectPolygon:
    def test_corners_normalized(self):
        ring = rect_polygon(10, 10, 0, 0)[0]

        assert ring[0] == [0, 0]
        assert ring[2] == [10, 10]
        assert len(ring) == 5
        assert signed_area(ring) > 0


class TestPolygonToCurve:
    def test_edges_become_linear_segments(self, square_curve):
        rings = [[[0, 0], [20, 0], [20, 20], [0, 20], [0, 0]]]

        curve = polygon_to_curve(rings, square_curve, "new", 3)

        assert curve.id == "new"
        assert curve.geometry_version == 3
        assert curve.closed
        assert curve.color == "red"
        assert curve.start == [0, 0]
        # The closing edge back to start is implicit
        assert len(curve.segments) == 3
        assert curve.segments[0].cp1 == pytest.approx([20 / 3, 0])
        assert curve.segments[-1].end == [0, 20]
        assert curve.inner_rings is None

    def test_degenerate_outer_gives_placeholder(self, square_curve):
        curve = polygon_to_curve([[[1, 1], [2, 2]]], square_curve)

        assert curve.segments == []
        assert curve.start == [1, 1]
        assert curve.id == "square"


class TestSubtractCell:
    """Tests for single-curve subtraction."""

    def test_cell_covering_curve_erases_it(self, square_curve):
        assert subtract_cell_from_curve(square_curve, 0, 0, 10) == []

    def test_inner_cell_makes_hole(self, square_curve):
        result = subtract_cell_from_curve(square_curve, 2, 2, 2)

        assert len(result) == 1
        curve = result[0]
        assert curve.id == "square"
        assert curve.geometry_version == 1
        assert _area(curve) == pytest.approx(96)
        assert len(curve.inner_rings) == 1
        assert abs(signed_area(curve.inner_rings[0])) == pytest.approx(4)

    def test_corner_cell_notches(self, square_curve):
        result = subtract_cell_from_curve(square_curve, 0, 0, 5)

        assert len(result) == 1
        assert _area(result[0]) == pytest.approx(75)
        assert result[0].inner_rings is None

    def test_open_curve_unchanged(self, open_stroke):
        result = subtract_cell_from_curve(open_stroke, 0, 0, 10)

        assert result == [open_stroke]
        assert result[0] is open_stroke

    def test_failing_primitive_keeps_curve(self, square_curve):
        result = subtract_cell_from_curve(
            square_curve, 0, 0, 5, difference=_failing_difference,
        )

        assert len(result) == 1
        assert result[0] is square_curve

    def test_slivers_dropped(self, make_curve):
        """A piece smaller than 1% of the cell area disappears."""
        curve = make_curve([[0, 0], [10.05, 0], [10.05, 10], [0, 10]])

        result = subtract_cell_from_curve(curve, 0, 0, 10)

        assert result == []

    def test_split_keeps_id_on_one_piece(self, dumbbell_curve):
        result = subtract_rect_from_curve(dumbbell_curve, 12, -1, 18, 11, 1.0)

        assert len(result) == 2
        assert [_area(c) for c in result] == pytest.approx([104, 104])
        assert result[0].id == "dumbbell"
        assert result[0].geometry_version == 1
        assert result[1].id.startswith("dumbbell-")
        assert result[1].geometry_version == 0
        assert all(c.color == "red" for c in result)

    def test_erased_hole_survives_second_erase(self, square_curve):
        """Existing holes are part of the subject of later erases."""
        first = subtract_cell_from_curve(square_curve, 2, 2, 2)[0]

        second = subtract_cell_from_curve(first, 0, 0, 2)

        assert len(second) == 1
        assert _area(second[0]) == pytest.approx(92)
        assert len(second[0].inner_rings) == 1
        assert second[0].geometry_version == 2


class TestEraseCell:
    """Tests for erasing a cell from a curve collection."""

    def test_finds_containing_curve(self, square_curve, make_curve):
        other = make_curve([[20, 20], [30, 20], [30, 30], [20, 30]], curve_id="other")
        curves = [other, square_curve]

        assert find_curve_at_cell(curves, 0, 0, 5) == 1
        assert find_curve_at_cell(curves, 5, 5, 5) == 0
        assert find_curve_at_cell(curves, 10, 10, 5) == -1

    def test_open_curves_not_found(self, open_stroke):
        assert find_curve_at_cell([open_stroke], 0, 0, 5) == -1

    def test_cell_in_hole_not_found(self, square_curve):
        holed = subtract_cell_from_curve(square_curve, 2, 2, 2)

        assert find_curve_at_cell(holed, 2, 2, 2) == -1

    def test_find_with_cache(self, square_curve):
        cache = FlatPolygonCache()

        assert find_curve_at_cell([square_curve], 1, 1, 5, cache=cache) == 0
        assert len(cache) == 1

    def test_replaces_in_place(self, square_curve, make_curve):
        before = make_curve([[50, 50], [60, 50], [60, 60]], curve_id="before")
        after = make_curve([[70, 70], [80, 70], [80, 80]], curve_id="after")
        curves = [before, square_curve, after]

        result = erase_cell_from_curves(curves, 2, 2, 2)

        assert [c.id for c in result] == ["before", "square", "after"]
        assert result[0] is before
        assert result[2] is after
        assert curves[1] is square_curve

    def test_full_erase_removes_curve(self, square_curve):
        assert erase_cell_from_curves([square_curve], 0, 0, 10) == []

    def test_no_hit_returns_none(self, square_curve):
        assert erase_cell_from_curves([square_curve], 9, 9, 10) is None
        assert erase_cell_from_curves([], 0, 0, 10) is None

    def test_cell_sharing_only_an_edge_returns_none(self, square_curve):
        """Cell (1, 0) at size 10 touches the square along x = 10 only."""
        assert subtract_cell_from_curve(square_curve, 1, 0, 10)[0] is square_curve
        assert erase_cell_from_curves([square_curve], 1, 0, 10) is None

    def test_lookup_uses_configured_flattening(self, arch_curve):
        """Two steps per segment turn the arch into a triangle that misses the cell."""
        config = EngineConfig()
        config.flatten.steps_per_segment = 2

        assert find_curve_at_cell([arch_curve], 2, 5, 4) == 0
        assert find_curve_at_cell([arch_curve], 2, 5, 4, config=config) == -1
        assert erase_cell_from_curves([arch_curve], 2, 5, 4, config=config) is None


class TestEraseRectangle:
    """Tests for erasing a rectangle across all curves."""

    def test_untouched_curves_keep_identity(self, square_curve, make_curve):
        far = make_curve([[100, 100], [110, 100], [110, 110], [100, 110]], curve_id="far")

        result = erase_rectangle_from_curves([square_curve, far], -5, -5, 5, 5)

        assert len(result) == 2
        assert result[0].id == "square"
        assert _area(result[0]) == pytest.approx(75)
        assert result[1] is far

    def test_no_change_returns_none(self, square_curve):
        assert erase_rectangle_from_curves([square_curve], 50, 50, 60, 60) is None

    def test_self_crossing_curve_far_away_unchanged(self, bowtie_curve):
        assert erase_rectangle_from_curves([bowtie_curve], 500, 500, 510, 510) is None

    def test_self_crossing_curve_rect_in_notch_unchanged(self, bowtie_curve):
        """The rectangle sits inside the bowtie's bounds but between its lobes."""
        assert erase_rectangle_from_curves([bowtie_curve], 8, 1, 12, 3) is None

    def test_self_crossing_curve_cut(self, bowtie_curve):
        result = erase_rectangle_from_curves([bowtie_curve], -1, -1, 10, 21)

        assert [c.id for c in result] == ["bowtie"]
        assert _area(result[0]) == pytest.approx(100)

    def test_tiny_curve_far_away_survives(self, make_curve, square_curve):
        tiny = make_curve([[200, 200], [200.5, 200], [200.5, 200.5]], curve_id="tiny")

        result = erase_rectangle_from_curves([square_curve, tiny], 0, 0, 5, 5)

        assert result[1] is tiny

    def test_covers_several_curves(self, square_curve, make_curve):
        other = make_curve([[20, 0], [30, 0], [30, 10], [20, 10]], curve_id="other")

        result = erase_rectangle_from_curves([square_curve, other], -1, -1, 31, 11)

        assert result == []

    def test_open_curves_ignored(self, open_stroke, square_curve):
        result = erase_rectangle_from_curves([open_stroke, square_curve], -100, -100, 100, 100)

        assert result == [open_stroke]

    def test_failing_primitive_skips_curve(self, square_curve):
        result = erase_rectangle_from_curves(
            [square_curve], 0, 0, 5, 5, difference=_failing_difference,
        )

        assert result is None
