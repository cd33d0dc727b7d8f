"""Pytest fixtures for freehandmap tests."""

import tempfile

import pytest


def polygon_curve(points, curve_id="shape", color="red", **kwargs):
    """Closed curve whose boundary is the given polygon, as linear segments."""
    from freehandmap.models import BezierSegment, Curve

    segments = []
    ring = list(points) + [points[0]]
    for prev, curr in zip(ring, ring[1:]):
        dx = curr[0] - prev[0]
        dy = curr[1] - prev[1]
        segments.append(BezierSegment(
            cp1=[prev[0] + dx / 3, prev[1] + dy / 3],
            cp2=[prev[0] + 2 * dx / 3, prev[1] + 2 * dy / 3],
            end=list(curr),
        ))

    return Curve(
        id=curve_id,
        start=list(points[0]),
        segments=segments,
        closed=True,
        color=color,
        **kwargs,
    )


@pytest.fixture(autouse=True)
def reset_tracer():
    """Leave the global tracer disabled after every test."""
    yield
    from freehandmap.tracer import configure_tracer, get_tracer
    get_tracer().config.close()
    configure_tracer(enabled=False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def make_curve():
    """Factory for closed polygonal curves."""
    return polygon_curve


@pytest.fixture
def square_curve():
    """Closed 10x10 square at the origin, filled red."""
    return polygon_curve([[0, 0], [10, 0], [10, 10], [0, 10]], curve_id="square")


@pytest.fixture
def dumbbell_curve():
    """Two 10x10 lobes joined by a 10x2 bridge (area 220)."""
    return polygon_curve([
        [0, 0], [10, 0], [10, 4], [20, 4], [20, 0], [30, 0],
        [30, 10], [20, 10], [20, 6], [10, 6], [10, 10], [0, 10],
    ], curve_id="dumbbell")


@pytest.fixture
def open_stroke():
    """An open, unfilled two-segment stroke."""
    from freehandmap.models import BezierSegment, Curve

    return Curve(
        id="stroke",
        start=[0, 0],
        segments=[
            BezierSegment(cp1=[5, 10], cp2=[15, 10], end=[20, 0]),
            BezierSegment(cp1=[25, -10], cp2=[35, -10], end=[40, 0]),
        ],
    )


@pytest.fixture
def default_config():
    """Create default engine configuration."""
    from freehandmap.config import EngineConfig
    return EngineConfig()
