"""
Pydantic data models for freehand map curves.

Curves are treated as immutable values: every edit produces new model
instances (via model_copy or construction), so a caller may keep an older
snapshot of a curve collection. Derived data is cached per
(id, geometry_version), never per object identity.
"""

import time
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field


# Plain aliases for the transient polygon interchange format
Point = List[float]
Ring = List[Point]
Polygon = List[Ring]
MultiPolygon = List[Polygon]


class BorderSide(str, Enum):
    """Sides of a grid cell whose border can be suppressed."""
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


class Severity(str, Enum):
    """Severity levels for validation checks."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


class CubicBezier(BaseModel):
    """A cubic bezier with its start point materialized."""
    p0: List[float] = Field(..., min_length=2, max_length=2)  # start point
    p1: List[float] = Field(..., min_length=2, max_length=2)  # control point 1
    p2: List[float] = Field(..., min_length=2, max_length=2)  # control point 2
    p3: List[float] = Field(..., min_length=2, max_length=2)  # end point


class BezierSegment(BaseModel):
    """
    A stored curve segment. Its start is implicit: the previous segment's
    end, or the owning curve's start for the first segment.
    """
    cp1: List[float] = Field(..., min_length=2, max_length=2)
    cp2: List[float] = Field(..., min_length=2, max_length=2)
    end: List[float] = Field(..., min_length=2, max_length=2)

    model_config = ConfigDict(extra="forbid")

    def with_start(self, start):
        """Materialize this segment as a CubicBezier starting at start."""
        return CubicBezier(p0=list(start), p1=self.cp1, p2=self.cp2, p3=self.end)


class FitResult(BaseModel):
    """Output of fitting a pointer stroke: a start point and its segments."""
    start: List[float] = Field(..., min_length=2, max_length=2)
    segments: List[BezierSegment] = Field(default_factory=list)


class Curve(BaseModel):
    """A persisted freehand shape, optionally closed and optionally holed."""
    id: str
    start: List[float] = Field(..., min_length=2, max_length=2)
    segments: List[BezierSegment] = Field(default_factory=list)
    closed: bool = False
    color: Optional[str] = None
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    stroke_color: Optional[str] = None
    stroke_width: Optional[float] = None
    inner_rings: Optional[List[List[List[float]]]] = None
    geometry_version: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid")

    @property
    def is_filled(self):
        """Unfilled curves take no part in fill-area reasoning or merging."""
        return bool(self.color) and self.color != "transparent"

    def iter_beziers(self):
        """Yield every segment as a CubicBezier with its start resolved."""
        prev = self.start
        for seg in self.segments:
            yield seg.with_start(prev)
            prev = seg.end

    def control_points(self):
        """All stored points: start, control points, ends and hole vertices."""
        points = [self.start]
        for seg in self.segments:
            points.extend([seg.cp1, seg.cp2, seg.end])
        for ring in self.inner_rings or []:
            points.extend(ring)
        return points


class CurveBounds(BaseModel):
    """Axis-aligned bounding box in world units."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def intersects(self, other):
        return not (
            self.max_x < other.min_x or
            self.min_x > other.max_x or
            self.max_y < other.min_y or
            self.min_y > other.max_y
        )


class MergeCell(BaseModel):
    """A painted grid cell as seen by the merge index."""
    x: int
    y: int
    color: str


class CellRect(BaseModel):
    """World-space rectangle of a grid cell."""
    x: float
    y: float
    w: float
    h: float


class MergeIndex(BaseModel):
    """
    Render-time index of same-colored cell/curve overlaps.

    cell_borders_to_suppress is keyed by cell_key(x, y); curve_cell_rects is
    keyed by the curve's position in the curve list.
    """
    cell_borders_to_suppress: Dict[str, Set[BorderSide]] = Field(default_factory=dict)
    curve_cell_rects: Dict[int, List[CellRect]] = Field(default_factory=dict)


class Scene(BaseModel):
    """A curve layer together with the grid cell size it lives on."""
    cell_size: float = Field(default=32.0, gt=0)
    curves: List[Curve] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class CheckResult(BaseModel):
    """Result of a single validation check."""
    rule_id: str
    severity: Severity
    passed: bool
    message: str
    evidence: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class ValidationReport(BaseModel):
    """Collection of validation check results."""
    checks: List[CheckResult] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def has_errors(self):
        return any(c.severity == Severity.ERROR and not c.passed for c in self.checks)

    @property
    def error_count(self):
        return sum(1 for c in self.checks if c.severity == Severity.ERROR and not c.passed)

    @property
    def warning_count(self):
        return sum(1 for c in self.checks if c.severity == Severity.WARN and not c.passed)


# ID generation

def generate_curve_id():
    """Generate a fresh curve ID."""
    return f"curve-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def generate_split_id(base_id):
    """Generate an ID for an extra piece split off a curve."""
    return f"{base_id}-{uuid.uuid4().hex[:8]}"


def cell_key(x, y):
    """Key used for per-cell lookups."""
    return f"{x},{y}"
