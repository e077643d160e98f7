"""
TechDraw Core Shapes Module

Defines the fundamental value types (Point, BoundingBox, DrawingStyle) and
every entity kind the kernel stores: drawing primitives, dimensions and
annotations. Entities are plain dataclasses tagged with ``entity_type``;
the store and the geometry functions dispatch on that tag.
"""

import copy
import dataclasses
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Type
from uuid import uuid4

from ..config import DEFAULT_LAYER, MIN_POLYGON_SIDES
from .errors import InvalidEntityError, UnsupportedEntityType


@dataclass(frozen=True)
class Point:
    """A 2D point. Also used as a free vector."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: 'Point') -> 'Point':
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: 'Point') -> 'Point':
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> 'Point':
        return Point(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def __neg__(self) -> 'Point':
        return Point(-self.x, -self.y)

    def distance_to(self, other: 'Point') -> float:
        """Calculate Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def dot(self, other: 'Point') -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: 'Point') -> float:
        return self.x * other.y - self.y * other.x

    def normalized(self) -> Optional['Point']:
        """Unit vector in the same direction, or None for a zero vector."""
        length = self.length()
        if length == 0:
            return None
        return Point(self.x / length, self.y / length)

    def rotate(self, angle: float, center: 'Point' = None) -> 'Point':
        """Rotate point around center by angle (radians)."""
        if center is None:
            center = Point(0, 0)
        cos_a = math.cos(angle)
        sin_a = math.sin(angle)
        dx = self.x - center.x
        dy = self.y - center.y
        return Point(
            center.x + dx * cos_a - dy * sin_a,
            center.y + dx * sin_a + dy * cos_a
        )

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass
class BoundingBox:
    """Axis-aligned bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_points(cls, points: List[Point]) -> Optional['BoundingBox']:
        if not points:
            return None
        return cls(
            min_x=min(p.x for p in points),
            min_y=min(p.y for p in points),
            max_x=max(p.x for p in points),
            max_y=max(p.y for p in points)
        )

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point:
        return Point(
            (self.min_x + self.max_x) / 2,
            (self.min_y + self.max_y) / 2
        )

    def contains(self, point: Point, tolerance: float = 0.0) -> bool:
        """Check if point is inside bounding box (optionally grown by tolerance)."""
        return (self.min_x - tolerance <= point.x <= self.max_x + tolerance and
                self.min_y - tolerance <= point.y <= self.max_y + tolerance)

    def intersects(self, other: 'BoundingBox') -> bool:
        """Check if two bounding boxes overlap."""
        return not (self.max_x < other.min_x or
                    self.min_x > other.max_x or
                    self.max_y < other.min_y or
                    self.min_y > other.max_y)

    def union(self, other: 'BoundingBox') -> 'BoundingBox':
        return BoundingBox(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y)
        )


STROKE_STYLES = ('solid', 'dashed', 'dotted', 'dash-dot', 'center', 'phantom', 'hidden')


@dataclass
class DrawingStyle:
    """Stroke, fill and text appearance of an entity."""
    stroke_color: str = "#000000"
    stroke_width: float = 0.5       # mm
    stroke_style: str = "solid"     # one of STROKE_STYLES
    fill_color: Optional[str] = None
    fill_opacity: Optional[float] = None

    # Text
    font_family: Optional[str] = None
    font_size: Optional[float] = None
    font_weight: Optional[str] = None
    text_align: Optional[str] = None


class EntityFamily(Enum):
    """Which collection of the store an entity lives in."""
    DRAWING = "drawing"
    DIMENSION = "dimension"
    ANNOTATION = "annotation"


def new_entity_id() -> str:
    """Generate a fresh entity id."""
    return str(uuid4())


@dataclass
class Entity:
    """
    Base class for everything stored in a drawing.

    Subclasses declare:
    - entity_type: the type tag used in records
    - family: which store collection holds them
    - point_fields / point_list_fields: names of the point-valued fields,
      used by transforms and bounds
    """
    entity_type: ClassVar[str] = ""
    family: ClassVar[EntityFamily] = EntityFamily.DRAWING
    point_fields: ClassVar[Tuple[str, ...]] = ()
    point_list_fields: ClassVar[Tuple[str, ...]] = ()

    id: Optional[str] = None
    layer: str = DEFAULT_LAYER
    visible: bool = True
    locked: bool = False
    style: DrawingStyle = field(default_factory=DrawingStyle)
    metadata: Dict[str, Any] = field(default_factory=dict)
    group_id: Optional[str] = None

    def clone(self) -> 'Entity':
        """Create a deep copy of this entity."""
        return copy.deepcopy(self)

    def with_changes(self, **changes) -> 'Entity':
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(copy.deepcopy(self), **changes)

    def validate(self) -> None:
        """Raise InvalidEntityError if the entity breaks a geometric constraint."""

    def iter_points(self) -> Iterator[Point]:
        """Yield every point-valued field (None values skipped)."""
        for name in self.point_fields:
            value = getattr(self, name)
            if value is not None:
                yield value
        for name in self.point_list_fields:
            yield from getattr(self, name) or ()


def _require_positive(entity: Entity, **values: float) -> None:
    for name, value in values.items():
        if value is None or value <= 0:
            raise InvalidEntityError(
                f"{entity.entity_type} {name} must be positive, got {value!r}")


# ============================================================
# DRAWING ENTITIES
# ============================================================

@dataclass
class LineEntity(Entity):
    """A straight segment."""
    entity_type: ClassVar[str] = "line"
    point_fields: ClassVar[Tuple[str, ...]] = ("start_point", "end_point")

    start_point: Point = Point()
    end_point: Point = Point()

    @property
    def length(self) -> float:
        return self.start_point.distance_to(self.end_point)


@dataclass
class CircleEntity(Entity):
    entity_type: ClassVar[str] = "circle"
    point_fields: ClassVar[Tuple[str, ...]] = ("center",)

    center: Point = Point()
    radius: float = 1.0

    def validate(self) -> None:
        _require_positive(self, radius=self.radius)


@dataclass
class ArcEntity(Entity):
    """
    A circular arc.

    Angles are in radians. With ``counterclockwise`` set the arc sweeps from
    start_angle to end_angle with increasing angle, otherwise with
    decreasing angle.
    """
    entity_type: ClassVar[str] = "arc"
    point_fields: ClassVar[Tuple[str, ...]] = ("center",)

    center: Point = Point()
    radius: float = 1.0
    start_angle: float = 0.0
    end_angle: float = math.pi / 2
    counterclockwise: bool = True

    def validate(self) -> None:
        _require_positive(self, radius=self.radius)

    @property
    def start_point(self) -> Point:
        return Point(self.center.x + self.radius * math.cos(self.start_angle),
                     self.center.y + self.radius * math.sin(self.start_angle))

    @property
    def end_point(self) -> Point:
        return Point(self.center.x + self.radius * math.cos(self.end_angle),
                     self.center.y + self.radius * math.sin(self.end_angle))

    @property
    def sweep(self) -> float:
        """Swept angle in [0, 2*pi)."""
        if self.counterclockwise:
            delta = self.end_angle - self.start_angle
        else:
            delta = self.start_angle - self.end_angle
        return delta % (2 * math.pi)

    def contains_angle(self, angle: float) -> bool:
        """Check if a polar angle around the centre lies on the arc."""
        tau = 2 * math.pi
        if self.counterclockwise:
            offset = (angle - self.start_angle) % tau
        else:
            offset = (self.start_angle - angle) % tau
        sweep = self.sweep
        return offset <= sweep + 1e-9 or offset >= tau - 1e-9


@dataclass
class RectangleEntity(Entity):
    """Rectangle anchored at its top-left corner; rotation in degrees."""
    entity_type: ClassVar[str] = "rectangle"
    point_fields: ClassVar[Tuple[str, ...]] = ("position",)

    position: Point = Point()
    width: float = 1.0
    height: float = 1.0
    rotation: float = 0.0
    corner_radius: float = 0.0

    def validate(self) -> None:
        _require_positive(self, width=self.width, height=self.height)
        if self.corner_radius < 0:
            raise InvalidEntityError("rectangle corner_radius cannot be negative")

    def corners(self) -> List[Point]:
        """Corner points in drawing order, rotation applied about position."""
        x, y = self.position.x, self.position.y
        points = [
            Point(x, y),
            Point(x + self.width, y),
            Point(x + self.width, y + self.height),
            Point(x, y + self.height),
        ]
        if self.rotation:
            angle = math.radians(self.rotation)
            points = [p.rotate(angle, self.position) for p in points]
        return points


@dataclass
class EllipseEntity(Entity):
    entity_type: ClassVar[str] = "ellipse"
    point_fields: ClassVar[Tuple[str, ...]] = ("center",)

    center: Point = Point()
    radius_x: float = 1.0
    radius_y: float = 1.0
    rotation: float = 0.0  # degrees

    def validate(self) -> None:
        _require_positive(self, radius_x=self.radius_x, radius_y=self.radius_y)


@dataclass
class PolylineEntity(Entity):
    entity_type: ClassVar[str] = "polyline"
    point_list_fields: ClassVar[Tuple[str, ...]] = ("points",)

    points: List[Point] = field(default_factory=list)
    closed: bool = False


@dataclass
class SplineEntity(Entity):
    entity_type: ClassVar[str] = "spline"
    point_list_fields: ClassVar[Tuple[str, ...]] = ("points", "control_points")

    points: List[Point] = field(default_factory=list)
    control_points: List[Point] = field(default_factory=list)
    closed: bool = False


@dataclass
class PolygonEntity(Entity):
    """Regular polygon inscribed in a circle; rotation in degrees."""
    entity_type: ClassVar[str] = "polygon"
    point_fields: ClassVar[Tuple[str, ...]] = ("center",)

    center: Point = Point()
    radius: float = 1.0
    sides: int = 6
    rotation: float = 0.0

    def validate(self) -> None:
        _require_positive(self, radius=self.radius)
        if self.sides < MIN_POLYGON_SIDES:
            raise InvalidEntityError(
                f"polygon needs at least {MIN_POLYGON_SIDES} sides, got {self.sides}")

    def vertices(self) -> List[Point]:
        """Vertex i sits at center + radius * (cos, sin)(i * 2pi / sides + rotation)."""
        step = 2 * math.pi / self.sides
        offset = math.radians(self.rotation)
        return [
            Point(self.center.x + self.radius * math.cos(i * step + offset),
                  self.center.y + self.radius * math.sin(i * step + offset))
            for i in range(self.sides)
        ]


@dataclass
class PathEntity(Entity):
    """SVG-style path; only the start point is geometric data to the kernel."""
    entity_type: ClassVar[str] = "path"
    point_fields: ClassVar[Tuple[str, ...]] = ("start_point",)

    start_point: Point = Point()
    commands: str = ""


@dataclass
class HatchEntity(Entity):
    entity_type: ClassVar[str] = "hatch"
    point_list_fields: ClassVar[Tuple[str, ...]] = ("boundary",)

    boundary: List[Point] = field(default_factory=list)
    pattern: str = "solid"
    pattern_scale: float = 1.0
    pattern_angle: float = 0.0
    pattern_spacing: Optional[float] = None


# ============================================================
# DIMENSIONS
# ============================================================

@dataclass
class DimensionEntity(Entity):
    """
    Common dimension geometry.

    For radial and diameter dimensions start_point is the circle centre and
    end_point a point on the circle.
    """
    family: ClassVar[EntityFamily] = EntityFamily.DIMENSION
    point_fields: ClassVar[Tuple[str, ...]] = ("start_point", "end_point", "text_position")

    start_point: Point = Point()
    end_point: Point = Point()
    offset_distance: float = 10.0
    text_position: Optional[Point] = None
    text: Optional[str] = None

    @property
    def measured_value(self) -> float:
        return self.start_point.distance_to(self.end_point)


@dataclass
class LinearDimension(DimensionEntity):
    entity_type: ClassVar[str] = "linear-dimension"


@dataclass
class AlignedDimension(DimensionEntity):
    entity_type: ClassVar[str] = "aligned-dimension"


@dataclass
class AngularDimension(DimensionEntity):
    entity_type: ClassVar[str] = "angular-dimension"
    point_fields: ClassVar[Tuple[str, ...]] = (
        "start_point", "end_point", "vertex", "text_position")

    vertex: Point = Point()

    @property
    def measured_value(self) -> float:
        """Angle at the vertex in degrees."""
        a = self.start_point - self.vertex
        b = self.end_point - self.vertex
        return math.degrees(abs(math.atan2(a.cross(b), a.dot(b))))


@dataclass
class RadialDimension(DimensionEntity):
    entity_type: ClassVar[str] = "radial-dimension"


@dataclass
class DiameterDimension(DimensionEntity):
    entity_type: ClassVar[str] = "diameter-dimension"

    @property
    def measured_value(self) -> float:
        return 2 * self.start_point.distance_to(self.end_point)


# ============================================================
# ANNOTATIONS
# ============================================================

@dataclass
class TextAnnotation(Entity):
    entity_type: ClassVar[str] = "text-annotation"
    family: ClassVar[EntityFamily] = EntityFamily.ANNOTATION
    point_fields: ClassVar[Tuple[str, ...]] = ("position",)

    position: Point = Point()
    text: str = ""
    rotation: float = 0.0  # degrees
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass
class LeaderAnnotation(Entity):
    entity_type: ClassVar[str] = "leader-annotation"
    family: ClassVar[EntityFamily] = EntityFamily.ANNOTATION
    point_fields: ClassVar[Tuple[str, ...]] = ("start_point", "text_position")
    point_list_fields: ClassVar[Tuple[str, ...]] = ("points",)

    start_point: Point = Point()
    points: List[Point] = field(default_factory=list)
    text: str = ""
    text_position: Optional[Point] = None


@dataclass
class SymbolAnnotation(Entity):
    entity_type: ClassVar[str] = "symbol-annotation"
    family: ClassVar[EntityFamily] = EntityFamily.ANNOTATION
    point_fields: ClassVar[Tuple[str, ...]] = ("position",)

    position: Point = Point()
    symbol_type: str = ""
    symbol_data: Dict[str, Any] = field(default_factory=dict)
    rotation: float = 0.0  # degrees
    scale: float = 1.0


@dataclass
class ToleranceAnnotation(Entity):
    entity_type: ClassVar[str] = "tolerance-annotation"
    family: ClassVar[EntityFamily] = EntityFamily.ANNOTATION
    point_fields: ClassVar[Tuple[str, ...]] = ("position",)

    position: Point = Point()
    primary_value: str = ""
    upper_tolerance: Optional[float] = None
    lower_tolerance: Optional[float] = None
    tolerance_type: str = "symmetric"


ENTITY_TYPES: Dict[str, Type[Entity]] = {
    cls.entity_type: cls for cls in (
        LineEntity, CircleEntity, ArcEntity, RectangleEntity, EllipseEntity,
        PolylineEntity, SplineEntity, PolygonEntity, PathEntity, HatchEntity,
        LinearDimension, AlignedDimension, AngularDimension,
        RadialDimension, DiameterDimension,
        TextAnnotation, LeaderAnnotation, SymbolAnnotation, ToleranceAnnotation,
    )
}


def entity_class_for(tag: str) -> Type[Entity]:
    """Look up the entity class for a type tag."""
    try:
        return ENTITY_TYPES[tag]
    except (KeyError, TypeError):
        raise UnsupportedEntityType(tag) from None


def classify(tag: str) -> EntityFamily:
    """Map a type tag to the store collection that holds it."""
    return entity_class_for(tag).family
