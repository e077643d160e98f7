"""
Intersection Primitives

Ray-casting containment, parametric segment intersection, line/circle and
line/arc intersection, and extraction of rings and segments from entities.
Everything here is a pure function over Points.
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import DEDUPE_DECIMALS, EPSILON
from ..core.shapes import (
    ArcEntity, CircleEntity, Entity, HatchEntity, LineEntity, Point,
    PolygonEntity, PolylineEntity, RectangleEntity, SplineEntity,
)

logger = logging.getLogger(__name__)

Segment = Tuple[Point, Point]


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    """
    Check if a point is inside a polygon using ray casting.

    Points exactly on an edge may land on either side.
    """
    n = len(polygon)
    inside = False

    j = n - 1
    for i in range(n):
        if ((polygon[i].y > point.y) != (polygon[j].y > point.y) and
                point.x < (polygon[j].x - polygon[i].x) *
                (point.y - polygon[i].y) / (polygon[j].y - polygon[i].y) +
                polygon[i].x):
            inside = not inside
        j = i

    return inside


def segment_intersection(p1: Point, p2: Point, p3: Point, p4: Point,
                         epsilon: float = EPSILON) -> Optional[Point]:
    """
    Intersection of segments p1-p2 and p3-p4.

    Returns None for (near) parallel segments or when the crossing lies
    outside either segment.
    """
    dx1 = p2.x - p1.x
    dy1 = p2.y - p1.y
    dx2 = p4.x - p3.x
    dy2 = p4.y - p3.y
    den = dx1 * dy2 - dy1 * dx2
    if abs(den) < epsilon:
        return None

    dx3 = p1.x - p3.x
    dy3 = p1.y - p3.y
    t = (dx2 * dy3 - dy2 * dx3) / den
    s = (dx1 * dy3 - dy1 * dx3) / den
    if t < 0 or t > 1 or s < 0 or s > 1:
        return None

    return Point(p1.x + t * dx1, p1.y + t * dy1)


def line_intersection(p1: Point, p2: Point, p3: Point, p4: Point,
                      epsilon: float = EPSILON) -> Optional[Point]:
    """Intersection of the infinite lines through p1-p2 and p3-p4."""
    dx1 = p2.x - p1.x
    dy1 = p2.y - p1.y
    dx2 = p4.x - p3.x
    dy2 = p4.y - p3.y
    den = dx1 * dy2 - dy1 * dx2
    if abs(den) < epsilon:
        return None

    t = (dx2 * (p1.y - p3.y) - dy2 * (p1.x - p3.x)) / den
    return Point(p1.x + t * dx1, p1.y + t * dy1)


def dedupe_points(points: Iterable[Point], decimals: int = DEDUPE_DECIMALS) -> List[Point]:
    """Drop points that coincide after rounding, keeping first occurrences."""
    seen = set()
    result = []
    for p in points:
        key = (round(p.x, decimals), round(p.y, decimals))
        if key in seen:
            continue
        seen.add(key)
        result.append(p)
    return result


def ring_edges(ring: Sequence[Point]) -> List[Segment]:
    """Edges of a closed ring, including the closing edge."""
    n = len(ring)
    return [(ring[i], ring[(i + 1) % n]) for i in range(n)]


def all_intersections(ring_a: Sequence[Point], ring_b: Sequence[Point],
                      decimals: int = DEDUPE_DECIMALS,
                      epsilon: float = EPSILON) -> List[Point]:
    """Every crossing between the edges of two closed rings, deduplicated."""
    points = []
    for a1, a2 in ring_edges(ring_a):
        for b1, b2 in ring_edges(ring_b):
            hit = segment_intersection(a1, a2, b1, b2, epsilon)
            if hit is not None:
                points.append(hit)
    return dedupe_points(points, decimals)


def point_segment_distance(point: Point, a: Point, b: Point) -> float:
    """Shortest distance from point to segment a-b."""
    ab = b - a
    length_sq = ab.dot(ab)
    if length_sq == 0:
        return point.distance_to(a)
    t = max(0.0, min(1.0, (point - a).dot(ab) / length_sq))
    return point.distance_to(a + ab * t)


def is_on_ring_boundary(point: Point, ring: Sequence[Point],
                        epsilon: float = EPSILON) -> bool:
    return any(point_segment_distance(point, a, b) < epsilon
               for a, b in ring_edges(ring))


def line_circle_intersections(start: Point, end: Point, center: Point,
                              radius: float, decimals: int = DEDUPE_DECIMALS) -> List[Point]:
    """Crossings of segment start-end with a circle."""
    d = end - start
    f = start - center
    a = d.dot(d)
    if a == 0:
        return []
    b = 2 * f.dot(d)
    c = f.dot(f) - radius * radius
    disc = b * b - 4 * a * c
    if disc < 0:
        return []

    root = math.sqrt(disc)
    params = [(-b - root) / (2 * a), (-b + root) / (2 * a)]
    points = [start + d * t for t in params if 0 <= t <= 1]
    return dedupe_points(points, decimals)


def line_arc_intersections(start: Point, end: Point, arc: ArcEntity,
                           decimals: int = DEDUPE_DECIMALS) -> List[Point]:
    """Crossings of segment start-end with the swept part of an arc."""
    return [
        p for p in line_circle_intersections(start, end, arc.center, arc.radius, decimals)
        if arc.contains_angle(math.atan2(p.y - arc.center.y, p.x - arc.center.x))
    ]


def entity_segments(entity: Entity) -> List[Segment]:
    """
    Straight segments making up an entity.

    Splines are approximated by their through-points. Entities without a
    straight-segment representation yield an empty list.
    """
    if isinstance(entity, LineEntity):
        return [(entity.start_point, entity.end_point)]
    if isinstance(entity, (PolylineEntity, SplineEntity)):
        points = entity.points
        segments = [(points[i], points[i + 1]) for i in range(len(points) - 1)]
        if entity.closed and len(points) > 2:
            segments.append((points[-1], points[0]))
        return segments
    ring = entity_ring(entity)
    if ring is not None:
        return ring_edges(ring)
    return []


def entity_ring(shape) -> Optional[List[Point]]:
    """
    Closed ring of vertices for an area-like shape.

    Accepts a regular polygon, closed polyline or spline, rectangle, hatch
    or a raw sequence of points. Returns None for anything else.
    """
    if isinstance(shape, PolygonEntity):
        return shape.vertices()
    if isinstance(shape, RectangleEntity):
        return shape.corners()
    if isinstance(shape, HatchEntity):
        return list(shape.boundary)
    if isinstance(shape, (PolylineEntity, SplineEntity)):
        if not shape.closed:
            logger.debug(f"Open {shape.entity_type} {shape.id} has no ring")
            return None
        return list(shape.points)
    if isinstance(shape, Entity):
        return None
    points = list(shape)
    if not all(isinstance(p, Point) for p in points):
        return None
    return points


def line_entity_intersections(start: Point, end: Point, entity: Entity,
                              epsilon: float = EPSILON,
                              decimals: int = DEDUPE_DECIMALS) -> List[Point]:
    """
    All crossings of segment start-end with a boundary entity.

    epsilon is the parallel threshold for straight edges; crossings that
    agree to decimals places are merged.
    """
    if isinstance(entity, CircleEntity):
        return line_circle_intersections(start, end, entity.center, entity.radius, decimals)
    if isinstance(entity, ArcEntity):
        return line_arc_intersections(start, end, entity, decimals)

    points = []
    for a, b in entity_segments(entity):
        hit = segment_intersection(start, end, a, b, epsilon)
        if hit is not None:
            points.append(hit)
    return dedupe_points(points, decimals)
