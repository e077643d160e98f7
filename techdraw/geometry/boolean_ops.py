"""
Polygon Boolean Operations

Union, intersection and difference of two closed rings using a
vertex-pooling heuristic:

1. Collect the edge crossings of both rings.
2. If there are none, resolve by containment of each ring's first vertex.
3. Otherwise pool the relevant vertices with the crossings, drop
   duplicates and order the pool by angle around its centroid.

The heuristic is exact for convex inputs. Concave or self-intersecting
rings can produce malformed outlines, and a difference that would punch
a hole returns the outer ring unchanged.
"""

import logging
from typing import List, Optional

import numpy as np

from ..config import DEDUPE_DECIMALS, DEFAULT_LAYER, EPSILON
from ..core.shapes import DrawingStyle, Entity, Point, PolylineEntity, new_entity_id
from .intersections import (
    all_intersections, dedupe_points, entity_ring, is_on_ring_boundary, point_in_polygon,
)

logger = logging.getLogger(__name__)


def sort_by_centroid_angle(points: List[Point]) -> List[Point]:
    """Order points by polar angle around their centroid."""
    if not points:
        return []
    coords = np.array([[p.x, p.y] for p in points])
    centroid = coords.mean(axis=0)
    angles = np.arctan2(coords[:, 1] - centroid[1], coords[:, 0] - centroid[0])
    order = np.argsort(angles, kind='stable')
    return [points[i] for i in order]


def _ring(shape) -> List[Point]:
    ring = entity_ring(shape)
    return ring if ring is not None else []


def _style_of(shape, style: Optional[DrawingStyle]) -> DrawingStyle:
    if style is not None:
        return DrawingStyle(**vars(style))
    if isinstance(shape, Entity):
        return DrawingStyle(**vars(shape.style))
    return DrawingStyle()


def _result(points: List[Point], layer: str, style: DrawingStyle) -> PolylineEntity:
    return PolylineEntity(
        id=new_entity_id(),
        layer=layer,
        style=style,
        points=list(points),
        closed=True,
    )


def polygon_union(shape_a, shape_b, layer: str = DEFAULT_LAYER,
                  style: Optional[DrawingStyle] = None, epsilon: float = EPSILON,
                  decimals: int = DEDUPE_DECIMALS) -> Optional[PolylineEntity]:
    """
    Union of two closed shapes.

    Returns the containing ring when one shape contains the other, and
    None when the shapes are disjoint or either has fewer than 3 vertices.
    """
    ring_a = _ring(shape_a)
    ring_b = _ring(shape_b)
    if len(ring_a) < 3 or len(ring_b) < 3:
        return None
    result_style = _style_of(shape_a, style)

    crossings = all_intersections(ring_a, ring_b, decimals, epsilon)
    if not crossings:
        if point_in_polygon(ring_a[0], ring_b):
            return _result(ring_b, layer, result_style)
        if point_in_polygon(ring_b[0], ring_a):
            return _result(ring_a, layer, result_style)
        logger.debug("Union of disjoint shapes")
        return None

    pool = sort_by_centroid_angle(dedupe_points(ring_a + ring_b + crossings, decimals))
    outline = []
    for p in pool:
        on_a = is_on_ring_boundary(p, ring_a, epsilon)
        on_b = is_on_ring_boundary(p, ring_b, epsilon)
        in_a = point_in_polygon(p, ring_a)
        in_b = point_in_polygon(p, ring_b)
        if (on_a and not in_b) or (on_b and not in_a) or (on_a and on_b):
            outline.append(p)

    return _result(outline, layer, result_style)


def polygon_intersection(shape_a, shape_b, layer: str = DEFAULT_LAYER,
                         style: Optional[DrawingStyle] = None, epsilon: float = EPSILON,
                         decimals: int = DEDUPE_DECIMALS) -> Optional[PolylineEntity]:
    """Overlap of two closed shapes, or None if they do not overlap."""
    ring_a = _ring(shape_a)
    ring_b = _ring(shape_b)
    if len(ring_a) < 3 or len(ring_b) < 3:
        return None
    result_style = _style_of(shape_a, style)

    crossings = all_intersections(ring_a, ring_b, decimals, epsilon)
    if not crossings:
        if point_in_polygon(ring_a[0], ring_b):
            return _result(ring_a, layer, result_style)
        if point_in_polygon(ring_b[0], ring_a):
            return _result(ring_b, layer, result_style)
        return None

    pool = dedupe_points(
        crossings +
        [p for p in ring_a if point_in_polygon(p, ring_b)] +
        [p for p in ring_b if point_in_polygon(p, ring_a)],
        decimals,
    )
    if len(pool) < 3:
        return None
    return _result(sort_by_centroid_angle(pool), layer, result_style)


def polygon_difference(shape_a, shape_b, layer: str = DEFAULT_LAYER,
                       style: Optional[DrawingStyle] = None, epsilon: float = EPSILON,
                       decimals: int = DEDUPE_DECIMALS) -> Optional[PolylineEntity]:
    """
    shape_a minus shape_b.

    A degenerate subtrahend leaves shape_a unchanged. When shape_b lies
    wholly inside shape_a the result is shape_a itself; holes are not
    represented.
    """
    ring_a = _ring(shape_a)
    if len(ring_a) < 3:
        return None
    result_style = _style_of(shape_a, style)
    ring_b = _ring(shape_b)
    if len(ring_b) < 3:
        return _result(ring_a, layer, result_style)

    crossings = all_intersections(ring_a, ring_b, decimals, epsilon)
    if not crossings:
        if point_in_polygon(ring_a[0], ring_b):
            return None
        if point_in_polygon(ring_b[0], ring_a):
            logger.debug("Difference would punch a hole; returning outer shape")
        return _result(ring_a, layer, result_style)

    pool = dedupe_points(
        crossings + [p for p in ring_a if not point_in_polygon(p, ring_b)], decimals)
    if len(pool) < 3:
        return None
    return _result(sort_by_centroid_angle(pool), layer, result_style)
