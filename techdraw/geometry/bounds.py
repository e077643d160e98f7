"""
Entity bounding boxes.
"""

import math
from typing import Iterable, Optional

from ..core.shapes import (
    ArcEntity, BoundingBox, CircleEntity, EllipseEntity, Entity, Point,
    PolygonEntity, RectangleEntity,
)


def entity_bounds(entity: Entity) -> Optional[BoundingBox]:
    """Axis-aligned bounds of an entity, or None if it has no geometry."""
    if isinstance(entity, CircleEntity):
        c, r = entity.center, entity.radius
        return BoundingBox(c.x - r, c.y - r, c.x + r, c.y + r)

    if isinstance(entity, ArcEntity):
        points = [entity.start_point, entity.end_point]
        # Axis extremes that fall within the sweep
        for quadrant in range(4):
            angle = quadrant * math.pi / 2
            if entity.contains_angle(angle):
                points.append(Point(entity.center.x + entity.radius * math.cos(angle),
                                    entity.center.y + entity.radius * math.sin(angle)))
        return BoundingBox.from_points(points)

    if isinstance(entity, EllipseEntity):
        theta = math.radians(entity.rotation)
        rx, ry = entity.radius_x, entity.radius_y
        half_w = math.hypot(rx * math.cos(theta), ry * math.sin(theta))
        half_h = math.hypot(rx * math.sin(theta), ry * math.cos(theta))
        c = entity.center
        return BoundingBox(c.x - half_w, c.y - half_h, c.x + half_w, c.y + half_h)

    if isinstance(entity, RectangleEntity):
        return BoundingBox.from_points(entity.corners())

    if isinstance(entity, PolygonEntity):
        return BoundingBox.from_points(entity.vertices())

    return BoundingBox.from_points(list(entity.iter_points()))


def combined_bounds(entities: Iterable[Entity]) -> Optional[BoundingBox]:
    """Union of the bounds of several entities."""
    result = None
    for entity in entities:
        bounds = entity_bounds(entity)
        if bounds is None:
            continue
        result = bounds if result is None else result.union(bounds)
    return result
