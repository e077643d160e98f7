"""
Geometric Transform Engine

Handles transformation of entities including:
- Translation (offset)
- Rotation about an arbitrary centre
- Scaling about an arbitrary centre
- Reflection across a line

Point-valued fields are mapped through a 3x3 homogeneous matrix; the
per-type extras (radii, intrinsic rotation, arc angles) are adjusted
alongside. Every function returns a transformed copy.
"""

import copy
import dataclasses
import logging
import math
from typing import Dict, List

import numpy as np

from ..core.shapes import (
    ArcEntity, CircleEntity, EllipseEntity, Entity, ENTITY_TYPES, Point,
    PolygonEntity, RectangleEntity, SymbolAnnotation, TextAnnotation,
)

logger = logging.getLogger(__name__)

# Entities carrying an intrinsic rotation in degrees
_ROTATABLE = (RectangleEntity, EllipseEntity, PolygonEntity, TextAnnotation, SymbolAnnotation)
_UNIFORM_RADIUS = (CircleEntity, ArcEntity, PolygonEntity)


def translation_matrix(dx: float, dy: float) -> np.ndarray:
    return np.array([
        [1.0, 0.0, dx],
        [0.0, 1.0, dy],
        [0.0, 0.0, 1.0],
    ])


def rotation_matrix(angle: float, center: Point) -> np.ndarray:
    """Rotation by angle (radians) about center."""
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    rotate = np.array([
        [cos_a, -sin_a, 0.0],
        [sin_a, cos_a, 0.0],
        [0.0, 0.0, 1.0],
    ])
    return (translation_matrix(center.x, center.y) @ rotate @
            translation_matrix(-center.x, -center.y))


def scale_matrix(scale_x: float, scale_y: float, center: Point) -> np.ndarray:
    scale = np.diag([scale_x, scale_y, 1.0])
    return (translation_matrix(center.x, center.y) @ scale @
            translation_matrix(-center.x, -center.y))


def apply_matrix(points: List[Point], matrix: np.ndarray) -> List[Point]:
    """Map points through a homogeneous matrix."""
    if not points:
        return []
    coords = np.array([[p.x, p.y, 1.0] for p in points])
    mapped = coords @ matrix.T
    return [Point(float(x), float(y)) for x, y, _ in mapped]


def is_transformable(entity) -> bool:
    """Check if the transform engine knows this entity's type."""
    return isinstance(entity, Entity) and ENTITY_TYPES.get(entity.entity_type) is type(entity)


def _map_point_fields(entity: Entity, matrix: np.ndarray) -> Dict[str, object]:
    changes = {}
    for name in entity.point_fields:
        value = getattr(entity, name)
        if value is not None:
            changes[name] = apply_matrix([value], matrix)[0]
    for name in entity.point_list_fields:
        changes[name] = apply_matrix(list(getattr(entity, name) or []), matrix)
    return changes


def _transformed(entity: Entity, matrix: np.ndarray, **extra) -> Entity:
    changes = _map_point_fields(entity, matrix)
    changes.update(extra)
    return dataclasses.replace(copy.deepcopy(entity), **changes)


def offset_entity(entity: Entity, delta: Point) -> Entity:
    """Translate every point-valued field by delta."""
    if not is_transformable(entity):
        logger.debug(f"Offset skipped for unsupported entity {entity!r}")
        return copy.deepcopy(entity)
    return _transformed(entity, translation_matrix(delta.x, delta.y))


def rotate_entity(entity: Entity, center: Point, angle_degrees: float) -> Entity:
    """
    Rotate an entity about center.

    Intrinsic rotation fields are in degrees and accumulate; arc angles
    are in radians. Neither is normalised.
    """
    if not is_transformable(entity):
        logger.debug(f"Rotate skipped for unsupported entity {entity!r}")
        return copy.deepcopy(entity)

    angle = math.radians(angle_degrees)
    extra = {}
    if isinstance(entity, _ROTATABLE):
        extra['rotation'] = (entity.rotation or 0.0) + angle_degrees
    if isinstance(entity, ArcEntity):
        extra['start_angle'] = entity.start_angle + angle
        extra['end_angle'] = entity.end_angle + angle
    return _transformed(entity, rotation_matrix(angle, center), **extra)


def scale_entity(entity: Entity, center: Point, scale_x: float, scale_y: float) -> Entity:
    """
    Scale an entity about center.

    Circles, arcs and regular polygons stay uniform and use
    max(|scale_x|, |scale_y|); ellipse radii and rectangle sides scale per axis.
    """
    if not is_transformable(entity):
        logger.debug(f"Scale skipped for unsupported entity {entity!r}")
        return copy.deepcopy(entity)

    extra = {}
    if isinstance(entity, _UNIFORM_RADIUS):
        extra['radius'] = entity.radius * max(abs(scale_x), abs(scale_y))
    elif isinstance(entity, EllipseEntity):
        extra['radius_x'] = entity.radius_x * abs(scale_x)
        extra['radius_y'] = entity.radius_y * abs(scale_y)
    elif isinstance(entity, RectangleEntity):
        extra['width'] = entity.width * abs(scale_x)
        extra['height'] = entity.height * abs(scale_y)
    return _transformed(entity, scale_matrix(scale_x, scale_y, center), **extra)


def reflection_matrix(line_start: Point, line_end: Point) -> np.ndarray:
    """Reflection across the infinite line through line_start and line_end."""
    dx = line_end.x - line_start.x
    dy = line_end.y - line_start.y
    length_sq = dx * dx + dy * dy
    a = (dx * dx - dy * dy) / length_sq
    b = 2 * dx * dy / length_sq
    reflect = np.array([
        [a, b, 0.0],
        [b, -a, 0.0],
        [0.0, 0.0, 1.0],
    ])
    return (translation_matrix(line_start.x, line_start.y) @ reflect @
            translation_matrix(-line_start.x, -line_start.y))


def mirror_entity(entity: Entity, line_start: Point, line_end: Point) -> Entity:
    """
    Reflect an entity across the line through line_start and line_end.

    Intrinsic rotations become 2 * axis - rotation. Arcs reflect their
    angles and flip direction so they cover the mirrored sweep. Rectangles
    are re-anchored at the reflection of their fourth corner so width and
    height stay positive. A zero-length axis leaves the entity unchanged.
    """
    if not is_transformable(entity):
        logger.debug(f"Mirror skipped for unsupported entity {entity!r}")
        return copy.deepcopy(entity)
    if line_start == line_end:
        logger.debug("Mirror axis has zero length")
        return copy.deepcopy(entity)

    matrix = reflection_matrix(line_start, line_end)
    axis = math.atan2(line_end.y - line_start.y, line_end.x - line_start.x)
    extra = {}
    if isinstance(entity, _ROTATABLE):
        extra['rotation'] = 2 * math.degrees(axis) - (entity.rotation or 0.0)
    if isinstance(entity, ArcEntity):
        extra['start_angle'] = 2 * axis - entity.start_angle
        extra['end_angle'] = 2 * axis - entity.end_angle
        extra['counterclockwise'] = not entity.counterclockwise
    if isinstance(entity, RectangleEntity):
        extra['position'] = apply_matrix([entity.corners()[3]], matrix)[0]
    return _transformed(entity, matrix, **extra)
