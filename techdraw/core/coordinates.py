"""
Coordinate Utilities

Polar/cartesian conversion, screen/world mapping for a pan/zoom viewport,
local frames, angle normalisation, length units and paper sizes.
"""

import math
from typing import Dict, List, Tuple

from .shapes import Point


# Length units relative to millimetres
UNIT_FACTORS: Dict[str, float] = {
    'mm': 1.0,
    'cm': 10.0,
    'in': 25.4,
    'ft': 304.8,
}

# Portrait (width, height) in mm
PAPER_SIZES: Dict[str, Tuple[float, float]] = {
    'A4': (210.0, 297.0),
    'A3': (297.0, 420.0),
    'A2': (420.0, 594.0),
    'A1': (594.0, 841.0),
    'A0': (841.0, 1189.0),
    'Letter': (215.9, 279.4),
    'Legal': (215.9, 355.6),
    'Tabloid': (279.4, 431.8),
}


def cartesian_to_polar(x: float, y: float) -> Tuple[float, float]:
    """Return (radius, angle in radians)."""
    return math.hypot(x, y), math.atan2(y, x)


def point_to_polar(point: Point) -> Tuple[float, float]:
    return cartesian_to_polar(point.x, point.y)


def polar_to_cartesian(radius: float, angle: float) -> Point:
    return Point(radius * math.cos(angle), radius * math.sin(angle))


def degrees_to_radians(degrees: float) -> float:
    return degrees * math.pi / 180


def radians_to_degrees(radians: float) -> float:
    return radians * 180 / math.pi


def screen_to_world(x: float, y: float, pan: Point, zoom: float) -> Point:
    """Map a viewport position to drawing coordinates: world = (screen - pan) / zoom."""
    return Point((x - pan.x) / zoom, (y - pan.y) / zoom)


def world_to_screen(x: float, y: float, pan: Point, zoom: float) -> Point:
    return Point(x * zoom + pan.x, y * zoom + pan.y)


def screen_point_to_world(point: Point, pan: Point, zoom: float) -> Point:
    return screen_to_world(point.x, point.y, pan, zoom)


def world_point_to_screen(point: Point, pan: Point, zoom: float) -> Point:
    return world_to_screen(point.x, point.y, pan, zoom)


def world_distance_to_screen(distance: float, zoom: float) -> float:
    return distance * zoom


def screen_distance_to_world(distance: float, zoom: float) -> float:
    return distance / zoom


def normalize_angle(angle: float) -> float:
    """Normalize an angle to [0, 2*pi)."""
    angle = angle % (2 * math.pi)
    # -tiny % 2pi rounds up to exactly 2pi
    if angle >= 2 * math.pi:
        angle = 0.0
    return angle


def normalize_angle_around_zero(angle: float) -> float:
    """Normalize an angle to [-pi, pi)."""
    angle = normalize_angle(angle)
    if angle >= math.pi:
        angle -= 2 * math.pi
    return angle


def world_to_local(point: Point, origin: Point, rotation: float = 0.0) -> Point:
    """
    Express a world point in a local frame.

    Args:
        point: Point in world coordinates
        origin: Local frame origin in world coordinates
        rotation: Local frame rotation in radians
    """
    translated = point - origin
    if rotation:
        return translated.rotate(-rotation)
    return translated


def local_to_world(point: Point, origin: Point, rotation: float = 0.0) -> Point:
    rotated = point.rotate(rotation) if rotation else point
    return rotated + origin


def _unit_factor(unit: str) -> float:
    try:
        return UNIT_FACTORS[unit]
    except KeyError:
        raise ValueError(f"Unsupported unit: {unit}") from None


def convert_units(value: float, from_unit: str, to_unit: str) -> float:
    """Convert a length between 'mm', 'cm', 'in' and 'ft'."""
    value_in_mm = value * _unit_factor(from_unit)
    return value_in_mm / _unit_factor(to_unit)


def convert_point_units(point: Point, from_unit: str, to_unit: str) -> Point:
    return Point(convert_units(point.x, from_unit, to_unit),
                 convert_units(point.y, from_unit, to_unit))


def convert_points_units(points: List[Point], from_unit: str, to_unit: str) -> List[Point]:
    return [convert_point_units(p, from_unit, to_unit) for p in points]


def convert_paper_size(width: float, height: float,
                       from_unit: str, to_unit: str) -> Tuple[float, float]:
    return (convert_units(width, from_unit, to_unit),
            convert_units(height, from_unit, to_unit))


def get_paper_size(name: str, unit: str = 'mm', landscape: bool = False) -> Tuple[float, float]:
    """
    Get paper dimensions (width, height) in the requested unit.

    Raises:
        ValueError: unknown paper name or unit
    """
    if name not in PAPER_SIZES:
        raise ValueError(f"Unsupported paper size: {name}")
    width, height = PAPER_SIZES[name]
    if landscape:
        width, height = height, width
    return convert_paper_size(width, height, 'mm', unit)
