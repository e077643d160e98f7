"""
TechDraw Geometry Module

Pure functions over entities:
- Intersections: segment/line/circle/arc crossings, point in polygon
- Transform: offset, rotate, scale, mirror
- Boolean operations: union, intersection, difference of closed shapes
- Modifications: fillet, chamfer, trim, extend
"""

from .intersections import (
    point_in_polygon, segment_intersection, line_intersection,
    all_intersections, line_entity_intersections, entity_ring,
)
from .bounds import entity_bounds, combined_bounds
from .transform import (
    offset_entity, rotate_entity, scale_entity, mirror_entity, is_transformable,
)
from .boolean_ops import polygon_union, polygon_intersection, polygon_difference
from .modifications import (
    fillet, chamfer, batch_fillet, batch_chamfer,
    compute_trim, compute_extend,
    extend_line_by_length, split_line_at_entity,
    polyline_to_lines, lines_to_polyline, fillet_polyline, chamfer_polyline,
    FilletResult, ChamferResult, BatchResult,
)

__all__ = [
    # Intersections
    'point_in_polygon', 'segment_intersection', 'line_intersection',
    'all_intersections', 'line_entity_intersections', 'entity_ring',
    # Bounds
    'entity_bounds', 'combined_bounds',
    # Transform
    'offset_entity', 'rotate_entity', 'scale_entity', 'mirror_entity', 'is_transformable',
    # Boolean operations
    'polygon_union', 'polygon_intersection', 'polygon_difference',
    # Modifications
    'fillet', 'chamfer', 'batch_fillet', 'batch_chamfer',
    'compute_trim', 'compute_extend',
    'extend_line_by_length', 'split_line_at_entity',
    'polyline_to_lines', 'lines_to_polyline', 'fillet_polyline', 'chamfer_polyline',
    'FilletResult', 'ChamferResult', 'BatchResult',
]
