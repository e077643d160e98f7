"""
TechDraw Core Module

Contains the core data structures:
- Shapes: Point, BoundingBox, DrawingStyle and every entity type
- EntityStore: Root container for all drawing data
- Coordinates: unit, angle and viewport conversions
"""

# Import order matters - shapes first, then the store
from .errors import TechDrawError, UnsupportedEntityType, InvalidEntityError
from .shapes import (
    Point, BoundingBox, DrawingStyle, EntityFamily, Entity,
    LineEntity, CircleEntity, ArcEntity, RectangleEntity, EllipseEntity,
    PolylineEntity, SplineEntity, PolygonEntity, PathEntity, HatchEntity,
    DimensionEntity, LinearDimension, AlignedDimension, AngularDimension,
    RadialDimension, DiameterDimension,
    TextAnnotation, LeaderAnnotation, SymbolAnnotation, ToleranceAnnotation,
    ENTITY_TYPES, entity_class_for, classify,
)
from .selection import SelectionManager
from .document import EntityStore, EntityState

__all__ = [
    # Errors
    'TechDrawError', 'UnsupportedEntityType', 'InvalidEntityError',
    # Value types
    'Point', 'BoundingBox', 'DrawingStyle', 'EntityFamily', 'Entity',
    # Drawing entities
    'LineEntity', 'CircleEntity', 'ArcEntity', 'RectangleEntity', 'EllipseEntity',
    'PolylineEntity', 'SplineEntity', 'PolygonEntity', 'PathEntity', 'HatchEntity',
    # Dimensions
    'DimensionEntity', 'LinearDimension', 'AlignedDimension', 'AngularDimension',
    'RadialDimension', 'DiameterDimension',
    # Annotations
    'TextAnnotation', 'LeaderAnnotation', 'SymbolAnnotation', 'ToleranceAnnotation',
    # Registry
    'ENTITY_TYPES', 'entity_class_for', 'classify',
    # Store
    'SelectionManager', 'EntityStore', 'EntityState',
]
