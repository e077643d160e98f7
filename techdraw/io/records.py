"""
Entity Record Conversion for TechDraw

Converts entities and whole store states to plain JSON-compatible
dictionaries and back. Records carry the type tag under ``type`` and use
the entity field names as keys; points are ``{'x': ..., 'y': ...}``.

Keys are the snake_case dataclass field names (``start_angle``,
``radius_x``, ``group_id``), not camelCase. Exporters that need another
spelling rename keys at their own boundary.
"""

import dataclasses
from typing import Any, Dict, List, Optional

from ..core.errors import InvalidEntityError
from ..core.shapes import DrawingStyle, Entity, Point, entity_class_for


def point_to_dict(point: Optional[Point]) -> Optional[Dict[str, float]]:
    if point is None:
        return None
    return {'x': point.x, 'y': point.y}


def dict_to_point(data) -> Optional[Point]:
    """Accept a point dict, an (x, y) pair or a Point."""
    if data is None:
        return None
    if isinstance(data, Point):
        return data
    if isinstance(data, dict):
        return Point(float(data.get('x', 0.0)), float(data.get('y', 0.0)))
    x, y = data
    return Point(float(x), float(y))


def style_to_dict(style: DrawingStyle) -> Dict[str, Any]:
    return {key: value for key, value in vars(style).items() if value is not None}


def dict_to_style(data) -> DrawingStyle:
    if isinstance(data, DrawingStyle):
        return DrawingStyle(**vars(data))
    if not data:
        return DrawingStyle()
    known = {f.name for f in dataclasses.fields(DrawingStyle)}
    return DrawingStyle(**{k: v for k, v in data.items() if k in known})


def entity_to_dict(entity: Entity) -> Dict[str, Any]:
    """Convert an entity to a plain record."""
    record: Dict[str, Any] = {'type': entity.entity_type}
    for f in dataclasses.fields(entity):
        value = getattr(entity, f.name)
        if f.name == 'style':
            record['style'] = style_to_dict(value)
        elif f.name in entity.point_fields:
            record[f.name] = point_to_dict(value)
        elif f.name in entity.point_list_fields:
            record[f.name] = [point_to_dict(p) for p in value]
        elif isinstance(value, (dict, list)):
            record[f.name] = _plain_copy(value)
        else:
            record[f.name] = value
    return record


def _plain_copy(value):
    if isinstance(value, dict):
        return {k: _plain_copy(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain_copy(v) for v in value]
    return value


def entity_from_dict(record: Dict[str, Any]) -> Entity:
    """
    Build an entity from a plain record.

    Unknown keys are ignored and missing fields take their defaults.

    Raises:
        UnsupportedEntityType: missing or unknown ``type``
        InvalidEntityError: a point field that cannot be read
    """
    if isinstance(record, Entity):
        return record.clone()
    cls = entity_class_for(record.get('type'))

    kwargs: Dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name not in record:
            continue
        value = record[f.name]
        try:
            if f.name == 'style':
                value = dict_to_style(value)
            elif f.name in cls.point_fields:
                value = dict_to_point(value)
            elif f.name in cls.point_list_fields:
                value = [dict_to_point(p) for p in (value or [])]
            elif isinstance(value, (dict, list)):
                value = _plain_copy(value)
        except (TypeError, ValueError) as e:
            raise InvalidEntityError(f"Bad value for {cls.entity_type}.{f.name}: {e}") from e
        kwargs[f.name] = value

    return cls(**kwargs)


def state_to_dict(state) -> Dict[str, List[Dict[str, Any]]]:
    """Convert an EntityState snapshot to plain records."""
    return {
        'entities': [entity_to_dict(e) for e in state.entities.values()],
        'dimensions': [entity_to_dict(e) for e in state.dimensions.values()],
        'annotations': [entity_to_dict(e) for e in state.annotations.values()],
    }


def state_from_dict(data: Dict[str, Any]):
    """Convert plain records back to an EntityState; records need ids."""
    from ..core.document import EntityState

    def load(records):
        result = {}
        for record in records or []:
            entity = entity_from_dict(record)
            if not entity.id:
                raise InvalidEntityError(f"{entity.entity_type} record has no id")
            result[entity.id] = entity
        return result

    return EntityState(
        entities=load(data.get('entities')),
        dimensions=load(data.get('dimensions')),
        annotations=load(data.get('annotations')),
    )
