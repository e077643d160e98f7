"""
TechDraw Entity Store

The EntityStore is the root container for all drawing data. It holds
three id-keyed collections (drawing entities, dimensions, annotations),
the current selection and the list of change listeners.

Entities go in and come out as copies, so a value held by a caller can
never change the store behind its back.
"""

import logging
import threading
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Union
from uuid import uuid4

from ..config import DEFAULT_SETTINGS, KernelSettings
from ..geometry.bounds import combined_bounds
from ..geometry.transform import (
    is_transformable, mirror_entity, offset_entity, rotate_entity, scale_entity,
)
from ..io import records
from .errors import InvalidEntityError
from .selection import SelectionManager
from .shapes import BoundingBox, Entity, EntityFamily, Point, classify

logger = logging.getLogger(__name__)

EntityInput = Union[Entity, Mapping[str, Any]]
ChangeListener = Callable[[], None]


@dataclass
class EntityState:
    """Snapshot of the three entity collections, keyed by id."""
    entities: Dict[str, Entity] = field(default_factory=dict)
    dimensions: Dict[str, Entity] = field(default_factory=dict)
    annotations: Dict[str, Entity] = field(default_factory=dict)

    def all_entities(self) -> List[Entity]:
        return (list(self.entities.values()) + list(self.dimensions.values()) +
                list(self.annotations.values()))


class EntityStore:
    """
    Owns every entity of a drawing.

    Features:
    - Add/get/update/delete across three families
    - Filter-based bulk update and delete
    - Selection (locked entities cannot be selected)
    - Move/rotate/scale/mirror/copy through the transform engine
    - Grouping by a shared group id
    - Change listeners fired after every successful mutation
    - Bulk state replace and snapshot

    All mutations run under one re-entrant lock. Listeners run after the
    lock is released.
    """

    def __init__(self, settings: Optional[KernelSettings] = None):
        self.settings = settings or DEFAULT_SETTINGS
        self._lock = threading.RLock()
        self._collections: Dict[EntityFamily, Dict[str, Entity]] = {
            family: {} for family in EntityFamily
        }
        self._selection = SelectionManager()
        self._listeners: List[ChangeListener] = []
        self._issued_ids: Set[str] = set()

    # ============================================================
    # CHANGE NOTIFICATION
    # ============================================================

    def add_change_listener(self, listener: ChangeListener):
        """Register a callback invoked with no arguments after each change."""
        self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener):
        """Remove a change listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify_change(self):
        """Notify all listeners in registration order."""
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception(f"Change listener {listener!r} failed")

    # ============================================================
    # LOOKUP
    # ============================================================

    def __contains__(self, entity_id: str) -> bool:
        return self._find(entity_id) is not None

    def __len__(self) -> int:
        return sum(len(c) for c in self._collections.values())

    def _find(self, entity_id: str) -> Optional[Dict[str, Entity]]:
        """Collection holding entity_id, or None."""
        for collection in self._collections.values():
            if entity_id in collection:
                return collection
        return None

    def get_by_id(self, entity_id: str) -> Optional[Entity]:
        """Copy of the entity with this id, from any family."""
        with self._lock:
            collection = self._find(entity_id)
            if collection is None:
                return None
            return collection[entity_id].clone()

    def get_all_entities(self) -> List[Entity]:
        """Copies of all drawing entities in insertion order."""
        return self._copies(EntityFamily.DRAWING)

    def get_dimensions(self) -> List[Entity]:
        return self._copies(EntityFamily.DIMENSION)

    def get_annotations(self) -> List[Entity]:
        return self._copies(EntityFamily.ANNOTATION)

    def get_everything(self) -> List[Entity]:
        """Copies of entities, dimensions and annotations."""
        return self.get_all_entities() + self.get_dimensions() + self.get_annotations()

    def _copies(self, family: EntityFamily) -> List[Entity]:
        with self._lock:
            return [e.clone() for e in self._collections[family].values()]

    def get_bounds(self, visible_only: bool = True) -> Optional[BoundingBox]:
        """
        Calculate the bounding box of all (visible) entities.

        Returns:
            BoundingBox of the entities, or None if there are none
        """
        with self._lock:
            entities = [
                e for c in self._collections.values() for e in c.values()
                if e.visible or not visible_only
            ]
            return combined_bounds(entities)

    # ============================================================
    # CREATE / UPDATE / DELETE
    # ============================================================

    def _new_id(self) -> str:
        entity_id = str(uuid4())
        while entity_id in self._issued_ids:
            entity_id = str(uuid4())
        self._issued_ids.add(entity_id)
        return entity_id

    def _coerce(self, entity: EntityInput) -> Entity:
        """Copy an entity instance or build one from a plain record."""
        if isinstance(entity, Entity):
            result = entity.clone()
        elif isinstance(entity, Mapping):
            result = records.entity_from_dict(dict(entity))
        else:
            raise TypeError(f"Expected an entity or a record, got {type(entity).__name__}")
        classify(result.entity_type)
        if not result.layer:
            result.layer = self.settings.default_layer
        result.validate()
        return result

    def add(self, entity: EntityInput) -> str:
        """
        Add an entity and return its newly assigned id.

        Raises:
            UnsupportedEntityType: unknown type tag
            InvalidEntityError: the entity breaks a geometric constraint
        """
        with self._lock:
            new_entity = self._coerce(entity)
            new_entity.id = self._new_id()
            self._collections[new_entity.family][new_entity.id] = new_entity
            logger.debug(f"Added {new_entity.entity_type} {new_entity.id}")
        self._notify_change()
        return new_entity.id

    def _merged(self, current: Entity, changes: Mapping[str, Any]) -> Entity:
        """Build the updated value of an entity; the stored one is untouched."""
        for key in ('id', 'type'):
            if key in changes and changes[key] != (current.id if key == 'id' else current.entity_type):
                raise ValueError(f"Cannot change the {key} of entity {current.id}")
        known = {f.name for f in fields(current)}
        unknown = set(changes) - known - {'type'}
        if unknown:
            raise ValueError(
                f"Unknown fields for {current.entity_type}: {', '.join(sorted(unknown))}")

        record = records.entity_to_dict(current)
        record.update({k: v for k, v in changes.items() if k != 'type'})
        updated = records.entity_from_dict(record)
        updated.validate()
        return updated

    def update(self, entity_id: str, changes: Optional[Mapping[str, Any]] = None,
               **fields_) -> bool:
        """
        Merge fields into an existing entity.

        Returns:
            False if no entity has this id

        Raises:
            ValueError: attempt to change id/type, or an unknown field
            InvalidEntityError: the merged entity breaks a geometric constraint
        """
        merged_changes = dict(changes or {})
        merged_changes.update(fields_)
        with self._lock:
            collection = self._find(entity_id)
            if collection is None:
                return False
            collection[entity_id] = self._merged(collection[entity_id], merged_changes)
            logger.debug(f"Updated {entity_id}: {sorted(merged_changes)}")
        self._notify_change()
        return True

    def delete(self, entity_id: str) -> bool:
        """Remove an entity (and its selection). False if no entity has this id."""
        with self._lock:
            collection = self._find(entity_id)
            if collection is None:
                return False
            del collection[entity_id]
            self._selection.deselect_item(entity_id)
            logger.debug(f"Deleted {entity_id}")
        self._notify_change()
        return True

    def update_by_filter(self, predicate: Callable[[Entity], bool],
                         update_fn: Callable[[Entity], Mapping[str, Any]]) -> int:
        """
        Update every entity matching predicate with the fields update_fn returns.

        Either all matches are updated or, if one fails validation, none.
        """
        with self._lock:
            pending = []
            for collection in self._collections.values():
                for entity_id, entity in collection.items():
                    if predicate(entity.clone()):
                        changes = update_fn(entity.clone()) or {}
                        pending.append((collection, entity_id, self._merged(entity, changes)))
            for collection, entity_id, updated in pending:
                collection[entity_id] = updated
        if pending:
            logger.debug(f"Updated {len(pending)} entities by filter")
            self._notify_change()
        return len(pending)

    def delete_by_filter(self, predicate: Callable[[Entity], bool]) -> int:
        """Delete every entity matching predicate."""
        with self._lock:
            doomed = [
                (collection, entity_id)
                for collection in self._collections.values()
                for entity_id, entity in collection.items()
                if predicate(entity.clone())
            ]
            for collection, entity_id in doomed:
                del collection[entity_id]
                self._selection.deselect_item(entity_id)
        if doomed:
            logger.debug(f"Deleted {len(doomed)} entities by filter")
            self._notify_change()
        return len(doomed)

    # ============================================================
    # SELECTION
    # ============================================================

    def _selectable(self, entity_id: str) -> bool:
        collection = self._find(entity_id)
        return collection is not None and not collection[entity_id].locked

    def select(self, entity_id: str, add_to_selection: bool = False) -> bool:
        """Select an entity. Unknown and locked entities are ignored."""
        with self._lock:
            if not self._selectable(entity_id):
                return False
            changed = self._selection.select_item(entity_id, add_to_selection)
        if changed:
            self._notify_change()
        return changed

    def select_many(self, entity_ids: Iterable[str]) -> int:
        """Add several entities to the selection; returns how many were added."""
        with self._lock:
            added = self._selection.select_many(i for i in entity_ids if self._selectable(i))
        if added:
            self._notify_change()
        return added

    def deselect(self, entity_id: str) -> bool:
        with self._lock:
            changed = self._selection.deselect_item(entity_id)
        if changed:
            self._notify_change()
        return changed

    def clear_selection(self) -> bool:
        with self._lock:
            changed = self._selection.clear_selection()
        if changed:
            self._notify_change()
        return changed

    def select_all(self) -> int:
        """Select every unlocked entity of every family."""
        with self._lock:
            ids = [i for c in self._collections.values() for i in c]
        return self.select_many(ids)

    def get_selected_ids(self) -> List[str]:
        with self._lock:
            return self._selection.get_selected_ids()

    def get_selected_entities(self) -> List[Entity]:
        with self._lock:
            return [self._find(i)[i].clone() for i in self._selection.get_selected_ids()
                    if self._find(i) is not None]

    # ============================================================
    # TRANSFORMS
    # ============================================================

    def _apply(self, entity_ids: Iterable[str], transform: Callable[[Entity], Entity]) -> int:
        count = 0
        with self._lock:
            for entity_id in entity_ids:
                collection = self._find(entity_id)
                if collection is None or not is_transformable(collection[entity_id]):
                    continue
                updated = transform(collection[entity_id])
                try:
                    updated.validate()
                except InvalidEntityError as e:
                    logger.debug(f"Transform of {entity_id} rejected: {e}")
                    continue
                collection[entity_id] = updated
                count += 1
        if count:
            self._notify_change()
        return count

    def move(self, entity_id: str, delta: Point) -> bool:
        return self.move_entities([entity_id], delta) == 1

    def rotate(self, entity_id: str, center: Point, angle_degrees: float) -> bool:
        return self.rotate_entities([entity_id], center, angle_degrees) == 1

    def scale(self, entity_id: str, center: Point, scale_x: float, scale_y: float) -> bool:
        return self.scale_entities([entity_id], center, scale_x, scale_y) == 1

    def move_entities(self, entity_ids: Iterable[str], delta: Point) -> int:
        return self._apply(entity_ids, lambda e: offset_entity(e, delta))

    def rotate_entities(self, entity_ids: Iterable[str], center: Point,
                        angle_degrees: float) -> int:
        return self._apply(entity_ids, lambda e: rotate_entity(e, center, angle_degrees))

    def scale_entities(self, entity_ids: Iterable[str], center: Point,
                       scale_x: float, scale_y: float) -> int:
        return self._apply(entity_ids, lambda e: scale_entity(e, center, scale_x, scale_y))

    def move_selected(self, delta: Point) -> int:
        return self.move_entities(self.get_selected_ids(), delta)

    def rotate_selected(self, center: Point, angle_degrees: float) -> int:
        return self.rotate_entities(self.get_selected_ids(), center, angle_degrees)

    def scale_selected(self, center: Point, scale_x: float, scale_y: float) -> int:
        return self.scale_entities(self.get_selected_ids(), center, scale_x, scale_y)

    def mirror_selected(self, line_start: Point, line_end: Point) -> int:
        return self.mirror_entities(self.get_selected_ids(), line_start, line_end)

    def mirror(self, entity_id: str, line_start: Point, line_end: Point) -> bool:
        return self.mirror_entities([entity_id], line_start, line_end) == 1

    def mirror_entities(self, entity_ids: Iterable[str], line_start: Point,
                        line_end: Point) -> int:
        """Reflect entities in place across the line through line_start and line_end."""
        return self._apply(entity_ids, lambda e: mirror_entity(e, line_start, line_end))

    def copy(self, entity_id: str, offset: Optional[Point] = None) -> Optional[str]:
        """Duplicate an entity (optionally displaced) and return the copy's id."""
        source = self.get_by_id(entity_id)
        if source is None:
            return None
        if offset is not None:
            source = offset_entity(source, offset)
        return self.add(source)

    # ============================================================
    # GROUPS
    # ============================================================

    def group(self, entity_ids: Iterable[str]) -> Optional[str]:
        """
        Put entities into a new group.

        Unknown ids are skipped. An entity already in a group moves to the
        new one.

        Returns:
            The new group id, or None if none of the ids exist
        """
        group_id = str(uuid4())
        with self._lock:
            members = [i for i in dict.fromkeys(entity_ids) if self._find(i) is not None]
            if not members:
                return None
            for entity_id in members:
                self._find(entity_id)[entity_id].group_id = group_id
            logger.debug(f"Grouped {len(members)} entities as {group_id}")
        self._notify_change()
        return group_id

    def ungroup(self, group_id: str) -> int:
        """Dissolve a group; returns how many entities left it."""
        with self._lock:
            members = [e for c in self._collections.values() for e in c.values()
                       if group_id is not None and e.group_id == group_id]
            for entity in members:
                entity.group_id = None
        if members:
            logger.debug(f"Ungrouped {len(members)} entities from {group_id}")
            self._notify_change()
        return len(members)

    def get_group_members(self, group_id: str) -> List[str]:
        """Ids of the entities in a group, in store order."""
        with self._lock:
            return [i for c in self._collections.values() for i, e in c.items()
                    if group_id is not None and e.group_id == group_id]

    # ============================================================
    # BULK STATE
    # ============================================================

    def _load_collection(self, family: EntityFamily, items) -> Dict[str, Entity]:
        if isinstance(items, Mapping):
            pairs = list(items.items())
        else:
            pairs = [(None, item) for item in items or []]

        loaded: Dict[str, Entity] = {}
        for key, item in pairs:
            entity = self._coerce(item)
            entity_id = key or entity.id
            if not entity_id:
                raise ValueError(f"{entity.entity_type} in bulk state has no id")
            if entity.family is not family:
                raise ValueError(
                    f"{entity.entity_type} {entity_id} does not belong with {family.value} entities")
            entity.id = entity_id
            loaded[entity_id] = entity
        return loaded

    def set_entity_state(self, entities=None, dimensions=None, annotations=None):
        """
        Replace all three collections at once.

        Each argument is a mapping of id to entity/record or a list of
        entities/records carrying their ids. Clears the selection and fires
        exactly one notification.

        Raises:
            ValueError: missing or duplicate ids, or an entity in the wrong family
        """
        with self._lock:
            new_collections = {
                EntityFamily.DRAWING: self._load_collection(EntityFamily.DRAWING, entities),
                EntityFamily.DIMENSION: self._load_collection(EntityFamily.DIMENSION, dimensions),
                EntityFamily.ANNOTATION: self._load_collection(EntityFamily.ANNOTATION, annotations),
            }
            seen: Set[str] = set()
            for collection in new_collections.values():
                duplicates = seen & collection.keys()
                if duplicates:
                    raise ValueError(f"Duplicate entity ids: {', '.join(sorted(duplicates))}")
                seen |= collection.keys()

            self._collections = new_collections
            self._issued_ids |= seen
            self._selection.clear_selection()
            logger.debug(f"Loaded state with {len(seen)} entities")
        self._notify_change()

    def get_entity_state(self) -> EntityState:
        """Deep-copied snapshot of the three collections."""
        with self._lock:
            return EntityState(
                entities={i: e.clone() for i, e in self._collections[EntityFamily.DRAWING].items()},
                dimensions={i: e.clone() for i, e in self._collections[EntityFamily.DIMENSION].items()},
                annotations={i: e.clone() for i, e in self._collections[EntityFamily.ANNOTATION].items()},
            )
