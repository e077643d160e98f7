"""
Modification Tools for TechDraw

Interactive Trim and Extend tools. Each tool owns a two-step state
machine: the user first picks boundary entities, confirms, then clicks
lines to trim or extend against those boundaries. The geometry lives in
``geometry.modifications``; the tools only hold state and commit results
to the store.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Iterable, List, Optional

from ..config import DEFAULT_SETTINGS, KernelSettings
from ..core.document import EntityStore
from ..core.shapes import Entity, LineEntity, Point
from ..geometry.modifications import compute_extend, compute_trim
from .hit_test import find_entity_at_point

logger = logging.getLogger(__name__)

CONFIRM_KEYS = ("Enter", "Return")
CANCEL_KEYS = ("Escape", "Esc")


class ToolType(Enum):
    """Types of modification tools."""
    TRIM = "trim"
    EXTEND = "extend"


class ToolState(Enum):
    BOUNDARY_SELECTION = "boundary_selection"
    ENTITY_SELECTION = "entity_selection"
    INACTIVE = "inactive"


class ModifyTool(ABC):
    """
    Abstract base class for boundary-driven modification tools.

    Each tool implements:
    - compute(): the pure geometry producing the modified line
    """

    def __init__(self, tool_type: ToolType, store: EntityStore,
                 settings: Optional[KernelSettings] = None):
        self.tool_type = tool_type
        self.store = store
        self.settings = settings or store.settings or DEFAULT_SETTINGS
        self._state = ToolState.BOUNDARY_SELECTION
        self._boundary_ids: List[str] = []
        self._message_callbacks: List[Callable[[str], None]] = []

    @property
    def state(self) -> ToolState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is not ToolState.INACTIVE

    @property
    def boundary_ids(self) -> List[str]:
        return list(self._boundary_ids)

    @abstractmethod
    def compute(self, target: Entity, boundaries: List[Entity],
                click_point: Point) -> Optional[LineEntity]:
        """
        Compute the modified target.

        Returns:
            The new line value, or None if nothing changes
        """
        pass

    def add_message_callback(self, callback: Callable[[str], None]):
        """Register callback for user-facing messages."""
        self._message_callbacks.append(callback)

    def remove_message_callback(self, callback: Callable[[str], None]):
        if callback in self._message_callbacks:
            self._message_callbacks.remove(callback)

    def _notify_message(self, message: str):
        for callback in list(self._message_callbacks):
            try:
                callback(message)
            except Exception:
                logger.exception("Message callback failed")

    def _set_state(self, state: ToolState):
        logger.debug(f"{self.tool_type.value} tool: {self._state.value} -> {state.value}")
        self._state = state

    def _pick(self, point: Point, candidates: Iterable[Entity]) -> Optional[Entity]:
        return find_entity_at_point(candidates, point, self.settings.hit_tolerance)

    def handle_click(self, point: Point) -> bool:
        """
        Handle a pointer click in world coordinates.

        Returns:
            True if the click changed the boundary set or the drawing. A
            click whose result matches the current line changes nothing.
        """
        if self._state is ToolState.BOUNDARY_SELECTION:
            return self._toggle_boundary(point)
        if self._state is ToolState.ENTITY_SELECTION:
            return self._modify_at(point)
        return False

    def _toggle_boundary(self, point: Point) -> bool:
        entity = self._pick(point, self.store.get_all_entities())
        if entity is None:
            return False
        if entity.id in self._boundary_ids:
            self._boundary_ids.remove(entity.id)
            self.store.deselect(entity.id)
        else:
            self._boundary_ids.append(entity.id)
            self.store.select(entity.id, add_to_selection=True)
        return True

    def _modify_at(self, point: Point) -> bool:
        target = self._pick(point, self.store.get_all_entities())
        if target is None:
            return False

        boundaries = [b for b in (self.store.get_by_id(i) for i in self._boundary_ids)
                      if b is not None]
        result = self.compute(target, boundaries, point)
        if result is None:
            self._notify_message("No intersection found")
            return False
        if (result.start_point == target.start_point and
                result.end_point == target.end_point):
            logger.debug(f"{self.tool_type.value} left {target.id} unchanged")
            return False

        return self.store.update(target.id, start_point=result.start_point,
                                 end_point=result.end_point)

    def confirm(self):
        """Finish boundary selection; an empty set means every drawing entity."""
        if self._state is not ToolState.BOUNDARY_SELECTION:
            return
        if not self._boundary_ids:
            self._boundary_ids = [e.id for e in self.store.get_all_entities()]
        self._set_state(ToolState.ENTITY_SELECTION)

    def cancel(self):
        """Step back to boundary selection, or exit from it."""
        self._boundary_ids = []
        self.store.clear_selection()
        if self._state is ToolState.ENTITY_SELECTION:
            self._set_state(ToolState.BOUNDARY_SELECTION)
        else:
            self._set_state(ToolState.INACTIVE)

    def reset(self):
        """Re-enter the tool from the start."""
        self._boundary_ids = []
        self._set_state(ToolState.BOUNDARY_SELECTION)

    def handle_key(self, key: str) -> bool:
        """
        Handle a key press by name.

        Returns:
            True if the key was handled
        """
        if not self.is_active:
            return False
        if key in CONFIRM_KEYS:
            self.confirm()
            return True
        if key in CANCEL_KEYS:
            self.cancel()
            return True
        return False


class TrimTool(ModifyTool):
    """Cut lines back to the nearest boundary crossing."""

    def __init__(self, store: EntityStore, settings: Optional[KernelSettings] = None):
        super().__init__(ToolType.TRIM, store, settings)

    def compute(self, target: Entity, boundaries: List[Entity],
                click_point: Point) -> Optional[LineEntity]:
        return compute_trim(target, boundaries, click_point,
                            epsilon=self.settings.epsilon,
                            decimals=self.settings.dedupe_decimals)


class ExtendTool(ModifyTool):
    """Lengthen lines to the next boundary ahead of their free end."""

    def __init__(self, store: EntityStore, settings: Optional[KernelSettings] = None):
        super().__init__(ToolType.EXTEND, store, settings)

    def compute(self, target: Entity, boundaries: List[Entity],
                click_point: Point) -> Optional[LineEntity]:
        return compute_extend(target, boundaries, click_point,
                              self.settings.extend_probe_length,
                              epsilon=self.settings.epsilon,
                              decimals=self.settings.dedupe_decimals)
