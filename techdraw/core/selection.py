"""
Selection Handling for TechDraw

Keeps the ordered list of selected entity ids. The store decides which
ids are selectable; this class only tracks membership.
"""

from typing import Iterable, List


class SelectionManager:
    """
    Manages selection state.

    Features:
    - Single and multi-selection, in selection order
    - Idempotent select/deselect
    """

    def __init__(self):
        self._selected_ids: List[str] = []

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._selected_ids

    def __len__(self) -> int:
        return len(self._selected_ids)

    def clear_selection(self) -> bool:
        """Clear all selections. Returns True if anything was selected."""
        changed = bool(self._selected_ids)
        self._selected_ids = []
        return changed

    def select_item(self, entity_id: str, add_to_selection: bool = False) -> bool:
        """
        Select an id.

        Args:
            entity_id: Id to select
            add_to_selection: Keep the current selection instead of replacing it

        Returns:
            True if the selection changed
        """
        if add_to_selection:
            if entity_id in self._selected_ids:
                return False
            self._selected_ids.append(entity_id)
            return True

        if self._selected_ids == [entity_id]:
            return False
        self._selected_ids = [entity_id]
        return True

    def select_many(self, entity_ids: Iterable[str]) -> int:
        """Append ids in order, skipping those already selected. Returns how many were added."""
        return sum(1 for entity_id in entity_ids
                   if self.select_item(entity_id, add_to_selection=True))

    def deselect_item(self, entity_id: str) -> bool:
        if entity_id not in self._selected_ids:
            return False
        self._selected_ids.remove(entity_id)
        return True

    def get_selected_ids(self) -> List[str]:
        return list(self._selected_ids)
