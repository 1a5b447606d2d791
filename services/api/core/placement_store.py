# services/api/core/placement_store.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Optional

from core.errors import ExportError, InputError
from models.placement import ContentKind, Placement, Style

logger = logging.getLogger(__name__)


class PlacementStore:
    """
    Ordered collection of placements, keyed by id (insertion order).

    The store is the single source of truth for overlay objects. It does
    NOT validate geometry: drag, resize and stretch each apply their own
    clamping policy before calling update().

    While an export holds the store (see export_lock), structural changes
    (create/remove) are refused; reads and in-place updates stay allowed.
    """

    def __init__(self) -> None:
        self._items: Dict[str, Placement] = {}
        self._export_locked = False

    # --------------------
    # Structural operations
    # --------------------
    def create(
        self,
        kind: ContentKind,
        content: str,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Add a placement and return its id.

        `defaults` may carry any geometry field plus an optional `style`
        (a Style instance or a dict of style fields).
        """
        self._ensure_unlocked("create")
        values = dict(defaults or {})
        style = values.pop("style", None)
        if isinstance(style, dict):
            style = Style(**style)

        unknown = set(values) - set(Placement.GEOMETRY_FIELDS)
        if unknown:
            raise InputError(f"Unknown placement fields: {sorted(unknown)}")

        placement = Placement(kind=ContentKind(kind), content=content, **values)
        if style is not None:
            placement.style = replace(style)
        self._items[placement.id] = placement
        logger.info(f"Placement created: {placement.id} ({placement.kind.value}) on page {placement.page_index}")
        return placement.id

    def remove(self, placement_id: str) -> None:
        """Remove immediately. There is no undo."""
        self._ensure_unlocked("remove")
        if placement_id not in self._items:
            raise InputError(f"PLACEMENT_NOT_FOUND: {placement_id}")
        del self._items[placement_id]
        logger.info(f"Placement removed: {placement_id}")

    def clear(self) -> None:
        """Drop every placement (a new source document was loaded)."""
        self._ensure_unlocked("clear")
        self._items.clear()

    # --------------------
    # Mutation
    # --------------------
    def update(self, placement_id: str, **patch: Any) -> Placement:
        """
        Apply any subset of geometry fields. Values are written as given.
        """
        placement = self.get(placement_id)
        unknown = set(patch) - set(Placement.GEOMETRY_FIELDS)
        if unknown:
            raise InputError(f"Unknown placement fields: {sorted(unknown)}")
        for name, value in patch.items():
            setattr(placement, name, value)
        return placement

    def update_style(self, placement_id: str, **fields: Any) -> Placement:
        """Change style attributes only (color, opacity, font, ...)."""
        placement = self.get(placement_id)
        unknown = set(fields) - Style.field_names()
        if unknown:
            raise InputError(f"Unknown style fields: {sorted(unknown)}")
        placement.style = replace(placement.style, **fields)
        return placement

    # --------------------
    # Reads
    # --------------------
    def get(self, placement_id: str) -> Placement:
        try:
            return self._items[placement_id]
        except KeyError:
            raise InputError(f"PLACEMENT_NOT_FOUND: {placement_id}") from None

    def list(self) -> List[Placement]:
        return list(self._items.values())

    def __contains__(self, placement_id: object) -> bool:
        return placement_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Placement]:
        return iter(self.list())

    # --------------------
    # Export exclusivity
    # --------------------
    @property
    def export_locked(self) -> bool:
        return self._export_locked

    @contextmanager
    def export_lock(self) -> Iterator["PlacementStore"]:
        if self._export_locked:
            raise ExportError("An export is already in progress")
        self._export_locked = True
        try:
            yield self
        finally:
            self._export_locked = False

    def _ensure_unlocked(self, op: str) -> None:
        if self._export_locked:
            raise ExportError(f"Cannot {op} placements while an export is in progress")
