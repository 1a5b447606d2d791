# services/api/core/hit_router.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models.page import PageSurface

logger = logging.getLogger(__name__)


def route_page(
    pointer: Tuple[float, float],
    surfaces: Sequence[PageSurface],
    current_page: int,
) -> int:
    """
    Return the index of the first page surface containing the pointer,
    or `current_page` when the pointer is over none of them.
    """
    x, y = pointer
    for surface in surfaces:
        if surface.contains(x, y):
            return surface.page_index
    return current_page


class PageHitRouter:
    """
    Holds the current on-screen rectangles of all page surfaces.

    The hosting view pushes fresh rectangles via set_surfaces() after every
    layout change or scroll; the router never caches derived sizes.
    """

    def __init__(self, surfaces: Optional[Iterable[PageSurface]] = None) -> None:
        self._surfaces: List[PageSurface] = []
        self._by_index: Dict[int, PageSurface] = {}
        if surfaces is not None:
            self.set_surfaces(surfaces)

    def set_surfaces(self, surfaces: Iterable[PageSurface]) -> None:
        self._surfaces = sorted(surfaces, key=lambda s: s.page_index)
        self._by_index = {s.page_index: s for s in self._surfaces}

    @property
    def surfaces(self) -> List[PageSurface]:
        return list(self._surfaces)

    def surface(self, page_index: int) -> Optional[PageSurface]:
        return self._by_index.get(page_index)

    def route(self, pointer: Tuple[float, float], current_page: int) -> int:
        target = route_page(pointer, self._surfaces, current_page)
        if target != current_page:
            logger.debug(f"Pointer {pointer} crossed from page {current_page} to page {target}")
        return target
