# services/api/core/interaction.py
"""
Pointer-interaction state machine for placements.

One controller owns at most one session at a time. A session is started by
a pointer-down on a placement's body or one of its handles, updated on every
pointer-move, and ended by pointer-up or by the pointer leaving the whole
interaction surface.

Sessions keep a snapshot of the placement's geometry at pointer-down; every
move recomputes the result from that snapshot (never incrementally), so
repeated moves cannot drift. Rotation is the exception: the handle orbits
the live center, so it always reads the current geometry.

Clamping is deliberately asymmetric:
- drag clamps the top-left so the box stays on the page;
- corner resize and edge stretch only apply the size floor (and, for
  corners, the ceiling) and may push the box past the page edges.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from core.errors import InputError
from core.geometry import (
    MAX_CORNER_SIZE_PERCENT,
    MIN_SIZE_PERCENT,
    Corner,
    Edge,
    angle_from_pointer,
    clamp,
    corner_delta,
    proportional_resize,
    rotation_center,
    to_pixels,
)
from core.hit_router import PageHitRouter
from core.placement_store import PlacementStore
from models.placement import Geometry

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class InteractionState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING_CORNER = "resizing_corner"
    STRETCHING = "stretching"
    ROTATING = "rotating"


# ---------- sessions ---------------------------------------------------------

@dataclass(frozen=True)
class DragSession:
    placement_id: str
    offset_x: float          # pointer - placement top-left, in pixels
    offset_y: float
    start: Geometry


@dataclass(frozen=True)
class ResizeSession:
    placement_id: str
    corner: Corner
    start_pointer: Point
    start: Geometry


@dataclass(frozen=True)
class StretchSession:
    placement_id: str
    edge: Edge
    start_pointer: Point
    start: Geometry


@dataclass(frozen=True)
class RotateSession:
    placement_id: str


InteractionSession = Union[DragSession, ResizeSession, StretchSession, RotateSession]


class InteractionController:
    """
    Consumes pointer events (viewport coordinates) and mutates the
    PlacementStore. Page sizes and positions come from the hit router,
    which the hosting view keeps up to date.
    """

    def __init__(
        self,
        store: PlacementStore,
        router: PageHitRouter,
        *,
        min_size: float = MIN_SIZE_PERCENT,
        max_corner_size: float = MAX_CORNER_SIZE_PERCENT,
    ) -> None:
        self.store = store
        self.router = router
        self.min_size = min_size
        self.max_corner_size = max_corner_size
        self._session: Optional[InteractionSession] = None

    @classmethod
    def from_settings(cls, store: PlacementStore, router: PageHitRouter, settings) -> "InteractionController":
        return cls(
            store,
            router,
            min_size=settings.min_size_percent,
            max_corner_size=settings.max_corner_size_percent,
        )

    # --------------------
    # State
    # --------------------
    @property
    def session(self) -> Optional[InteractionSession]:
        return self._session

    @property
    def state(self) -> InteractionState:
        session = self._session
        if session is None:
            return InteractionState.IDLE
        if isinstance(session, DragSession):
            return InteractionState.DRAGGING
        if isinstance(session, ResizeSession):
            return InteractionState.RESIZING_CORNER
        if isinstance(session, StretchSession):
            return InteractionState.STRETCHING
        if isinstance(session, RotateSession):
            return InteractionState.ROTATING
        raise TypeError(f"Unknown session type: {type(session).__name__}")

    @property
    def is_idle(self) -> bool:
        return self._session is None

    # --------------------
    # Pointer-down: start a session
    # --------------------
    def begin_drag(self, placement_id: str, pointer: Point) -> DragSession:
        self._ensure_idle()
        placement = self.store.get(placement_id)
        surface = self.router.surface(placement.page_index)
        if surface is None:
            raise InputError(f"Page {placement.page_index} is not laid out")

        rect = to_pixels(placement, surface.size)
        local_x, local_y = surface.to_local(*pointer)
        session = DragSession(
            placement_id=placement_id,
            offset_x=local_x - rect.x,
            offset_y=local_y - rect.y,
            start=placement.geometry(),
        )
        return self._start(session)

    def begin_resize(self, placement_id: str, corner: Corner, pointer: Point) -> ResizeSession:
        self._ensure_idle()
        placement = self.store.get(placement_id)
        session = ResizeSession(
            placement_id=placement_id,
            corner=Corner(corner),
            start_pointer=pointer,
            start=placement.geometry(),
        )
        return self._start(session)

    def begin_stretch(self, placement_id: str, edge: Edge, pointer: Point) -> StretchSession:
        self._ensure_idle()
        placement = self.store.get(placement_id)
        session = StretchSession(
            placement_id=placement_id,
            edge=Edge(edge),
            start_pointer=pointer,
            start=placement.geometry(),
        )
        return self._start(session)

    def begin_rotate(self, placement_id: str) -> RotateSession:
        self._ensure_idle()
        self.store.get(placement_id)
        return self._start(RotateSession(placement_id=placement_id))

    # --------------------
    # Pointer-move / up / leave
    # --------------------
    def pointer_move(self, pointer: Point) -> None:
        session = self._session
        if session is None:
            return
        if session.placement_id not in self.store:
            logger.debug(f"Placement {session.placement_id} vanished mid-interaction; ending session")
            self._session = None
            return

        if isinstance(session, DragSession):
            self._apply_drag(session, pointer)
        elif isinstance(session, ResizeSession):
            self._apply_resize(session, pointer)
        elif isinstance(session, StretchSession):
            self._apply_stretch(session, pointer)
        elif isinstance(session, RotateSession):
            self._apply_rotate(session, pointer)
        else:
            raise TypeError(f"Unknown session type: {type(session).__name__}")

    def pointer_up(self) -> None:
        if self._session is not None:
            logger.debug(f"Interaction ended: {self.state.value} on {self._session.placement_id}")
        self._session = None

    def pointer_leave(self) -> None:
        # leaving the interaction surface ends the session like a release
        self.pointer_up()

    # --------------------
    # Per-state update rules
    # --------------------
    def _apply_drag(self, session: DragSession, pointer: Point) -> None:
        placement = self.store.get(session.placement_id)
        target_page = self.router.route(pointer, placement.page_index)
        surface = self.router.surface(target_page)
        if surface is None:
            return

        local_x, local_y = surface.to_local(*pointer)
        new_x = (local_x - session.offset_x) / surface.width
        new_y = (local_y - session.offset_y) / surface.height

        patch = {
            "x_percent": clamp(new_x, 0.0, 1.0 - placement.width_percent),
            "y_percent": clamp(new_y, 0.0, 1.0 - placement.height_percent),
        }
        if target_page != placement.page_index:
            logger.debug(f"Placement {placement.id} moved from page {placement.page_index} to {target_page}")
            patch["page_index"] = target_page
        self.store.update(session.placement_id, **patch)

    def _normalized_delta(self, start: Geometry, start_pointer: Point, pointer: Point) -> Optional[Tuple[float, float]]:
        surface = self.router.surface(start.page_index)
        if surface is None:
            return None
        dx = (pointer[0] - start_pointer[0]) / surface.width
        dy = (pointer[1] - start_pointer[1]) / surface.height
        return dx, dy

    def _apply_resize(self, session: ResizeSession, pointer: Point) -> None:
        delta = self._normalized_delta(session.start, session.start_pointer, pointer)
        if delta is None:
            return
        dx, dy = delta
        # x/y stay put: the box grows from its top-left whichever corner is held
        width, height = proportional_resize(
            session.start.width_percent,
            session.start.aspect_ratio,
            corner_delta(session.corner, dx, dy),
            floor=self.min_size,
            ceiling=self.max_corner_size,
        )
        self.store.update(session.placement_id, width_percent=width, height_percent=height)

    def _apply_stretch(self, session: StretchSession, pointer: Point) -> None:
        delta = self._normalized_delta(session.start, session.start_pointer, pointer)
        if delta is None:
            return
        dx, dy = delta
        start = session.start

        width = start.width_percent
        height = start.height_percent
        x = start.x_percent
        y = start.y_percent

        if session.edge == Edge.E:
            width = max(self.min_size, start.width_percent + dx)
        elif session.edge == Edge.W:
            width = max(self.min_size, start.width_percent - dx)
            x = start.x_percent + dx
        elif session.edge == Edge.S:
            height = max(self.min_size, start.height_percent + dy)
        elif session.edge == Edge.N:
            height = max(self.min_size, start.height_percent - dy)
            y = start.y_percent + dy

        self.store.update(
            session.placement_id,
            x_percent=x,
            y_percent=y,
            width_percent=width,
            height_percent=height,
        )

    def _apply_rotate(self, session: RotateSession, pointer: Point) -> None:
        placement = self.store.get(session.placement_id)
        surface = self.router.surface(placement.page_index)
        if surface is None:
            return
        center = rotation_center(to_pixels(placement, surface.size))
        angle = angle_from_pointer(center, surface.to_local(*pointer))
        self.store.update(session.placement_id, rotation_degrees=angle)

    # --------------------
    # Helpers
    # --------------------
    def _ensure_idle(self) -> None:
        if self._session is not None:
            raise InputError(f"Another interaction is active: {self.state.value}")

    def _start(self, session):
        self._session = session
        logger.debug(f"Interaction started: {self.state.value} on {session.placement_id}")
        return session
