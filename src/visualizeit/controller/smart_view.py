"""
SmartView (Render/Interaction Bridge)
=====================================
Binds one Scene or component (``target``) to one drawing surface.

Why is this file needed?
------------------------
1. Rendering: ``mount(surface)`` performs the manifest pass, exactly once
   per mount. Constructing a view never renders.
2. Interaction: raw pointer events of the surface are turned into position
   updates of the dragged entity only. Moves arriving while a previous move
   is still being applied are coalesced to the latest position. Committed
   drags are reported to the ``on_drag_commit`` listeners.
3. Teardown: ``unmount()`` synchronously detaches every handler the view
   registered, so closed tabs never leak listeners.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Optional

from visualizeit.model.errors import ValidationError
from visualizeit.model.identity import Identifiable
from visualizeit.model.primitives import POINTER_KINDS, PointerEvent, Primitive, Surface
from visualizeit.model.smart_comp import SmartComp

logger = logging.getLogger(__name__)

DragCommitListener = Callable[[Any, tuple[float, float], tuple[float, float]], None]


@dataclass
class _Drag:
    primitive: Primitive
    # pointer offset from the primitive origin (absolute coordinates)
    dx: float
    dy: float
    moved: bool = False


class SmartView(Identifiable):
    def __init__(self, id: str, name: Optional[str] = None, target: Optional[SmartComp] = None) -> None:
        super().__init__(id, name)
        if not isinstance(target, SmartComp):
            raise ValidationError(f"{self.diag_class_name()}(id:'{id}') constructor parameter violation: "
                                  f"target must be a SmartComp, not {type(target).__name__}")
        self.target = target
        self._selected: Optional[Any] = None
        # called with (owner, old_xy, new_xy) once a drag is committed
        self._commit_listeners: list[DragCommitListener] = []

        self._surface: Optional[Surface] = None
        self._listeners: list[tuple[str, Callable[[PointerEvent], None]]] = []
        self._drag: Optional[_Drag] = None
        self._pending: Optional[tuple[float, float]] = None
        self._applying = False

    @property
    def surface(self) -> Optional[Surface]:
        return self._surface

    def is_mounted(self) -> bool:
        return self._surface is not None

    def is_dragging(self) -> bool:
        return self._drag is not None

    @property
    def selected(self) -> Optional[Any]:
        """The component under the last pointer down."""
        return self._selected

    def on_drag_commit(self, listener: DragCommitListener) -> None:
        self._commit_listeners.append(listener)

    def mount(self, surface: Surface) -> None:
        if self._surface is not None:
            raise RuntimeError(f"{self!r} is already mounted, unmount it first")
        self._surface = surface
        self.target.manifest(surface)

        handlers = dict(zip(POINTER_KINDS, (self._on_pointer_down, self._on_pointer_move, self._on_pointer_up)))
        for kind, handler in handlers.items():
            surface.listen(kind, handler)
            self._listeners.append((kind, handler))
        logger.debug(f"{self!r} mounted")

    def unmount(self) -> None:
        """Detach all handlers and primitives. Safe to call repeatedly."""
        surface = self._surface
        if surface is None:
            return
        for kind, handler in self._listeners:
            surface.unlisten(kind, handler)
        self._listeners.clear()
        self._drag = None
        self._pending = None
        self._selected = None
        self.target.unmanifest()
        self._surface = None
        logger.debug(f"{self!r} unmounted")

    # ---- pointer handling ----

    @staticmethod
    def _draggable_ancestor(primitive: Optional[Primitive]) -> Optional[Primitive]:
        node = primitive
        while node is not None and not isinstance(node, Surface):
            if node.draggable and node.owner is not None:
                return node
            node = node.parent
        return None

    @staticmethod
    def _owner_of(primitive: Optional[Primitive]) -> Optional[Any]:
        node = primitive
        while node is not None:
            if node.owner is not None:
                return node.owner
            node = node.parent
        return None

    def _on_pointer_down(self, event: PointerEvent) -> None:
        self._selected = self._owner_of(event.target)
        primitive = self._draggable_ancestor(event.target)
        if primitive is None:
            return
        ax, ay = primitive.absolute_position()
        self._drag = _Drag(primitive, event.x - ax, event.y - ay)

    def _on_pointer_move(self, event: PointerEvent) -> None:
        if self._drag is None:
            return
        self._pending = (event.x, event.y)
        if self._applying:
            # coalesced, the running apply loop picks up the latest position
            return
        self._applying = True
        try:
            while self._pending is not None:
                x, y = self._pending
                self._pending = None
                self._apply_move(x, y)
        finally:
            self._applying = False

    def _apply_move(self, x: float, y: float) -> None:
        drag = self._drag
        if drag is None:
            return
        parent = drag.primitive.parent
        px, py = parent.absolute_position() if parent is not None else (0.0, 0.0)
        drag.moved = True
        drag.primitive.move_to(x - drag.dx - px, y - drag.dy - py)

    def _on_pointer_up(self, event: PointerEvent) -> None:
        drag = self._drag
        if drag is None:
            return
        self._drag = None
        self._pending = None
        if not drag.moved:
            return
        owner = drag.primitive.owner
        old = (owner.x, owner.y)
        # commits the position into the owner's visual params
        drag.primitive.fire("dragend", x=drag.primitive.x, y=drag.primitive.y)
        new = (owner.x, owner.y)
        if new != old:
            for listener in list(self._commit_listeners):
                listener(owner, old, new)

    def __repr__(self) -> str:
        return f"SmartView(id={self.id!r}, target={self.target!r})"
