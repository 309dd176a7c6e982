"""
Drawable Primitives
===================
Technology-neutral descriptors that components manifest into.

Why is this file needed?
------------------------
1. Decoupling: SmartComp/Scene emit ``Rect``/``Circle``/``Path``/``Group`` descriptors,
   never Qt items. The concrete canvas (``app.ui.canvas``) mirrors them.
2. Interaction: every primitive carries handler attachment (``on``/``off``)
   and a ``draggable`` flag, which is what the display modes toggle.
3. Testing: a plain ``Surface`` is a complete in-memory drawing surface.

Classes:
    Primitive: Base descriptor (position, draggable, owner, handlers).
    Rect, Circle, Path: Leaf shapes.
    Group: A container of primitives (paint order = sequence order).
    Surface: Root container with pointer-event dispatch.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

EventHandler = Callable[..., None]


@dataclass(kw_only=True, eq=False)
class Primitive:
    x: float = 0.0
    y: float = 0.0
    draggable: bool = False
    name: str = ""
    # the model entity (SmartComp/Scene) this primitive represents
    owner: Any = field(default=None, repr=False)
    parent: Optional[Group] = field(default=None, repr=False)
    _handlers: dict[str, list[EventHandler]] = field(default_factory=dict, repr=False)

    # ---- event handlers ----

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Optional[EventHandler] = None) -> None:
        """Detach ``handler`` (or every handler of ``event`` when omitted)."""
        if handler is None:
            self._handlers.pop(event, None)
            return
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._handlers.pop(event, None)

    def fire(self, event: str, **payload: Any) -> None:
        # copy: a handler may detach itself
        for handler in list(self._handlers.get(event, [])):
            handler(self, **payload)

    def handler_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._handlers.get(event, []))
        return sum(len(h) for h in self._handlers.values())

    # ---- geometry ----

    def absolute_position(self) -> tuple[float, float]:
        x, y = self.x, self.y
        node = self.parent
        while node is not None:
            x += node.x
            y += node.y
            node = node.parent
        return x, y

    def bounds(self) -> tuple[float, float, float, float]:
        """Local (x, y, width, height) in parent coordinates."""
        return self.x, self.y, 0.0, 0.0

    def contains(self, x: float, y: float) -> bool:
        """Whether the absolute point (x, y) falls inside self."""
        ax, ay = self.absolute_position()
        _, _, w, h = self.bounds()
        return ax <= x <= ax + w and ay <= y <= ay + h

    def move_to(self, x: float, y: float) -> None:
        self.x = x
        self.y = y
        self._notify("geometry")

    def restyle(self, **attrs: Any) -> None:
        """Change paint attributes (fill, stroke, ...) of a manifested primitive."""
        for key, value in attrs.items():
            if not hasattr(self, key):
                raise AttributeError(f"{type(self).__name__} has no attribute '{key}'")
            setattr(self, key, value)
        self._notify("style")

    def set_draggable(self, draggable: bool) -> None:
        if self.draggable != draggable:
            self.draggable = draggable
            self._notify("interactive")

    # ---- change notification (consumed by concrete surfaces) ----

    def root(self) -> Primitive:
        node: Primitive = self
        while node.parent is not None:
            node = node.parent
        return node

    def _notify(self, change: str) -> None:
        root = self.root()
        if isinstance(root, Surface):
            root.on_primitive_changed(self, change)


@dataclass(kw_only=True, eq=False)
class Rect(Primitive):
    width: float = 0.0
    height: float = 0.0
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 1.0
    # top-left, top-right, bottom-right, bottom-left
    corner_radius: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])

    def __post_init__(self) -> None:
        if isinstance(self.corner_radius, (int, float)):
            self.corner_radius = [float(self.corner_radius)] * 4

    def bounds(self) -> tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height


@dataclass(kw_only=True, eq=False)
class Circle(Primitive):
    """Centered at (x, y)."""
    radius: float = 0.0
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 1.0

    def bounds(self) -> tuple[float, float, float, float]:
        return self.x - self.radius, self.y - self.radius, 2 * self.radius, 2 * self.radius

    def contains(self, x: float, y: float) -> bool:
        ax, ay = self.absolute_position()
        return (x - ax) ** 2 + (y - ay) ** 2 <= self.radius ** 2


@dataclass(kw_only=True, eq=False)
class Path(Primitive):
    points: list[tuple[float, float]] = field(default_factory=list)
    closed: bool = False
    fill: Optional[str] = None
    stroke: Optional[str] = "black"
    stroke_width: float = 1.0

    def bounds(self) -> tuple[float, float, float, float]:
        if not self.points:
            return self.x, self.y, 0.0, 0.0
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return self.x + min(xs), self.y + min(ys), max(xs) - min(xs), max(ys) - min(ys)

    def contains(self, x: float, y: float) -> bool:
        # bounding box test, relative to the parent origin
        bx, by, w, h = self.bounds()
        px, py = self.parent.absolute_position() if self.parent is not None else (0.0, 0.0)
        return px + bx <= x <= px + bx + w and py + by <= y <= py + by + h


@dataclass(kw_only=True, eq=False)
class Group(Primitive):
    children: list[Primitive] = field(default_factory=list, repr=False)

    def add(self, primitive: Primitive) -> Primitive:
        if primitive.parent is not None:
            primitive.parent.remove(primitive)
        primitive.parent = self
        self.children.append(primitive)
        primitive._notify("added")
        return primitive

    def remove(self, primitive: Primitive) -> None:
        if primitive in self.children:
            primitive._notify("removed")
            self.children.remove(primitive)
            primitive.parent = None

    def clear(self) -> None:
        for child in list(self.children):
            self.remove(child)

    def walk(self):
        """Yield self's descendants depth-first, in paint order."""
        for child in self.children:
            yield child
            if isinstance(child, Group):
                yield from child.walk()

    def bounds(self) -> tuple[float, float, float, float]:
        if not self.children:
            return self.x, self.y, 0.0, 0.0
        boxes = [c.bounds() for c in self.children]
        x0 = min(b[0] for b in boxes)
        y0 = min(b[1] for b in boxes)
        x1 = max(b[0] + b[2] for b in boxes)
        y1 = max(b[1] + b[3] for b in boxes)
        return self.x + x0, self.y + y0, x1 - x0, y1 - y0

    def contains(self, x: float, y: float) -> bool:
        return any(c.contains(x, y) for c in self.children)

    def hit(self, x: float, y: float) -> Optional[Primitive]:
        """Return the top-most leaf primitive under the absolute point (x, y)."""
        for child in reversed(self.children):  # later children paint on top
            if isinstance(child, Group):
                found = child.hit(x, y)
                if found is not None:
                    return found
            elif child.contains(x, y):
                return child
        return None


@dataclass(frozen=True)
class PointerEvent:
    kind: str  # "down" | "move" | "up"
    x: float
    y: float
    target: Optional[Primitive] = None


POINTER_KINDS = ("down", "move", "up")


@dataclass(kw_only=True, eq=False)
class Surface(Group):
    """
    Root container of a drawing surface.

    The host (Qt canvas, tests) feeds raw pointer input through
    ``dispatch_pointer``; listeners registered by a SmartView receive a
    ``PointerEvent`` with the hit-tested target.
    """
    width: float = 0.0
    height: float = 0.0
    _listeners: dict[str, list[Callable[[PointerEvent], None]]] = field(default_factory=dict, repr=False)

    def listen(self, kind: str, handler: Callable[[PointerEvent], None]) -> None:
        if kind not in POINTER_KINDS:
            raise ValueError(f"Unknown pointer event kind '{kind}'")
        self._listeners.setdefault(kind, []).append(handler)

    def unlisten(self, kind: str, handler: Callable[[PointerEvent], None]) -> None:
        handlers = self._listeners.get(kind, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self) -> int:
        return sum(len(h) for h in self._listeners.values())

    def dispatch_pointer(self, kind: str, x: float, y: float) -> PointerEvent:
        event = PointerEvent(kind=kind, x=x, y=y, target=self.hit(x, y))
        for handler in list(self._listeners.get(kind, [])):
            handler(event)
        return event

    def on_primitive_changed(self, primitive: Primitive, change: str) -> None:
        """Hook for concrete surfaces: ``added``, ``removed``, ``geometry``, ``style``, ``interactive``, ``zorder``."""
        logger.debug(f"{change}: {primitive.name or type(primitive).__name__}")
