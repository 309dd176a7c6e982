"""
Drawing Canvas (Qt)
===================
The concrete drawing surface behind every tab.

Why is this file needed?
------------------------
1. Mirroring: ``QtSurface`` is a model ``Surface`` whose primitives are
   mirrored into ``QGraphicsScene`` items. Each change notification of a
   primitive (added, removed, geometry, style, ...) updates only its item.
2. Input: ``SceneCanvas`` forwards mouse presses/moves/releases as pointer
   events, which the tab's SmartView turns into model updates.
3. Lazy Mount: The SmartView is mounted when the canvas is first shown,
   never when the tab controller creates it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QPainter, QPainterPath, QPen
from PySide6.QtWidgets import QGraphicsPathItem, QGraphicsScene, QGraphicsView, QWidget

from visualizeit.config import CLASS_VIEW_SIZE
from visualizeit.controller.smart_view import SmartView
from visualizeit.model.primitives import Circle, Group, Path, Primitive, Rect, Surface
from visualizeit.model.scene import Scene

logger = logging.getLogger(__name__)

CANVAS_MARGIN = 20.0


def rounded_rect_path(w: float, h: float, radii: list[float]) -> QPainterPath:
    """Rectangle at the origin with per-corner radii (top-left, top-right, bottom-right, bottom-left)."""
    path = QPainterPath()
    limit = min(w, h) / 2
    tl, tr, br, bl = (max(0.0, min(float(r), limit)) for r in radii)
    if max(tl, tr, br, bl) <= 1e-9:
        path.addRect(QRectF(0, 0, w, h))
        return path

    # Manually make rounded rect to support distinct corners:
    path.moveTo(tl, 0)
    path.lineTo(w - tr, 0)
    path.quadTo(w, 0, w, tr)
    path.lineTo(w, h - br)
    path.quadTo(w, h, w - br, h)
    path.lineTo(bl, h)
    path.quadTo(0, h, 0, h - bl)
    path.lineTo(0, tl)
    path.quadTo(0, 0, tl, 0)
    path.closeSubpath()
    return path


def primitive_path(primitive: Primitive) -> QPainterPath:
    """Outline of ``primitive`` in its own coordinates (empty for groups)."""
    path = QPainterPath()
    if isinstance(primitive, Rect):
        return rounded_rect_path(primitive.width, primitive.height, primitive.corner_radius)
    if isinstance(primitive, Circle):
        path.addEllipse(QPointF(0, 0), primitive.radius, primitive.radius)
    elif isinstance(primitive, Path) and primitive.points:
        first, *rest = primitive.points
        path.moveTo(*first)
        for point in rest:
            path.lineTo(*point)
        if primitive.closed:
            path.closeSubpath()
    return path


@dataclass(kw_only=True, eq=False)
class QtSurface(Surface):
    graphics_scene: Optional[QGraphicsScene] = field(default=None, repr=False)
    # id(primitive) -> (primitive, item)
    _items: dict[int, tuple[Primitive, QGraphicsPathItem]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if self.graphics_scene is None:
            self.graphics_scene = QGraphicsScene()
        self.graphics_scene.setSceneRect(-CANVAS_MARGIN, -CANVAS_MARGIN,
                                         self.width + 2 * CANVAS_MARGIN, self.height + 2 * CANVAS_MARGIN)

    def item_for(self, primitive: Primitive) -> Optional[QGraphicsPathItem]:
        entry = self._items.get(id(primitive))
        return entry[1] if entry else None

    def item_count(self) -> int:
        return len(self._items)

    def on_primitive_changed(self, primitive: Primitive, change: str) -> None:
        if primitive is self:
            return
        match change:
            case "added":
                self._build(primitive)
            case "removed":
                self._discard(primitive)
            case "geometry":
                item = self.item_for(primitive)
                if item is not None:
                    item.setPos(primitive.x, primitive.y)
            case "style":
                item = self.item_for(primitive)
                if item is not None:
                    self._apply_style(primitive, item)
            case "interactive":
                item = self.item_for(primitive)
                if item is not None:
                    self._apply_cursor(primitive, item)
            case "zorder":
                if isinstance(primitive, Group):
                    self._apply_z_order(primitive)
            case _:
                logger.debug(f"Ignoring change '{change}' of {primitive.name or type(primitive).__name__}")

    def _build(self, primitive: Primitive) -> None:
        if id(primitive) in self._items:
            return
        item = QGraphicsPathItem()
        self._apply_style(primitive, item)
        self._apply_cursor(primitive, item)
        item.setPos(primitive.x, primitive.y)

        parent_item = self.item_for(primitive.parent) if primitive.parent is not None else None
        if parent_item is not None:
            item.setParentItem(parent_item)
            item.setZValue(primitive.parent.children.index(primitive))
        else:
            item.setZValue(self.children.index(primitive) if primitive in self.children else 0)
            self.graphics_scene.addItem(item)
        self._items[id(primitive)] = (primitive, item)

        if isinstance(primitive, Group):
            for child in primitive.children:
                self._build(child)

    def _discard(self, primitive: Primitive) -> None:
        entry = self._items.pop(id(primitive), None)
        if isinstance(primitive, Group):
            for child in primitive.walk():
                self._items.pop(id(child), None)
        if entry is None:
            return
        item = entry[1]
        if item.scene() is not None:
            # removes the child items as well
            self.graphics_scene.removeItem(item)

    @staticmethod
    def _apply_style(primitive: Primitive, item: QGraphicsPathItem) -> None:
        item.setPath(primitive_path(primitive))
        stroke = getattr(primitive, "stroke", None)
        fill = getattr(primitive, "fill", None)
        if stroke:
            item.setPen(QPen(QColor(stroke), getattr(primitive, "stroke_width", 1.0)))
        else:
            item.setPen(QPen(Qt.PenStyle.NoPen))
        item.setBrush(QBrush(QColor(fill)) if fill else QBrush(Qt.BrushStyle.NoBrush))

    @staticmethod
    def _apply_cursor(primitive: Primitive, item: QGraphicsPathItem) -> None:
        if primitive.draggable:
            item.setCursor(Qt.CursorShape.OpenHandCursor)
        else:
            item.unsetCursor()

    def _apply_z_order(self, group: Group) -> None:
        for index, child in enumerate(group.children):
            item = self.item_for(child)
            if item is not None:
                item.setZValue(index)


class SceneCanvas(QGraphicsView):
    """Panel of one tab: displays ``view.target`` and forwards pointer input."""

    def __init__(self, view: SmartView, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setRenderHints(self.renderHints() | QPainter.RenderHint.Antialiasing | QPainter.RenderHint.TextAntialiasing)
        self.setTransformationAnchor(QGraphicsView.ViewportAnchor.AnchorUnderMouse)
        self.setResizeAnchor(QGraphicsView.ViewportAnchor.AnchorViewCenter)
        self.setMouseTracking(True)

        self.view = view
        target = view.target
        width, height = target.size() if isinstance(target, Scene) else CLASS_VIEW_SIZE
        self.surface = QtSurface(width=width, height=height, graphics_scene=QGraphicsScene(self))
        self.setScene(self.surface.graphics_scene)

    def ensure_mounted(self) -> None:
        if not self.view.is_mounted():
            self.view.mount(self.surface)

    def release(self) -> None:
        """Unmount the view (detaches its handlers and primitives)."""
        self.view.unmount()

    def showEvent(self, event) -> None:
        self.ensure_mounted()
        super().showEvent(event)

    # ---- pointer forwarding ----

    def _dispatch(self, kind: str, event) -> None:
        point = self.mapToScene(event.position().toPoint())
        self.surface.dispatch_pointer(kind, point.x(), point.y())

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self._dispatch("down", event)
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:
        if event.buttons() & Qt.MouseButton.LeftButton:
            self._dispatch("move", event)
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self._dispatch("up", event)
            event.accept()
            return
        super().mouseReleaseEvent(event)
