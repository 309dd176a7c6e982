"""
SmartComp
=========
The polymorphic visual component.

Concrete component classes subclass ``SmartComp`` and implement
``manifest(container)``, emitting drawable primitives. Everything needed to
re-create an instance (its position and other visual parameters) lives in
``visual_params``. The class itself is identified through a ``ClassRef``
injected by the package that registers it.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from visualizeit.model.class_ref import ClassRef
from visualizeit.model.identity import Identifiable, Sentinel
from visualizeit.model.primitives import Group, Primitive

if TYPE_CHECKING:
    from visualizeit.model.package import SmartPkg
    from visualizeit.model.scene import Scene

logger = logging.getLogger(__name__)

NO_PACKAGE = Sentinel("NO_PACKAGE")


class SmartComp(Identifiable, ABC):
    """Abstract base class of all visual components."""

    # default visual parameters, overridden/extended by derivations
    DEFAULT_PARAMS: ClassVar[dict[str, Any]] = {"x": 0, "y": 0}

    # instances flagged as placeholders for classes that could not be resolved
    unresolved: ClassVar[bool] = False

    def __init__(self, id: str, name: Optional[str] = None, **visual_params: Any) -> None:
        super().__init__(id, name)
        self.visual_params: dict[str, Any] = {**self.DEFAULT_PARAMS, **visual_params}
        self.parent: Optional[Scene] = None

        # runtime state (never persisted)
        self._root_primitive: Optional[Group] = None
        self._interactive: bool = False
        self._animating: bool = False

    # ---- class identity ----

    @classmethod
    def get_class_ref(cls) -> Optional[ClassRef]:
        """The ClassRef of this exact class (not inherited from a base class)."""
        return cls.__dict__.get("_class_ref")

    @classmethod
    def adorn_class_ref(cls, class_ref: ClassRef) -> None:
        current = cls.get_class_ref()
        if current is not None and current != class_ref:
            logger.warning(f"{cls.__name__} re-registered: {current} -> {class_ref}")
        cls._class_ref = class_ref

    def get_class_pkg_name(self) -> Optional[str]:
        class_ref = self.get_class_ref()
        return class_ref.pkg_name if class_ref else None

    def get_package(self) -> SmartPkg | Sentinel:
        """
        The SmartPkg owning self (via its top-level Scene), else ``NO_PACKAGE``.
        """
        node: SmartComp = self
        while node.parent is not None:
            node = node.parent
        pkg = getattr(node, "_pkg", None)
        return pkg if pkg is not None else NO_PACKAGE

    # ---- visual params ----

    @property
    def x(self) -> float:
        return self.visual_params.get("x", 0)

    @property
    def y(self) -> float:
        return self.visual_params.get("y", 0)

    def move(self, x: float, y: float) -> None:
        """Reposition self (model and any manifested primitive)."""
        self.visual_params["x"] = x
        self.visual_params["y"] = y
        if self._root_primitive is not None:
            self._root_primitive.move_to(x, y)

    def encode(self) -> dict[str, Any]:
        class_ref = self.get_class_ref()
        return {
            "id": self.id,
            "name": self.name,
            "classRef": class_ref.encode() if class_ref else None,
            "visualParams": dict(self.visual_params),
        }

    # ---- rendering ----

    @abstractmethod
    def manifest(self, container: Group) -> None:
        """Emit self's primitives into ``container`` (use ``mount_group``)."""

    def mount_group(self, container: Group) -> Group:
        """
        Create self's root Group at (x, y) inside ``container``.

        Any previous mount is forgotten, so self never keeps a stale container.
        The ``dragend`` handler only writes self's own position.
        """
        self.unmanifest()
        group = Group(x=self.x, y=self.y, draggable=self._interactive, owner=self, name=self.id)
        group.on("dragend", self._on_dragend)
        container.add(group)
        self._root_primitive = group
        return group

    def unmanifest(self) -> None:
        """Detach self's handlers and primitives from their container."""
        group = self._root_primitive
        if group is None:
            return
        for primitive in [group, *group.walk()]:
            # nested components clear their own primitives
            if primitive.owner is self or primitive.owner is None:
                primitive._handlers.clear()
        if group.parent is not None:
            group.parent.remove(group)
        self._root_primitive = None

    @property
    def root_primitive(self) -> Optional[Group]:
        return self._root_primitive

    def is_manifested(self) -> bool:
        return self._root_primitive is not None

    def _on_dragend(self, primitive: Primitive, x: float, y: float, **_: Any) -> None:
        logger.debug(f"{self.diag_class_name()}({self.id}) moved to ({x}, {y})")
        self.visual_params["x"] = x
        self.visual_params["y"] = y

    # ---- interactivity / animation ----

    def set_interactive(self, interactive: bool) -> None:
        self._interactive = interactive
        if self._root_primitive is not None:
            self._root_primitive.set_draggable(interactive)

    def is_interactive(self) -> bool:
        return self._interactive

    def animate(self, running: bool) -> None:
        self._animating = running

    def is_animating(self) -> bool:
        return self._animating

    def tick(self, elapsed: float) -> None:
        """Advance time-driven visuals (only called while animating)."""
