"""
Scene & Collage
===============
Ordered, owned collections of positioned components.

A Scene is itself a SmartComp, so it can be nested inside another Scene
(a Collage). Containment is a tree: every component has at most one
parent, and moving a component detaches it from its old parent before it
is attached to the new one.

Classes:
    Scene: Components arranged to visualize (part of) a system.
    Collage: A Scene whose children are Scenes.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Optional

from visualizeit.model.errors import ValidationError
from visualizeit.model.primitives import Group, Rect
from visualizeit.model.smart_comp import SmartComp

if TYPE_CHECKING:
    from visualizeit.model.package import SmartPkg

logger = logging.getLogger(__name__)


class Scene(SmartComp):
    DEFAULT_PARAMS = {"x": 0, "y": 0, "width": 300, "height": 300}

    def __init__(
        self,
        id: str,
        name: Optional[str] = None,
        comps: Iterable[SmartComp] = (),
        draggable: bool = False,
        **visual_params: Any,
    ) -> None:
        super().__init__(id, name, **visual_params)

        check = f"{self.diag_class_name()}(id:'{id}') constructor parameter violation: "
        if isinstance(comps, (str, bytes)) or not isinstance(comps, Iterable):
            raise ValidationError(check + "comps must be a sequence of SmartComp")
        for key in ("width", "height"):
            value = self.visual_params[key]
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise ValidationError(check + f"{key} must be a positive number, not {value!r}")

        self._comps: list[SmartComp] = []
        self._draggable = bool(draggable)
        self._suspended = False
        # runtime override of the draggable flag by the owning tab, None: no override
        self._editing: Optional[bool] = None
        # set by SmartPkg when self is a top-level package entry
        self._pkg: Optional[SmartPkg] = None

        for comp in comps:
            self.add(comp)

    # ---- composition ----

    @property
    def children(self) -> tuple[SmartComp, ...]:
        return tuple(self._comps)

    def __len__(self) -> int:
        return len(self._comps)

    def __iter__(self) -> Iterator[SmartComp]:
        return iter(tuple(self._comps))

    def __contains__(self, comp: object) -> bool:
        return any(c is comp for c in self._comps)

    def index_of(self, comp: SmartComp) -> int:
        for i, c in enumerate(self._comps):
            if c is comp:
                return i
        raise ValidationError(f"{comp!r} is not a child of {self!r}")

    def _check_child(self, comp: SmartComp) -> None:
        if not isinstance(comp, SmartComp):
            raise ValidationError(f"{self.diag_class_name()}(id:'{self.id}') children must be SmartComp, "
                                  f"not {type(comp).__name__}")
        if comp is self or (isinstance(comp, Scene) and comp.is_ancestor_of(self)):
            raise ValidationError(f"{comp!r} cannot be nested inside itself")
        if comp.parent is self:
            raise ValidationError(f"{comp!r} is already a child of {self!r}")
        if isinstance(comp, Scene) and comp._pkg is not None:
            raise ValidationError(f"{comp!r} is a package entry, remove it from its package first")
        for c in self._comps:
            if c.id == comp.id:
                raise ValidationError(f"{self!r} already holds a child with id '{comp.id}'")

    def is_ancestor_of(self, comp: SmartComp) -> bool:
        node = comp.parent
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def add(self, comp: SmartComp, index: Optional[int] = None) -> Scene:
        """Append (or insert at ``index``) ``comp``, detaching it from any old parent."""
        self._check_child(comp)
        if comp.parent is not None:
            comp.parent.remove(comp)

        if index is None:
            self._comps.append(comp)
        else:
            self._comps.insert(index, comp)
        comp.parent = self

        # keep an already manifested scene in sync
        if self._root_primitive is not None:
            comp.manifest(self._root_primitive)
            comp.set_interactive(self._children_interactive())
            self._sync_z_order()
        return self

    def remove(self, comp: SmartComp) -> Scene:
        index = self.index_of(comp)
        comp.unmanifest()
        del self._comps[index]
        comp.parent = None
        return self

    def reorder(self, comp: SmartComp, index: int) -> Scene:
        """Move ``comp`` to position ``index`` (later entries paint on top)."""
        current = self.index_of(comp)
        del self._comps[current]
        self._comps.insert(index, comp)
        self._sync_z_order()
        return self

    def move_to(self, comp: SmartComp, other: Scene, index: Optional[int] = None) -> Scene:
        """Move ``comp`` from self into ``other``."""
        self.index_of(comp)
        other.add(comp, index)
        return self

    def _sync_z_order(self) -> None:
        group = self._root_primitive
        if group is None:
            return
        order = {id(c.root_primitive): i for i, c in enumerate(self._comps) if c.root_primitive is not None}
        group.children.sort(key=lambda p: order.get(id(p), -1))
        group._notify("zorder")

    def walk(self) -> Iterator[SmartComp]:
        """Yield every descendant component, depth-first."""
        for comp in self._comps:
            yield comp
            if isinstance(comp, Scene):
                yield from comp.walk()

    def has_unresolved(self) -> bool:
        return any(c.unresolved for c in self.walk())

    # ---- draggable / interaction ----

    def draggable(self, draggable: Optional[bool] = None) -> bool | Scene:
        """
        Get/set the draggability of self's children.

        Setting propagates to already manifested primitives (no remanifest)
        and returns self for chaining.
        """
        if draggable is None:
            return self._draggable
        self._draggable = bool(draggable)
        self._propagate_interactivity()
        return self

    def set_editing(self, editing: Optional[bool]) -> None:
        """
        Runtime-only override of the draggable flag (edit/view modes), never persisted.

        ``True`` makes the children draggable, ``False`` read-only and
        ``None`` hands the decision back to ``draggable()``.
        """
        self._editing = editing
        self._propagate_interactivity()

    def is_editing(self) -> Optional[bool]:
        return self._editing

    def suspend_interaction(self, suspended: bool) -> None:
        """Runtime-only suppression of interactivity (animate mode), never persisted."""
        self._suspended = suspended
        self._propagate_interactivity()

    def is_suspended(self) -> bool:
        return self._suspended

    def _children_interactive(self) -> bool:
        draggable = self._draggable if self._editing is None else self._editing
        return draggable and not self._suspended

    def _propagate_interactivity(self) -> None:
        interactive = self._children_interactive()
        for comp in self._comps:
            comp.set_interactive(interactive)

    def animate(self, running: bool) -> None:
        super().animate(running)
        for comp in self._comps:
            comp.animate(running)

    def tick(self, elapsed: float) -> None:
        for comp in self._comps:
            if comp.is_animating():
                comp.tick(elapsed)

    # ---- rendering ----

    def manifest(self, container: Group) -> None:
        group = self.mount_group(container)
        width, height = self.size()
        # frame painted below the children, hit-tests as the scene itself
        group.add(Rect(width=width, height=height, fill=self.visual_params.get("fill"),
                       stroke=self.visual_params.get("stroke", "#c0c0c0"), name=f"{self.id}-frame"))
        interactive = self._children_interactive()
        for comp in self._comps:
            comp.manifest(group)
            comp.set_interactive(interactive)

    def unmanifest(self) -> None:
        for comp in self._comps:
            comp.unmanifest()
        super().unmanifest()

    # ---- persistence ----

    def size(self) -> tuple[float, float]:
        return self.visual_params["width"], self.visual_params["height"]

    def encode(self) -> dict[str, Any]:
        data = super().encode()
        data["draggable"] = self._draggable
        data["comps"] = [c.encode() for c in self._comps]
        return data


class Collage(Scene):
    """A Scene of Scenes; in edit mode whole Scenes are dragged around."""

    DEFAULT_PARAMS = {"x": 0, "y": 0, "width": 600, "height": 400}

    def _check_child(self, comp: SmartComp) -> None:
        # unresolved placeholders keep their slot until their class is loaded
        if not isinstance(comp, Scene) and not getattr(comp, "unresolved", False):
            raise ValidationError(f"{self.diag_class_name()}(id:'{self.id}') children must be Scene instances, "
                                  f"not {type(comp).__name__}")
        super()._check_child(comp)

    @property
    def scenes(self) -> tuple[Scene, ...]:
        return tuple(c for c in self._comps if isinstance(c, Scene))
