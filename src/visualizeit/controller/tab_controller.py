"""
Tab Controllers
===============
One controller per open tab. It owns the tab's target (a Scene/Collage or a
component class instance) and its display-mode state machine, and it
produces the renderable panel of the tab.

Why is this file needed?
------------------------
1. State Machine: ``set_disp_mode()`` is the only transition operator. The
   base records the mode, derivations layer their side effects on the
   enter/leave hooks (edit = draggable, view = read-only, animate = time
   driven visuals with interaction suspended). The hooks only touch runtime
   state of the target. They first run when the tab is started (opened in
   the TabManager); a controller discarded in favour of an already open tab
   never runs them.
2. Lazy Rendering: ``create_tab_panel_comp()`` builds exactly one SmartView
   and returns a zero-argument factory; nothing renders until the host
   mounts the factory's result.
3. Save Resolution: ``get_package()`` implements the rule deciding which
   package a "Save" of this tab refers to.
4. Undo/Redo: edits made through an editable tab (composition changes and
   committed drags) are registered in the ChangeManager of its package.

Classes:
    TabController: Abstract base.
    TabControllerScene: Scenes (editable).
    TabControllerCollage: Collages (editable, whole Scenes are dragged).
    TabControllerClass: Component class inspection (never editable).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Any, Callable, ClassVar, Optional

from visualizeit.config import CLASS_VIEW_SIZE
from visualizeit.controller.smart_view import SmartView
from visualizeit.model.change_manager import ChangeManager
from visualizeit.model.disp_mode import DispMode, DispModeMachine
from visualizeit.model.errors import ValidationError
from visualizeit.model.identity import Sentinel
from visualizeit.model.package import SmartPkg
from visualizeit.model.pkg_manager import PkgManager
from visualizeit.model.scene import Collage, Scene
from visualizeit.model.smart_comp import NO_PACKAGE, SmartComp

logger = logging.getLogger(__name__)

# Turns the tab's SmartView into whatever the host displays (e.g. a QWidget)
PanelBuilder = Callable[[SmartView], Any]
PanelFactory = Callable[[], Any]


def _default_panel_builder(view: SmartView) -> SmartView:
    return view


class TabController(ABC):
    """
    Args:
        tab_id: Globally unique key of the tab (federated namespace, e.g. ``scene:pkg/entry``).
        tab_name: Human readable name displayed in the tab.
        target: The Scene or component managed by this tab.
        panel_builder: Converts the tab's SmartView into the host panel.
        initial_mode: Overrides ``DEFAULT_MODE``.
    """
    DEFAULT_MODE: ClassVar[DispMode] = DispMode.VIEW

    def __init__(
        self,
        tab_id: str,
        tab_name: str,
        target: SmartComp,
        panel_builder: Optional[PanelBuilder] = None,
        initial_mode: Optional[DispMode | str] = None,
    ) -> None:
        check = f"{type(self).__name__}() constructor parameter violation: "
        if not tab_id or not isinstance(tab_id, str):
            raise ValidationError(check + "tab_id must be a non-empty string")
        if not tab_name or not isinstance(tab_name, str):
            raise ValidationError(check + "tab_name must be a non-empty string")
        if not isinstance(target, SmartComp):
            raise ValidationError(check + f"target must be a SmartComp, not {type(target).__name__}")

        self.tab_id = tab_id
        self.tab_name = tab_name
        self.target = target
        self._panel_builder = panel_builder or _default_panel_builder
        self._panel_factory: Optional[PanelFactory] = None
        self._views: list[SmartView] = []
        self._closed = False

        initial = DispMode.parse(initial_mode or self.DEFAULT_MODE)
        if initial == DispMode.EDIT and not self.is_editable():
            raise ValidationError(check + f"tab '{tab_id}' does NOT support editing")

        # started by start(), see the module docstring
        self._machine = DispModeMachine(
            initial,
            on_enter={
                DispMode.EDIT: self._enter_edit,
                DispMode.VIEW: self._enter_view,
                DispMode.ANIMATE: self._enter_animate,
            },
            on_leave={DispMode.ANIMATE: self._leave_animate},
        )

    # ---- accessors ----

    def get_tab_id(self) -> str:
        return self.tab_id

    def get_tab_name(self) -> str:
        return self.tab_name

    def get_target(self) -> SmartComp:
        return self.target

    def get_disp_mode(self) -> DispMode:
        return self._machine.mode or self._machine.initial

    def is_started(self) -> bool:
        return self._machine.mode is not None

    def is_closed(self) -> bool:
        return self._closed

    @abstractmethod
    def is_editable(self) -> bool:
        """Whether this tab supports the ``edit`` display mode."""

    # ---- state machine ----

    def start(self) -> None:
        """Enter the initial display mode. Repeated calls do nothing."""
        if self._closed:
            raise RuntimeError(f"Tab '{self.tab_id}' is closed")
        if not self.is_started():
            self._machine.start()
            logger.debug(f"Tab '{self.tab_id}' started in display mode: {self._machine.mode}")

    def set_disp_mode(self, disp_mode: DispMode | str) -> None:
        mode = DispMode.parse(disp_mode)
        if self._closed:
            raise RuntimeError(f"Tab '{self.tab_id}' is closed")
        if mode == DispMode.EDIT and not self.is_editable():
            raise ValidationError(f"{type(self).__name__}.set_disp_mode() parameter violation: "
                                  f"this tab does NOT support editing (tabId:{self.tab_id}, tabName:{self.tab_name})")
        self.start()
        if self._machine.transition(mode):
            logger.info(f"Tab '{self.tab_id}' display mode: {mode}")

    def reapply_disp_mode(self) -> None:
        """Re-run the enter hook of the current mode on the target."""
        if self.is_started() and not self._closed:
            self._machine.reenter()

    def _enter_edit(self) -> None:
        pass

    def _enter_view(self) -> None:
        pass

    def _enter_animate(self) -> None:
        pass

    def _leave_animate(self) -> None:
        pass

    def _release(self) -> None:
        """Drop the runtime state the mode hooks put on the target."""

    def tick(self, elapsed: float) -> None:
        """Advance time driven visuals (only while animating)."""
        if self._machine.mode == DispMode.ANIMATE:
            self.target.tick(elapsed)

    # ---- panel ----

    @abstractmethod
    def create_tab_panel_comp(self) -> PanelFactory:
        """Build the tab's SmartView and return a factory of the renderable panel."""

    def _panel_factory_for(self, view: SmartView) -> PanelFactory:
        self._views.append(view)
        return lambda: self._panel_builder(view)

    def get_tab_panel_comp(self) -> PanelFactory:
        # cached so the heavy weight surface is mounted only once per tab
        if self._panel_factory is None:
            self.start()
            self._panel_factory = self.create_tab_panel_comp()
        return self._panel_factory

    @property
    def views(self) -> tuple[SmartView, ...]:
        return tuple(self._views)

    # ---- save resolution ----

    def get_package(self) -> SmartPkg | Sentinel:
        """The package a "Save" of this tab refers to."""
        return self.target.get_package()

    def same_target(self, other: TabController) -> bool:
        return self.target is other.target

    # ---- undo / redo ----

    def get_change_manager(self) -> Optional[ChangeManager]:
        """The undo/redo history edits of this tab are registered in (None: not editable)."""
        return None

    def _editing_changes(self, action: str) -> ChangeManager:
        changes = self.get_change_manager()
        if changes is None or not self.is_editable():
            raise ValidationError(f"Tab '{self.tab_id}' does NOT support editing ({action})")
        if self._closed:
            raise RuntimeError(f"Tab '{self.tab_id}' is closed")
        self.start()
        if self.get_disp_mode() != DispMode.EDIT:
            raise ValidationError(f"Tab '{self.tab_id}' must be in edit mode to {action}, "
                                  f"not {self.get_disp_mode()}")
        return changes

    def undo(self) -> str:
        """Undo the latest edit of this tab's package, returning its label."""
        return self._editing_changes("undo").apply_undo()

    def redo(self) -> str:
        return self._editing_changes("redo").apply_redo()

    # ---- teardown ----

    def close(self) -> None:
        """Unmount every view (synchronously detaching their handlers)."""
        if self._closed:
            return
        if self.is_started():
            if self.get_disp_mode() == DispMode.ANIMATE:
                # runtime only state, restored without passing through another mode
                self._leave_animate()
            self._release()
        for view in self._views:
            view.unmount()
        self._closed = True
        logger.info(f"Tab '{self.tab_id}' closed")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tab_id={self.tab_id!r}, mode={self.get_disp_mode()!r})"


class TabControllerScene(TabController):
    """
    Scenes: editable, starting out in ``view`` mode.

    Edit and view mode override the draggability of the Scene at runtime
    only; the persisted ``draggable`` flag of the Scene is left untouched.
    """

    def __init__(self, tab_id: str, tab_name: str, target: Scene, **kwargs: Any) -> None:
        if not isinstance(target, Scene):
            raise ValidationError(f"{type(self).__name__}() constructor parameter violation: "
                                  f"target must be a Scene, not {type(target).__name__}")
        self._local_changes: Optional[ChangeManager] = None
        super().__init__(tab_id, tab_name, target, **kwargs)

    @property
    def scene(self) -> Scene:
        return self.target

    def is_editable(self) -> bool:
        return True

    def _enter_edit(self) -> None:
        self.scene.set_editing(True)

    def _enter_view(self) -> None:
        self.scene.set_editing(False)

    def _enter_animate(self) -> None:
        self.scene.suspend_interaction(True)
        self.scene.animate(True)

    def _leave_animate(self) -> None:
        self.scene.animate(False)
        self.scene.suspend_interaction(False)

    def _release(self) -> None:
        self.scene.set_editing(None)

    def create_tab_panel_comp(self) -> PanelFactory:
        view = SmartView(f"{self.tab_id}/view", self.tab_name, target=self.scene)
        view.on_drag_commit(self._on_drag_commit)
        return self._panel_factory_for(view)

    # ---- edits (registered for undo/redo) ----

    def get_change_manager(self) -> ChangeManager:
        pkg = self.get_package()
        if isinstance(pkg, SmartPkg):
            return pkg.change_manager
        # a Scene outside any package keeps its history in the tab
        if self._local_changes is None:
            self._local_changes = ChangeManager()
        return self._local_changes

    def _on_drag_commit(self, comp: SmartComp, old: tuple[float, float], new: tuple[float, float]) -> None:
        self.get_change_manager().record_change(
            undo_fn=lambda: comp.move(*old),
            redo_fn=lambda: comp.move(*new),
            label=f"Move {comp.name}",
        )

    def _container(self, container: Optional[Scene]) -> Scene:
        if container is None:
            return self.scene
        if container is not self.scene and not self.scene.is_ancestor_of(container):
            raise ValidationError(f"{container!r} is not shown in tab '{self.tab_id}'")
        return container

    def _parent_of(self, comp: SmartComp) -> Scene:
        parent = comp.parent
        if parent is None:
            raise ValidationError(f"{comp!r} is not contained in a Scene")
        return self._container(parent)

    def add_comp(self, comp: SmartComp, container: Optional[Scene] = None, index: Optional[int] = None) -> None:
        """Add the new component ``comp`` to ``container`` (default: the tab's Scene)."""
        changes = self._editing_changes("add components")
        target = self._container(container)
        if comp.parent is not None:
            raise ValidationError(f"{comp!r} is already contained in {comp.parent!r}, move it instead")
        changes.apply_change(
            change_fn=lambda: target.add(comp, index),
            undo_fn=lambda: target.remove(comp),
            label=f"Add {comp.name}",
        )

    def remove_comp(self, comp: SmartComp) -> None:
        changes = self._editing_changes("remove components")
        parent = self._parent_of(comp)
        index = parent.index_of(comp)
        changes.apply_change(
            change_fn=lambda: parent.remove(comp),
            undo_fn=lambda: parent.add(comp, index),
            label=f"Remove {comp.name}",
        )

    def reorder_comp(self, comp: SmartComp, index: int) -> None:
        """Move ``comp`` to position ``index`` of its Scene (later entries paint on top)."""
        changes = self._editing_changes("reorder components")
        parent = self._parent_of(comp)
        old_index = parent.index_of(comp)
        changes.apply_change(
            change_fn=lambda: parent.reorder(comp, index),
            undo_fn=lambda: parent.reorder(comp, old_index),
            label=f"Reorder {comp.name}",
        )

    def move_comp(self, comp: SmartComp, other: Scene, index: Optional[int] = None) -> None:
        """Move ``comp`` from its Scene into ``other``, both shown in this tab."""
        changes = self._editing_changes("move components")
        source = self._parent_of(comp)
        target = self._container(other)
        old_index = source.index_of(comp)
        changes.apply_change(
            change_fn=lambda: source.move_to(comp, target, index),
            undo_fn=lambda: target.move_to(comp, source, old_index),
            label=f"Move {comp.name} to {target.name}",
        )


class TabControllerCollage(TabControllerScene):
    """Collages: in edit mode the contained Scenes are dragged as a whole."""

    def __init__(self, tab_id: str, tab_name: str, target: Collage, **kwargs: Any) -> None:
        if not isinstance(target, Collage):
            raise ValidationError(f"TabControllerCollage() constructor parameter violation: "
                                  f"target must be a Collage, not {type(target).__name__}")
        super().__init__(tab_id, tab_name, target, **kwargs)

    @property
    def collage(self) -> Collage:
        return self.target


class TabControllerClass(TabController):
    """
    Inspects a component class through a throwaway instance.

    The instance has no containing Scene, so its package is looked up through
    its ClassRef in ``pkg_manager``. That package holds code and is never
    persistable.
    """

    def __init__(
        self,
        tab_id: str,
        tab_name: str,
        target: SmartComp | type[SmartComp],
        pkg_manager: PkgManager,
        **kwargs: Any,
    ) -> None:
        if isinstance(target, type) and issubclass(target, SmartComp) and target is not SmartComp:
            target = self.create_sample(target)
        if isinstance(target, SmartComp) and target.parent is not None:
            raise ValidationError(f"TabControllerClass() constructor parameter violation: "
                                  f"{target!r} is contained in a Scene, open its Scene instead")
        self.pkg_manager = pkg_manager
        super().__init__(tab_id, tab_name, target, **kwargs)

    @staticmethod
    def create_sample(clazz: type[SmartComp]) -> SmartComp:
        """A sample instance of ``clazz``, centered in the class view."""
        width, height = CLASS_VIEW_SIZE
        return clazz(f"{clazz.__name__}-sample", x=width / 4, y=height / 4)

    def is_editable(self) -> bool:
        return False

    def _enter_view(self) -> None:
        self.target.set_interactive(False)

    def _enter_animate(self) -> None:
        self.target.animate(True)

    def _leave_animate(self) -> None:
        self.target.animate(False)

    def create_tab_panel_comp(self) -> PanelFactory:
        view = SmartView(f"{self.tab_id}/view", self.tab_name, target=self.target)
        return self._panel_factory_for(view)

    def get_package(self) -> SmartPkg | Sentinel:
        pkg = self.target.get_package()
        if pkg is not NO_PACKAGE:
            return pkg
        class_ref = self.target.get_class_ref()
        if class_ref is None:
            return NO_PACKAGE
        return self.pkg_manager.get_package(class_ref.get_class_pkg_name())

    def same_target(self, other: TabController) -> bool:
        return isinstance(other, TabControllerClass) and type(self.target) is type(other.target)
