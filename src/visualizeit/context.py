"""
Application Context
===================
Constructs the long lived collaborators shared by the shell.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Instantiates the PkgManager (no module level singleton) and the
   persistence/tab registries that depend on it.
2. Registers the built-in sandbox packages.
3. Creates tab controllers for navigation entries, so the view layer never
   decides which controller type wraps which target.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from visualizeit.controller.tab_controller import (
    PanelBuilder, TabController, TabControllerClass, TabControllerCollage, TabControllerScene
)
from visualizeit.controller.tab_manager import TabManager
from visualizeit.model.errors import ValidationError
from visualizeit.model.package import SmartPkg
from visualizeit.model.pkg_manager import NOT_FOUND, PkgManager
from visualizeit.model.pkg_persist import PkgPersist
from visualizeit.model.scene import Collage
from visualizeit.sandbox import create_general_comps_pkg, create_sample_pkg

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    pkg_manager: PkgManager
    pkg_persist: PkgPersist
    tab_manager: TabManager

    @classmethod
    def create(cls, with_sandbox: bool = True) -> AppContext:
        pkg_manager = PkgManager()
        if with_sandbox:
            # the class library first: it adorns the classes the scenes reference
            pkg_manager.register_pkg(create_general_comps_pkg())
            pkg_manager.register_pkg(create_sample_pkg())
        logger.info(f"Application context created with packages: {', '.join(pkg_manager.package_names())}")
        return cls(pkg_manager, PkgPersist(pkg_manager), TabManager())

    def navigable_packages(self) -> list[SmartPkg]:
        return self.pkg_manager.packages()

    @staticmethod
    def tab_id_for(pkg: SmartPkg, key: str) -> str:
        prefix = "class" if pkg.is_class_library() else "scene"
        return f"{prefix}:{pkg.pkg_name}/{key}"

    def create_tab_controller(self, pkg_name: str, key: str,
                              panel_builder: Optional[PanelBuilder] = None) -> TabController:
        """
        Controller for entry (scene package) or class (class library) ``key`` of ``pkg_name``.

        Raises:
            ValidationError: Unknown package or key.
        """
        pkg = self.pkg_manager.get_package(pkg_name)
        if pkg is NOT_FOUND:
            raise ValidationError(f"Package '{pkg_name}' is not registered")

        tab_id = self.tab_id_for(pkg, key)
        if pkg.is_class_library():
            clazz = pkg.get_class(key)
            if clazz is None:
                raise ValidationError(f"Package '{pkg_name}' has no class '{key}'")
            return TabControllerClass(tab_id, key, clazz, self.pkg_manager, panel_builder=panel_builder)

        entry = pkg.get_entry(key)
        if entry is None:
            raise ValidationError(f"Package '{pkg_name}' has no entry '{key}'")
        if isinstance(entry, Collage):
            return TabControllerCollage(tab_id, entry.name, entry, panel_builder=panel_builder)
        return TabControllerScene(tab_id, entry.name, entry, panel_builder=panel_builder)

    def open_tab(self, pkg_name: str, key: str, panel_builder: Optional[PanelBuilder] = None) -> TabController:
        """Open (or re-activate) the tab showing ``key`` of ``pkg_name``."""
        tab_id = self._tab_id(pkg_name, key)
        if tab_id is not None and self.tab_manager.has_tab(tab_id):
            return self.tab_manager.activate(tab_id)
        return self.tab_manager.open_tab(self.create_tab_controller(pkg_name, key, panel_builder))

    def _tab_id(self, pkg_name: str, key: str) -> Optional[str]:
        pkg = self.pkg_manager.get_package(pkg_name)
        return self.tab_id_for(pkg, key) if pkg is not NOT_FOUND else None

    def shutdown(self) -> None:
        logger.info("Shutting down application context.")
        self.tab_manager.close_all()
        self.pkg_manager.clear()
