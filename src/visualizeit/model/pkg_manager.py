from __future__ import annotations

import logging
from typing import Optional

from visualizeit.model.class_ref import ClassRef
from visualizeit.model.errors import ValidationError
from visualizeit.model.identity import Sentinel
from visualizeit.model.package import SmartPkg
from visualizeit.model.scene import Collage, Scene
from visualizeit.model.smart_comp import SmartComp

logger = logging.getLogger(__name__)

NOT_FOUND = Sentinel("NOT_FOUND")

CORE_PKG_NAME = "core"


def create_core_pkg() -> SmartPkg:
    """The class library of built-in containers (Scene, Collage)."""
    return SmartPkg(
        CORE_PKG_NAME,
        classes={"Scene": Scene, "Collage": Collage},
        desc="visualizeit core classes",
    )


class PkgManager:
    """
    Registry ``package name -> SmartPkg``.

    Created once by the application context and passed to the collaborators
    that need it (persistence, tab controllers). It is the clearing house
    for resolving class references while a package is loaded.
    """

    def __init__(self, preregister_core: bool = True) -> None:
        self._catalog: dict[str, SmartPkg] = {}
        if preregister_core:
            self.register_pkg(create_core_pkg())

    def register_pkg(self, pkg: SmartPkg) -> None:
        """Register ``pkg``, replacing any package previously registered under its name."""
        if not isinstance(pkg, SmartPkg):
            raise ValidationError(f"PkgManager.register_pkg() parameter violation: "
                                  f"pkg must be a SmartPkg, not {type(pkg).__name__}")
        if pkg.pkg_name in self._catalog:
            logger.info(f"Replacing registered package '{pkg.pkg_name}'")
        else:
            logger.info(f"Registering package '{pkg.pkg_name}' ({pkg.kind})")
        self._catalog[pkg.pkg_name] = pkg

    def unregister_pkg(self, pkg_name: str) -> bool:
        removed = self._catalog.pop(pkg_name, None)
        if removed is not None:
            logger.info(f"Unregistered package '{pkg_name}'")
        return removed is not None

    def get_package(self, pkg_name: str) -> SmartPkg | Sentinel:
        """Return the package registered as ``pkg_name`` or ``NOT_FOUND``."""
        return self._catalog.get(pkg_name, NOT_FOUND)

    def get_class(self, pkg_name: str, class_name: str) -> Optional[type[SmartComp]]:
        pkg = self._catalog.get(pkg_name)
        if pkg is None:
            return None
        return pkg.get_class(class_name)

    def resolve(self, class_ref: ClassRef) -> Optional[type[SmartComp]]:
        return self.get_class(class_ref.pkg_name, class_ref.class_name)

    def package_names(self) -> list[str]:
        return list(self._catalog)

    def packages(self) -> list[SmartPkg]:
        return list(self._catalog.values())

    def __contains__(self, pkg_name: object) -> bool:
        return pkg_name in self._catalog

    def __len__(self) -> int:
        return len(self._catalog)

    def clear(self) -> None:
        logger.info(f"Clearing {len(self._catalog)} registered packages.")
        self._catalog.clear()
