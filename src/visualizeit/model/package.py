"""
SmartPkg
========
Named, versioned packages.

A package is EITHER:
  - a scene package: a sequence of persistable Scene/Collage entries
    (editable, savable), OR
  - a class library: a registry ``class name -> SmartComp subclass``
    (code, so NOT savable as instance data).

Registering classes in a package adorns each class with its ``ClassRef``,
which is how component instances are persisted without their code.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from visualizeit.model.change_manager import ChangeManager
from visualizeit.model.class_ref import ClassRef
from visualizeit.model.errors import UnresolvedReference, ValidationError
from visualizeit.model.identity import Identifiable
from visualizeit.model.scene import Scene
from visualizeit.model.smart_comp import SmartComp

logger = logging.getLogger(__name__)

KIND_SCENES = "scenes"
KIND_CLASSES = "classes"


class SmartPkg(Identifiable):
    """
    Args:
        name: Package name, the key under which PkgManager registers it.
        version: Package version string.
        entries: Scene/Collage definitions (scene package).
        classes: Mapping of class name to SmartComp subclass (class library).
        desc: Human readable description (defaults to ``name``).
    """

    def __init__(
        self,
        name: str,
        version: str = "1.0.0",
        entries: Optional[Iterable[Scene]] = None,
        classes: Optional[Mapping[str, type[SmartComp]]] = None,
        desc: Optional[str] = None,
    ) -> None:
        super().__init__(name, desc)

        check = f"{self.diag_class_name()}(name:'{name}') constructor parameter violation: "
        if entries is not None and classes is not None:
            raise ValidationError(check + "a package holds either entries or classes, never both")
        if not isinstance(version, str) or not version:
            raise ValidationError(check + "version must be a non-empty string")

        self.version = version
        self.kind = KIND_CLASSES if classes is not None else KIND_SCENES

        # where self was opened from / saved to (not persisted)
        self.resource_locator: Optional[str] = None
        # unresolved class references collected while loading
        self.diagnostics: list[UnresolvedReference] = []

        self._entries: list[Scene] = []
        self._classes: dict[str, type[SmartComp]] = {}

        for entry in entries or ():
            self.add_entry(entry)

        for class_name, clazz in (classes or {}).items():
            if not (isinstance(clazz, type) and issubclass(clazz, SmartComp)):
                raise ValidationError(check + f"classes['{class_name}'] must be a SmartComp subclass")
            self._classes[class_name] = clazz
            clazz.adorn_class_ref(ClassRef(pkg_name=self.pkg_name, class_name=class_name))

        self._base_crc = self.crc()
        # undo/redo history of the edits made to self (not persisted)
        self.change_manager = ChangeManager(self)

    # ---- identity ----

    @property
    def pkg_name(self) -> str:
        return self.id

    def get_pkg_name(self) -> str:
        return self.id

    def is_class_library(self) -> bool:
        return self.kind == KIND_CLASSES

    def can_persist(self) -> bool:
        """Packages holding code cannot be saved."""
        return self.kind == KIND_SCENES

    # ---- entries ----

    @property
    def entries(self) -> tuple[Scene, ...]:
        return tuple(self._entries)

    def get_entry(self, entry_id: str) -> Optional[Scene]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def add_entry(self, entry: Scene) -> None:
        if self.kind != KIND_SCENES:
            raise ValidationError(f"{self!r} is a class library, it cannot hold entries")
        if not isinstance(entry, Scene):
            raise ValidationError(f"{self!r} entries must be Scene/Collage instances, not {type(entry).__name__}")
        if entry.parent is not None:
            raise ValidationError(f"{entry!r} is nested in {entry.parent!r}, only top-level scenes are entries")
        if entry._pkg is not None and entry._pkg is not self:
            raise ValidationError(f"{entry!r} already belongs to package '{entry._pkg.pkg_name}'")
        if self.get_entry(entry.id) is not None:
            raise ValidationError(f"{self!r} already holds an entry with id '{entry.id}'")
        self._entries.append(entry)
        entry._pkg = self

    def remove_entry(self, entry: Scene) -> None:
        if entry not in self._entries:
            raise ValidationError(f"{entry!r} is not an entry of {self!r}")
        self._entries.remove(entry)
        entry._pkg = None

    def has_unresolved(self) -> bool:
        return bool(self.diagnostics) or any(e.has_unresolved() for e in self._entries)

    # ---- classes ----

    def class_names(self) -> list[str]:
        return list(self._classes)

    def get_class(self, class_name: str) -> Optional[type[SmartComp]]:
        return self._classes.get(class_name)

    def get_class_ref(self, class_name: str) -> Optional[ClassRef]:
        clazz = self._classes.get(class_name)
        return clazz.get_class_ref() if clazz else None

    # ---- persistence / change detection ----

    def encode(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.pkg_name,
            "desc": self.name,
            "version": self.version,
            "kind": self.kind,
        }
        if self.kind == KIND_CLASSES:
            data["classes"] = {
                class_name: f"{clazz.__module__}:{clazz.__qualname__}"
                for class_name, clazz in self._classes.items()
            }
        else:
            data["entries"] = [entry.encode() for entry in self._entries]
        return data

    def reset_base_crc(self) -> None:
        self._base_crc = self.crc()
        self.change_manager.sync_monitored_change()

    def is_modified(self) -> bool:
        return self.crc() != self._base_crc

    def __repr__(self) -> str:
        return f"SmartPkg(name={self.pkg_name!r}, kind={self.kind!r}, version={self.version!r})"
