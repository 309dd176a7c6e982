"""
Package Persistence (HDF5)
==========================
Converts SmartPkg graphs to/from storable resources.

Why is this file needed?
------------------------
1. Serialization: Components are stored as ``classRef`` + ``visualParams``,
   never as code. Classes are resolved again through the PkgManager.
2. Partial failure: A class that cannot be resolved does NOT abort the load.
   The component becomes an ``UnresolvedComp`` placeholder (keeping its raw
   data so a later save round-trips it) and a diagnostic is recorded. A
   component encoded like a Scene becomes an ``UnresolvedScene`` holding its
   decoded children.
3. Safety: Saving writes a temporary sibling file and swaps it in, so a
   failed save never leaves a partially written package.

Resource layout:
    attrs: format, version (app), pkg_name, pkg_version, kind
    payload: JSON document in attr ``payload_json`` or dataset ``payload``
"""
from __future__ import annotations

import copy
import importlib
import json
import logging
import os
import uuid
from typing import Any, Callable, Optional

import h5py
import numpy as np

from visualizeit.config import APP_VERSION, ATTR_JSON_LIMIT, PKG_FORMAT_ID
from visualizeit.model.class_ref import ClassRef
from visualizeit.model.errors import (
    PackageFormatError, PersistenceUnsupportedError, UnresolvedReference, ValidationError, VisualizeItError
)
from visualizeit.model.package import KIND_CLASSES, KIND_SCENES, SmartPkg
from visualizeit.model.pkg_manager import NOT_FOUND, PkgManager
from visualizeit.model.primitives import Group, Rect
from visualizeit.model.scene import Scene
from visualizeit.model.smart_comp import SmartComp

logger = logging.getLogger(__name__)

# Returns a resource locator, or None when the user cancels
LocatorProvider = Callable[[], Optional[str]]


class UnresolvedComp(SmartComp):
    """Placeholder for a component whose class could not be resolved."""
    unresolved = True

    def __init__(self, raw: dict[str, Any], class_ref: Optional[ClassRef], reason: str) -> None:
        super().__init__(str(raw["id"]), raw.get("name"), **dict(raw.get("visualParams") or {}))
        self.raw = copy.deepcopy(raw)
        self.missing_class_ref = class_ref
        self.reason = reason

    def get_class_ref(self) -> Optional[ClassRef]:
        return self.missing_class_ref

    def encode(self) -> dict[str, Any]:
        data = copy.deepcopy(self.raw)
        data["name"] = self.name
        data["visualParams"] = dict(self.visual_params)
        return data

    def manifest(self, container: Group) -> None:
        group = self.mount_group(container)
        group.add(Rect(width=80, height=40, fill="#f8d7da", stroke="#dc3545",
                       stroke_width=2, name=f"{self.id}-unresolved"))


class UnresolvedScene(Scene):
    """
    Placeholder for a Scene derivation whose class could not be resolved.

    Its children are decoded as usual, so a Collage keeps the slot and the
    resolvable content of the missing Scene class.
    """
    unresolved = True

    def __init__(self, raw: dict[str, Any], class_ref: Optional[ClassRef], reason: str,
                 comps: list[SmartComp]) -> None:
        super().__init__(str(raw["id"]), raw.get("name"), comps=comps,
                         draggable=bool(raw.get("draggable", False)), **dict(raw.get("visualParams") or {}))
        self.raw = {k: copy.deepcopy(v) for k, v in raw.items() if k != "comps"}
        self.missing_class_ref = class_ref
        self.reason = reason

    def get_class_ref(self) -> Optional[ClassRef]:
        return self.missing_class_ref

    def encode(self) -> dict[str, Any]:
        data = copy.deepcopy(self.raw)
        data.update(super().encode())
        if self.missing_class_ref is None:
            data["classRef"] = copy.deepcopy(self.raw.get("classRef"))
        return data

    def manifest(self, container: Group) -> None:
        super().manifest(container)
        frame = self.root_primitive.children[0]
        frame.restyle(stroke="#dc3545")


class PkgPersist:
    """Reads and writes packages, resolving classes through ``pkg_manager``."""

    def __init__(self, pkg_manager: PkgManager) -> None:
        self.pkg_manager = pkg_manager

    # ---- user level operations ----

    def open_pkg(self, locator_provider: LocatorProvider) -> Optional[SmartPkg]:
        """
        Ask ``locator_provider`` for a resource and load it.

        Returns:
            The loaded (and registered) package, or None when the user canceled.
        """
        locator = locator_provider()
        if not locator:
            logger.info("Open package canceled by user.")
            return None
        return self.load_pkg(locator)

    def load_pkg(self, locator: str, register: bool = True) -> SmartPkg:
        logger.info(f"Loading package from: {locator}")
        data = self.read_resource(locator)
        pkg = self.decode_pkg(data)
        pkg.resource_locator = locator
        pkg.reset_base_crc()
        if pkg.diagnostics:
            logger.warning(f"Package '{pkg.pkg_name}' loaded with {len(pkg.diagnostics)} unresolved reference(s).")
        if register:
            self.pkg_manager.register_pkg(pkg)
        logger.info(f"Package '{pkg.pkg_name}' loaded from: {locator}")
        return pkg

    def save_pkg(self, pkg: SmartPkg, locator: Optional[str] = None) -> str:
        """
        Save ``pkg`` to ``locator`` (default: where it was opened from).

        Raises:
            PersistenceUnsupportedError: ``pkg`` is a class library.
            ValidationError: No locator is known (use Save As).
        """
        if not pkg.can_persist():
            raise PersistenceUnsupportedError(
                f"Package '{pkg.pkg_name}' holds classes (code) and cannot be persisted",
                user_msg=f"'{pkg.name}' is a component class library and cannot be saved.",
            )
        target = locator or pkg.resource_locator
        if not target:
            raise ValidationError(f"Package '{pkg.pkg_name}' has no resource locator",
                                  user_msg="Choose a file to save to (Save As).")

        logger.info(f"Saving package '{pkg.pkg_name}' to: {target}")
        try:
            self.write_resource(self.encode_pkg(pkg), target)
        except Exception as e:
            logger.exception(f"Failed to save package: {e}")
            raise

        pkg.resource_locator = target
        pkg.reset_base_crc()
        logger.info(f"Package saved to: {target}")
        return target

    # ---- document <-> SmartPkg ----

    @staticmethod
    def encode_pkg(pkg: SmartPkg) -> dict[str, Any]:
        data = pkg.encode()
        data["format"] = PKG_FORMAT_ID
        return data

    def decode_pkg(self, data: Any) -> SmartPkg:
        if not isinstance(data, dict):
            raise PackageFormatError("Package document must be a JSON object",
                                     user_msg="Please select a valid visualizeit package")
        if data.get("format", PKG_FORMAT_ID) != PKG_FORMAT_ID:
            raise PackageFormatError(f"Unknown package format '{data.get('format')}'",
                                     user_msg="Please select a valid visualizeit package")
        if "entries" in data and "classes" in data:
            raise PackageFormatError("Package document holds both entries and classes")

        name = data.get("name")
        if not name:
            raise PackageFormatError("Package document has no name")
        version = str(data.get("version") or "1.0.0")
        desc = data.get("desc")
        kind = data.get("kind")

        try:
            if kind == KIND_CLASSES:
                diagnostics: list[UnresolvedReference] = []
                classes = self._import_classes(name, data.get("classes") or {}, diagnostics)
                pkg = SmartPkg(name, version, classes=classes, desc=desc)
            elif kind == KIND_SCENES:
                diagnostics = []
                entries = self._decode_entries(data.get("entries") or [], diagnostics)
                pkg = SmartPkg(name, version, entries=entries, desc=desc)
            else:
                raise PackageFormatError(f"Unknown package kind '{kind}'")
        except ValidationError as e:
            raise PackageFormatError(f"Invalid package '{name}': {e}",
                                     user_msg=f"The '{name}' package is corrupt: {e}") from e

        pkg.diagnostics.extend(diagnostics)
        return pkg

    def _decode_entries(self, raw_entries: list[Any], diagnostics: list[UnresolvedReference]) -> list[Scene]:
        entries: list[Scene] = []
        for raw in raw_entries:
            entry_id = str(raw.get("id", "?")) if isinstance(raw, dict) else "?"
            try:
                entry = self._decode_comp(raw, entry_id, diagnostics)
            except (VisualizeItError, TypeError, ValueError) as e:
                # one broken entry does not abort the whole load
                logger.warning(f"Skipping entry '{entry_id}': {e}")
                diagnostics.append(UnresolvedReference(entry_id, entry_id, "?", "?", f"invalid entry: {e}"))
                continue
            if not isinstance(entry, Scene):
                diagnostics.append(UnresolvedReference(
                    entry_id, entry_id, *self._ref_names(entry.get_class_ref()),
                    "top-level entries must be Scene/Collage"))
                continue
            entries.append(entry)
        return entries

    def _decode_comp(self, raw: Any, entry_id: str, diagnostics: list[UnresolvedReference]) -> SmartComp:
        if not isinstance(raw, dict) or not raw.get("id"):
            raise ValidationError(f"Invalid component encoding: {raw!r}")

        class_ref: Optional[ClassRef]
        try:
            class_ref = ClassRef.decode(raw.get("classRef"))
            clazz = self.pkg_manager.resolve(class_ref)
            if clazz is not None:
                reason = ""
            elif self.pkg_manager.get_package(class_ref.pkg_name) is NOT_FOUND:
                reason = f"package '{class_ref.pkg_name}' is not loaded"
            else:
                reason = f"class not in package '{class_ref.pkg_name}'"
        except ValidationError:
            class_ref, clazz, reason = None, None, "missing classRef"

        params = dict(raw.get("visualParams") or {})
        if clazz is not None and issubclass(clazz, Scene):
            children = [self._decode_comp(c, entry_id, diagnostics) for c in raw.get("comps") or []]
            return clazz(str(raw["id"]), raw.get("name"), comps=children,
                         draggable=bool(raw.get("draggable", False)), **params)

        if clazz is not None:
            try:
                return clazz(str(raw["id"]), raw.get("name"), **params)
            except (VisualizeItError, TypeError, ValueError) as e:
                reason = f"could not instantiate: {e}"

        diagnostic = UnresolvedReference(entry_id, str(raw["id"]), *self._ref_names(class_ref), reason)
        logger.warning(f"Unresolved reference: {diagnostic}")
        diagnostics.append(diagnostic)

        raw_comps = raw.get("comps")
        if isinstance(raw_comps, list):
            # encoded like a Scene: keep its children live
            children = [self._decode_comp(c, entry_id, diagnostics) for c in raw_comps]
            try:
                return UnresolvedScene(raw, class_ref, reason, children)
            except ValidationError as e:
                logger.warning(f"Cannot rebuild '{raw['id']}' as a Scene ({e}), keeping its raw data")
        return UnresolvedComp(raw, class_ref, reason)

    @staticmethod
    def _ref_names(class_ref: Optional[ClassRef]) -> tuple[str, str]:
        if class_ref is None:
            return "?", "?"
        return class_ref.pkg_name, class_ref.class_name

    @staticmethod
    def _import_classes(pkg_name: str, manifest: dict[str, str],
                        diagnostics: list[UnresolvedReference]) -> dict[str, type[SmartComp]]:
        """Import the ``module:QualName`` paths of a class registry manifest."""
        classes: dict[str, type[SmartComp]] = {}
        for class_name, path in manifest.items():
            module_name, _, qualname = str(path).partition(":")
            try:
                obj: Any = importlib.import_module(module_name)
                for part in qualname.split("."):
                    obj = getattr(obj, part)
                if not (isinstance(obj, type) and issubclass(obj, SmartComp)):
                    raise TypeError(f"'{path}' is not a SmartComp class")
            except (ImportError, AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Cannot import class '{class_name}' ({path}): {e}")
                diagnostics.append(UnresolvedReference("<classes>", class_name, pkg_name, class_name, str(e)))
                continue
            classes[class_name] = obj
        return classes

    # ---- resource I/O ----

    @staticmethod
    def read_resource(locator: str) -> dict[str, Any]:
        if not os.path.exists(locator):
            raise PackageFormatError(f"Package resource '{locator}' does not exist",
                                     user_msg=f"File not found: {locator}")
        if not h5py.is_hdf5(locator):
            msg = f"File '{locator}' is not a valid HDF5 file."
            logger.error(msg)
            raise PackageFormatError(msg, user_msg="Please select a valid visualizeit package")

        with h5py.File(locator, "r") as f:
            fmt = f.attrs.get("format")
            if isinstance(fmt, bytes):
                fmt = fmt.decode("utf-8")
            if fmt != PKG_FORMAT_ID:
                raise PackageFormatError(f"File '{locator}' is not a visualizeit package (format: {fmt!r})",
                                         user_msg="Please select a valid visualizeit package")

            if "payload" in f:
                # Large data stored as dataset
                payload = bytes(f["payload"][()]).decode("utf-8")
            elif "payload_json" in f.attrs:
                payload = f.attrs["payload_json"]
                if isinstance(payload, bytes):
                    payload = payload.decode("utf-8")
            else:
                raise PackageFormatError(f"File '{locator}' holds no package payload")

        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise PackageFormatError(f"INVALID JSON - {e}",
                                     user_msg="Please select a valid visualizeit package") from e

    @staticmethod
    def write_resource(data: dict[str, Any], locator: str) -> None:
        payload = json.dumps(data)
        directory = os.path.dirname(os.path.abspath(locator))
        tmp_path = os.path.join(directory, f".{os.path.basename(locator)}.{uuid.uuid4().hex}.tmp")

        try:
            with h5py.File(tmp_path, "w") as f:
                f.attrs["format"] = PKG_FORMAT_ID
                f.attrs["version"] = APP_VERSION
                f.attrs["pkg_name"] = data["name"]
                f.attrs["pkg_version"] = data.get("version", "")
                f.attrs["kind"] = data.get("kind", KIND_SCENES)

                # Use dataset if data exceeds HDF5 attribute size limit (64KB)
                if len(payload) > ATTR_JSON_LIMIT:
                    logger.info(f"Package payload is large ({len(payload)} bytes), using dataset")
                    f.create_dataset("payload", data=np.void(payload.encode("utf-8")))
                else:
                    f.attrs["payload_json"] = payload

            os.replace(tmp_path, locator)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
