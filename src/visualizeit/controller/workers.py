"""
Background Workers (Threading)
==============================
This module contains the QThread subclass loading packages off the UI thread.

Why is this file needed?
------------------------
1. Responsiveness: Reading and decoding a large package on the main thread
   freezes the GUI. ``PkgLoadWorker`` pushes that work to a background thread.
2. Signals: Results are delivered back to the UI thread through Qt Signals,
   where the package is registered (the PkgManager is only mutated there).
3. No Duplicates: ``PkgLoader`` keeps one in-flight load per resource
   locator. A second request for the same locator joins the running one.

Classes:
    PkgLoadWorker: Reads and decodes one package resource.
    PkgLoader: Dispatches workers and registers their results.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from PySide6.QtCore import QObject, QThread, Signal

from visualizeit.controller.tab_manager import TabManager
from visualizeit.model.errors import VisualizeItError
from visualizeit.model.package import SmartPkg
from visualizeit.model.pkg_persist import PkgPersist

logger = logging.getLogger(__name__)


class PkgLoadWorker(QThread):
    # Signals to deliver the result to the UI thread
    loaded = Signal(str, object)  # (locator key, SmartPkg)
    error_occurred = Signal(str, str)  # (locator key, message)

    def __init__(self, pkg_persist: PkgPersist, locator: str, key: Optional[str] = None,
                 parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.pkg_persist = pkg_persist
        self.locator = locator
        self.key = key or locator

    def run(self) -> None:
        try:
            logger.info(f"Loading package in background thread: {self.locator}")
            data = self.pkg_persist.read_resource(self.locator)
            pkg = self.pkg_persist.decode_pkg(data)
            pkg.resource_locator = self.locator
            pkg.reset_base_crc()
            self.loaded.emit(self.key, pkg)
        except VisualizeItError as e:
            logger.error(f"Error in PkgLoadWorker: {e}")
            self.error_occurred.emit(self.key, e.display_msg())
        except Exception as e:
            logger.exception(f"Unexpected error in PkgLoadWorker: {e}")
            self.error_occurred.emit(self.key, str(e))


class PkgLoader(QObject):
    """
    Args:
        pkg_persist: Persistence used by the workers.
        tab_manager: Used to drop results whose originating tabs were closed.
    """
    pkg_loaded = Signal(object)  # registered SmartPkg
    load_failed = Signal(str, str)  # (locator, message)

    def __init__(self, pkg_persist: PkgPersist, tab_manager: Optional[TabManager] = None,
                 parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.pkg_persist = pkg_persist
        self.tab_manager = tab_manager
        self._in_flight: dict[str, PkgLoadWorker] = {}
        # every started worker, until its thread has finished
        self._workers: list[PkgLoadWorker] = []
        # tab ids that requested each in-flight load (None = not tied to a tab)
        self._origins: dict[str, list[Optional[str]]] = {}

    @staticmethod
    def locator_key(locator: str) -> str:
        return os.path.normcase(os.path.abspath(locator))

    def is_loading(self, locator: str) -> bool:
        return self.locator_key(locator) in self._in_flight

    def load(self, locator: str, origin_tab_id: Optional[str] = None) -> PkgLoadWorker:
        """Start loading ``locator`` (or join the load already in flight)."""
        key = self.locator_key(locator)
        worker = self._in_flight.get(key)
        if worker is not None:
            logger.info(f"Package '{locator}' is already loading, awaiting it")
            self._origins[key].append(origin_tab_id)
            return worker

        worker = PkgLoadWorker(self.pkg_persist, locator, key, parent=self)
        worker.loaded.connect(self._on_loaded)
        worker.error_occurred.connect(self._on_error)
        worker.finished.connect(self._on_worker_finished)
        self._in_flight[key] = worker
        self._workers.append(worker)
        self._origins[key] = [origin_tab_id]
        worker.start()
        return worker

    def _is_wanted(self, origins: list[Optional[str]]) -> bool:
        if self.tab_manager is None:
            return True
        return any(tab_id is None or self.tab_manager.has_tab(tab_id) for tab_id in origins)

    def _on_loaded(self, key: str, pkg: SmartPkg) -> None:
        self._in_flight.pop(key, None)
        origins = self._origins.pop(key, [])
        if not self._is_wanted(origins):
            logger.info(f"Dropping loaded package '{pkg.pkg_name}', its tab was closed")
            return
        self.pkg_persist.pkg_manager.register_pkg(pkg)
        self.pkg_loaded.emit(pkg)

    def _on_error(self, key: str, message: str) -> None:
        self._in_flight.pop(key, None)
        origins = self._origins.pop(key, [])
        if not self._is_wanted(origins):
            return
        self.load_failed.emit(key, message)

    def _on_worker_finished(self) -> None:
        worker = self.sender()
        if worker in self._workers:
            self._workers.remove(worker)
            worker.deleteLater()

    def wait_all(self, msecs: int = 30000) -> None:
        """Block until every started worker thread has finished."""
        for worker in list(self._workers):
            worker.wait(msecs)
