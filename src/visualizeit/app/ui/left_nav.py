from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QTreeWidget, QTreeWidgetItem, QWidget

from visualizeit.model.package import SmartPkg

logger = logging.getLogger(__name__)

ROLE_PKG_NAME = Qt.ItemDataRole.UserRole
ROLE_KEY = Qt.ItemDataRole.UserRole + 1


class LeftNav(QTreeWidget):
    """
    Navigation tree of the loaded packages.

    One top-level item per package, with its scenes (or component classes)
    below. Double-clicking a leaf requests a tab for it.
    """
    # (pkg_name, key) - key is an entry id or a class name
    open_requested = Signal(str, str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setHeaderHidden(True)
        self.setMinimumWidth(200)
        self.itemDoubleClicked.connect(self._on_item_double_clicked)

    def find_pkg_item(self, pkg_name: str) -> Optional[QTreeWidgetItem]:
        for i in range(self.topLevelItemCount()):
            item = self.topLevelItem(i)
            if item.data(0, ROLE_PKG_NAME) == pkg_name:
                return item
        return None

    def add_left_nav(self, pkg: SmartPkg) -> None:
        """Register ``pkg``'s contents in the tree (replacing an older listing of the same package)."""
        old = self.find_pkg_item(pkg.pkg_name)
        if old is not None:
            self.takeTopLevelItem(self.indexOfTopLevelItem(old))

        pkg_item = QTreeWidgetItem([pkg.name])
        pkg_item.setData(0, ROLE_PKG_NAME, pkg.pkg_name)
        pkg_item.setToolTip(0, f"{pkg.pkg_name} v{pkg.version}")

        if pkg.is_class_library():
            keys = [(name, name) for name in pkg.class_names()]
        else:
            keys = [(entry.id, entry.name) for entry in pkg.entries]

        for key, label in keys:
            child = QTreeWidgetItem([label])
            child.setData(0, ROLE_PKG_NAME, pkg.pkg_name)
            child.setData(0, ROLE_KEY, key)
            pkg_item.addChild(child)

        self.addTopLevelItem(pkg_item)
        pkg_item.setExpanded(True)
        logger.debug(f"Left nav lists '{pkg.pkg_name}' ({len(keys)} items)")

    def remove_left_nav(self, pkg_name: str) -> bool:
        item = self.find_pkg_item(pkg_name)
        if item is None:
            return False
        self.takeTopLevelItem(self.indexOfTopLevelItem(item))
        return True

    def _on_item_double_clicked(self, item: QTreeWidgetItem, _column: int) -> None:
        key = item.data(0, ROLE_KEY)
        if key:
            self.open_requested.emit(item.data(0, ROLE_PKG_NAME), key)
