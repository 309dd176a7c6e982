"""
Main Window (View)
==================
The application shell: File and Edit menus, display-mode toolbar, navigation tree and
the tab widget hosting one SceneCanvas per open tab.

Why is this file needed?
------------------------
1. Wiring: It connects user gestures (menu clicks, double clicks, mode
   buttons) to the controller layer (FileActions, TabManager, TabController).
2. Feedback: Notifications go to the status bar and the log, never to a
   blocking dialog.
3. Lifecycle: Closing a tab closes its controller first (unmounting the view)
   and only then deletes the widget.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QTimer, Qt
from PySide6.QtGui import QAction, QActionGroup, QCloseEvent, QKeySequence
from PySide6.QtWidgets import QFileDialog, QMainWindow, QSplitter, QTabWidget, QWidget

from visualizeit.app.application import VISIBLE_APP_NAME
from visualizeit.app.ui.canvas import SceneCanvas
from visualizeit.app.ui.left_nav import LeftNav
from visualizeit.config import ANIMATE_INTERVAL_MS, PKG_FILE_FILTER, PKG_FILE_SUFFIX
from visualizeit.context import AppContext
from visualizeit.controller.edit_actions import EditActions
from visualizeit.controller.file_actions import FileActions
from visualizeit.controller.tab_controller import TabController
from visualizeit.controller.workers import PkgLoader
from visualizeit.model.disp_mode import DispMode
from visualizeit.model.errors import VisualizeItError

logger = logging.getLogger(__name__)

STATUS_TIMEOUT_MS = 8000

MODE_LABELS = {
    DispMode.EDIT: "Edit",
    DispMode.VIEW: "View",
    DispMode.ANIMATE: "Animate",
}


class MainWindow(QMainWindow):
    def __init__(self, context: AppContext) -> None:
        super().__init__()
        self.setWindowTitle(VISIBLE_APP_NAME)
        self.resize(1200, 800)

        self.context = context
        self._panels: dict[str, QWidget] = {}
        # unsubscribe functions of the change monitors followed per tab
        self._monitor_subscriptions: dict[str, Callable[[], None]] = {}

        # ---- Central: navigation tree | tabs ----
        splitter = QSplitter(Qt.Orientation.Horizontal, self)
        self.left_nav = LeftNav(splitter)
        self.tabs = QTabWidget(splitter)
        self.tabs.setTabsClosable(True)
        self.tabs.setMovable(True)
        splitter.addWidget(self.left_nav)
        splitter.addWidget(self.tabs)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)

        self.file_actions = FileActions(
            context.pkg_persist,
            context.tab_manager,
            notify=self.notify,
            add_left_nav=self.left_nav.add_left_nav,
        )
        self.edit_actions = EditActions(context.tab_manager, notify=self.notify)
        self.loader = PkgLoader(context.pkg_persist, context.tab_manager, parent=self)
        self.loader.pkg_loaded.connect(self.file_actions.publish)
        self.loader.load_failed.connect(lambda locator, msg: self.notify(f"Could not open {locator}: {msg}", "error"))

        self._build_menu()
        self._build_mode_toolbar()

        self.left_nav.open_requested.connect(self.open_tab)
        self.tabs.tabCloseRequested.connect(self._on_tab_close_requested)
        self.tabs.currentChanged.connect(self._on_current_tab_changed)

        # drives time based visuals of the active tab while animating
        self.animate_timer = QTimer(self)
        self.animate_timer.setInterval(ANIMATE_INTERVAL_MS)
        self.animate_timer.timeout.connect(self._on_animate_tick)

        for pkg in context.navigable_packages():
            self.left_nav.add_left_nav(pkg)
        self._sync_mode_actions()

    # ---- construction ----

    def _build_menu(self) -> None:
        menu = self.menuBar().addMenu(self.tr("&File"))

        self.act_open = QAction(self.tr("&Open ..."), self)
        self.act_open.setShortcut(QKeySequence.StandardKey.Open)
        self.act_open.triggered.connect(self.on_open)
        menu.addAction(self.act_open)

        self.act_save = QAction(self.tr("&Save"), self)
        self.act_save.setShortcut(QKeySequence.StandardKey.Save)
        self.act_save.triggered.connect(self.on_save)
        menu.addAction(self.act_save)

        self.act_save_as = QAction(self.tr("Save &As ..."), self)
        self.act_save_as.setShortcut(QKeySequence.StandardKey.SaveAs)
        self.act_save_as.triggered.connect(self.on_save_as)
        menu.addAction(self.act_save_as)

        menu.addSeparator()
        act_exit = QAction(self.tr("E&xit"), self)
        act_exit.triggered.connect(self.close)
        menu.addAction(act_exit)

        edit_menu = self.menuBar().addMenu(self.tr("&Edit"))

        self.act_undo = QAction(self.tr("&Undo"), self)
        self.act_undo.setShortcut(QKeySequence.StandardKey.Undo)
        self.act_undo.triggered.connect(self.on_undo)
        edit_menu.addAction(self.act_undo)

        self.act_redo = QAction(self.tr("&Redo"), self)
        self.act_redo.setShortcut(QKeySequence.StandardKey.Redo)
        self.act_redo.triggered.connect(self.on_redo)
        edit_menu.addAction(self.act_redo)

    def _build_mode_toolbar(self) -> None:
        toolbar = self.addToolBar(self.tr("Display Mode"))
        self.mode_group = QActionGroup(self)
        self.mode_group.setExclusionPolicy(QActionGroup.ExclusionPolicy.ExclusiveOptional)
        self.mode_actions: dict[DispMode, QAction] = {}
        for mode, label in MODE_LABELS.items():
            action = QAction(self.tr(label), self)
            action.setCheckable(True)
            action.triggered.connect(lambda _checked=False, m=mode: self.set_active_mode(m))
            self.mode_group.addAction(action)
            toolbar.addAction(action)
            self.mode_actions[mode] = action

    # ---- notifications ----

    def notify(self, msg: str, level: str = "info") -> None:
        log = {"error": logger.error, "warning": logger.warning}.get(level, logger.info)
        log(f"[notify] {msg}")
        self.statusBar().showMessage(msg, STATUS_TIMEOUT_MS)

    # ---- locator providers (None = user canceled) ----

    def ask_open_locator(self) -> Optional[str]:
        path, _ = QFileDialog.getOpenFileName(self, self.tr("Open Package"), "", PKG_FILE_FILTER)
        return path or None

    def ask_save_locator(self) -> Optional[str]:
        path, _ = QFileDialog.getSaveFileName(self, self.tr("Save Package"), "", PKG_FILE_FILTER)
        if not path:
            return None
        if not path.endswith((PKG_FILE_SUFFIX, ".h5")):
            path += PKG_FILE_SUFFIX
        return path

    # ---- File menu ----

    def on_open(self) -> None:
        locator = self.ask_open_locator()
        if locator is None:
            return
        self.notify(f"Loading {locator} ...")
        self.loader.load(locator)

    def on_save(self) -> None:
        self.file_actions.save(self.context.tab_manager.active_tab_id, self.ask_save_locator)

    def on_save_as(self) -> None:
        self.file_actions.save_as(self.context.tab_manager.active_tab_id, self.ask_save_locator)

    # ---- Edit menu ----

    def on_undo(self) -> None:
        self.edit_actions.undo(self.context.tab_manager.active_tab_id)
        self._sync_edit_actions()

    def on_redo(self) -> None:
        self.edit_actions.redo(self.context.tab_manager.active_tab_id)
        self._sync_edit_actions()

    def _sync_edit_actions(self) -> None:
        controller = self.active_controller()
        self.act_undo.setEnabled(self.edit_actions.can_undo(controller))
        self.act_redo.setEnabled(self.edit_actions.can_redo(controller))

    def _follow_changes(self, controller: TabController) -> None:
        changes = controller.get_change_manager()
        if changes is None or controller.tab_id in self._monitor_subscriptions:
            return
        tab_id = controller.tab_id
        self._monitor_subscriptions[tab_id] = changes.subscribe(lambda monitor: self._on_monitor_changed(tab_id))

    def _on_monitor_changed(self, tab_id: str) -> None:
        index = self._index_of_tab(tab_id)
        if index >= 0 and self.context.tab_manager.has_tab(tab_id):
            controller = self.context.tab_manager.get_tab_controller(tab_id)
            monitor = self.edit_actions.monitor(controller)
            modified = monitor is not None and not monitor.in_sync
            self.tabs.setTabText(index, controller.get_tab_name() + (" *" if modified else ""))
        self._sync_edit_actions()

    # ---- tabs ----

    def _index_of_tab(self, tab_id: str) -> int:
        widget = self._panels.get(tab_id)
        return self.tabs.indexOf(widget) if widget is not None else -1

    def open_tab(self, pkg_name: str, key: str) -> Optional[TabController]:
        try:
            controller = self.context.open_tab(pkg_name, key, panel_builder=SceneCanvas)
        except VisualizeItError as e:
            logger.error(f"Cannot open tab for {pkg_name}/{key}: {e}")
            self.notify(e.display_msg(), "error")
            return None

        index = self._index_of_tab(controller.tab_id)
        if index < 0:
            panel = controller.get_tab_panel_comp()()
            self._panels[controller.tab_id] = panel
            index = self.tabs.addTab(panel, controller.get_tab_name())
            self.tabs.setTabToolTip(index, controller.tab_id)
            self._follow_changes(controller)
        self.tabs.setCurrentIndex(index)
        return controller

    def _tab_id_at(self, index: int) -> Optional[str]:
        widget = self.tabs.widget(index)
        for tab_id, panel in self._panels.items():
            if panel is widget:
                return tab_id
        return None

    def close_tab(self, tab_id: str) -> None:
        widget = self._panels.pop(tab_id, None)
        unsubscribe = self._monitor_subscriptions.pop(tab_id, None)
        if unsubscribe is not None:
            unsubscribe()
        try:
            # unmounts the view before its widget goes away
            self.context.tab_manager.close_tab(tab_id)
        except VisualizeItError as e:
            logger.warning(f"Closing tab: {e}")
        if widget is not None:
            self.tabs.removeTab(self.tabs.indexOf(widget))
            widget.deleteLater()

    def _on_tab_close_requested(self, index: int) -> None:
        tab_id = self._tab_id_at(index)
        if tab_id is not None:
            self.close_tab(tab_id)

    def _on_current_tab_changed(self, index: int) -> None:
        tab_id = self._tab_id_at(index)
        if tab_id is not None and self.context.tab_manager.has_tab(tab_id):
            self.context.tab_manager.activate(tab_id)
        self._sync_mode_actions()

    # ---- display mode ----

    def active_controller(self) -> Optional[TabController]:
        return self.context.tab_manager.get_active()

    def set_active_mode(self, mode: DispMode) -> None:
        controller = self.active_controller()
        if controller is None:
            self.notify("Open a tab first.", "warning")
        else:
            try:
                controller.set_disp_mode(mode)
            except VisualizeItError as e:
                self.notify(e.display_msg(), "warning")
        self._sync_mode_actions()

    def _sync_mode_actions(self) -> None:
        controller = self.active_controller()
        for mode, action in self.mode_actions.items():
            action.setEnabled(controller is not None and (mode != DispMode.EDIT or controller.is_editable()))
            action.setChecked(controller is not None and controller.get_disp_mode() == mode)

        if controller is not None and controller.get_disp_mode() == DispMode.ANIMATE:
            self.animate_timer.start()
        else:
            self.animate_timer.stop()
        self._sync_edit_actions()

    def _on_animate_tick(self) -> None:
        controller = self.active_controller()
        if controller is not None:
            controller.tick(ANIMATE_INTERVAL_MS / 1000.0)

    # ---- lifecycle ----

    def closeEvent(self, event: QCloseEvent) -> None:
        self.animate_timer.stop()
        self.loader.wait_all()
        for tab_id in list(self._panels):
            self.close_tab(tab_id)
        self.context.shutdown()
        super().closeEvent(event)
