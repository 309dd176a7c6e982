"""
Edit Actions (User Flows)
=========================
The Undo / Redo flows behind the Edit menu.

Like the File flows, every reachable failure is logged and turned into a
user notification; nothing raises to the shell.
"""
from __future__ import annotations

import logging
from typing import Optional

from visualizeit.controller.file_actions import Notify
from visualizeit.controller.tab_controller import TabController
from visualizeit.controller.tab_manager import TabManager
from visualizeit.model.change_manager import ChangeMonitor
from visualizeit.model.disp_mode import DispMode
from visualizeit.model.errors import VisualizeItError

logger = logging.getLogger(__name__)


class EditActions:
    def __init__(self, tab_manager: TabManager, notify: Notify) -> None:
        self.tab_manager = tab_manager
        self.notify = notify

    def undo(self, active_tab_id: Optional[str]) -> Optional[str]:
        """Undo the latest edit of the active tab's package; returns the undone label."""
        return self._apply(active_tab_id, "undo")

    def redo(self, active_tab_id: Optional[str]) -> Optional[str]:
        return self._apply(active_tab_id, "redo")

    def _apply(self, active_tab_id: Optional[str], action: str) -> Optional[str]:
        if not active_tab_id:
            self.notify(f"Your active tab identifies what to {action} ... please activate a tab.", "warning")
            return None
        try:
            controller = self.tab_manager.get_tab_controller(active_tab_id)
            label = controller.undo() if action == "undo" else controller.redo()
        except VisualizeItError as e:
            logger.warning(f"Cannot {action} in tab '{active_tab_id}': {e}")
            self.notify(e.display_msg(), "warning")
            return None
        except RuntimeError as e:
            # nothing left to undo/redo
            logger.info(f"Nothing to {action} in tab '{active_tab_id}': {e}")
            self.notify(f"Nothing to {action}.", "info")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error during {action}: {e}")
            self.notify(f"Could not {action}: {e}", "error")
            return None

        self.notify(f"{action.capitalize()}: {label}", "info")
        return label

    def monitor(self, controller: Optional[TabController]) -> Optional[ChangeMonitor]:
        """The change monitor backing ``controller``'s Undo/Redo actions (None: no history)."""
        if controller is None or controller.is_closed() or not controller.is_editable():
            return None
        changes = controller.get_change_manager()
        return changes.monitor() if changes is not None else None

    def can_undo(self, controller: Optional[TabController]) -> bool:
        monitor = self.monitor(controller)
        return monitor is not None and monitor.undo_avail and controller.get_disp_mode() == DispMode.EDIT

    def can_redo(self, controller: Optional[TabController]) -> bool:
        monitor = self.monitor(controller)
        return monitor is not None and monitor.redo_avail and controller.get_disp_mode() == DispMode.EDIT
