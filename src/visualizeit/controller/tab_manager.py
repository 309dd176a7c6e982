from __future__ import annotations

import logging
from typing import Optional

from visualizeit.controller.tab_controller import TabController
from visualizeit.model.errors import TabNotFoundError, ValidationError

logger = logging.getLogger(__name__)


class TabManager:
    """
    Index of the open tabs (``tab_id -> TabController``).

    A live Scene is never held by two controllers: opening a target that is
    already open returns (and activates) the existing controller, and the
    rejected controller is closed before its display mode was ever entered.
    """

    def __init__(self) -> None:
        self._tabs: dict[str, TabController] = {}
        self.active_tab_id: Optional[str] = None

    def find_open(self, controller: TabController) -> Optional[TabController]:
        existing = self._tabs.get(controller.tab_id)
        if existing is not None:
            return existing
        for tab in self._tabs.values():
            if tab.same_target(controller):
                return tab
        return None

    def open_tab(self, controller: TabController) -> TabController:
        """Register ``controller`` (or the controller already showing its target) and activate it."""
        existing = self.find_open(controller)
        if existing is not None:
            if existing is not controller:
                logger.info(f"Tab '{existing.tab_id}' already shows this target, sharing it")
                started = controller.is_started()
                controller.close()
                if started:
                    # the discarded controller already touched the shared target
                    existing.reapply_disp_mode()
            self.active_tab_id = existing.tab_id
            return existing

        if controller.is_closed():
            raise ValidationError(f"Cannot open closed tab '{controller.tab_id}'")
        self._tabs[controller.tab_id] = controller
        # mode hooks run only once the controller owns its target
        controller.start()
        self.active_tab_id = controller.tab_id
        logger.info(f"Opened tab '{controller.tab_id}'")
        return controller

    def get_tab_controller(self, tab_id: str) -> TabController:
        try:
            return self._tabs[tab_id]
        except KeyError:
            raise TabNotFoundError(f"No open tab with id '{tab_id}'",
                                   user_msg="The tab is no longer open.") from None

    def has_tab(self, tab_id: str) -> bool:
        return tab_id in self._tabs

    def activate(self, tab_id: str) -> TabController:
        controller = self.get_tab_controller(tab_id)
        self.active_tab_id = tab_id
        return controller

    def get_active(self) -> Optional[TabController]:
        if self.active_tab_id is None:
            return None
        return self._tabs.get(self.active_tab_id)

    def close_tab(self, tab_id: str) -> TabController:
        controller = self.get_tab_controller(tab_id)
        controller.close()
        del self._tabs[tab_id]
        if self.active_tab_id == tab_id:
            self.active_tab_id = next(reversed(self._tabs), None)
        return controller

    def close_all(self) -> None:
        for tab_id in list(self._tabs):
            self.close_tab(tab_id)

    def tab_ids(self) -> list[str]:
        return list(self._tabs)

    def controllers(self) -> list[TabController]:
        return list(self._tabs.values())

    def __len__(self) -> int:
        return len(self._tabs)
