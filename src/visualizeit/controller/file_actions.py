"""
File Actions (User Flows)
=========================
The Open / Save / Save As flows behind the File menu.

Why is this file needed?
------------------------
1. Error Boundary: The model layer fails fast with exceptions. Here every
   reachable failure is logged and turned into a user notification, so the
   shell never sees an exception from a menu click.
2. Cancel Semantics: A locator provider returning ``None`` (the user closed
   the file dialog) is a silent no-op, not an error.
3. Save Resolution: The active tab decides which package is saved. Class
   library packages are refused before anything is written.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from visualizeit.controller.tab_manager import TabManager
from visualizeit.model.errors import PersistenceUnsupportedError, VisualizeItError
from visualizeit.model.package import SmartPkg
from visualizeit.model.pkg_persist import LocatorProvider, PkgPersist

logger = logging.getLogger(__name__)

# notify(message, level) with level one of "info", "warning", "error"
Notify = Callable[[str, str], None]
AddLeftNav = Callable[[SmartPkg], None]


class FileActions:
    def __init__(
        self,
        pkg_persist: PkgPersist,
        tab_manager: TabManager,
        notify: Notify,
        add_left_nav: AddLeftNav,
    ) -> None:
        self.pkg_persist = pkg_persist
        self.tab_manager = tab_manager
        self.notify = notify
        self.add_left_nav = add_left_nav

    # ---- Open ----

    def open_pkg(self, locator_provider: LocatorProvider) -> Optional[SmartPkg]:
        try:
            pkg = self.pkg_persist.open_pkg(locator_provider)
        except VisualizeItError as e:
            logger.error(f"Failed to open package: {e}")
            self.notify(e.display_msg(), "error")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error while opening package: {e}")
            self.notify(f"Could not open package: {e}", "error")
            return None

        if pkg is None:
            return None  # canceled

        self.publish(pkg)
        return pkg

    def publish(self, pkg: SmartPkg) -> None:
        """Expose a loaded (and registered) package in the navigation tree."""
        try:
            self.add_left_nav(pkg)
        except Exception as e:
            logger.exception(f"Failed to add '{pkg.pkg_name}' to the navigation: {e}")
            self.notify(f"'{pkg.name}' is loaded but could not be listed: {e}", "error")
            return

        if pkg.diagnostics:
            self.notify(f"'{pkg.name}' has been loaded with {len(pkg.diagnostics)} unresolved "
                        f"reference(s), see the log for details", "warning")
        else:
            self.notify(f"'{pkg.name}' has been loaded in the navigation menu", "info")

    # ---- Save / Save As ----

    def save(self, active_tab_id: Optional[str], locator_provider: Optional[LocatorProvider] = None) -> Optional[str]:
        """
        Save the package of the active tab to its originating resource.

        A package that was never saved asks ``locator_provider`` (Save As).

        Returns:
            The written locator, or None when nothing was written.
        """
        return self._save(active_tab_id, locator_provider, force_locator=False)

    def save_as(self, active_tab_id: Optional[str], locator_provider: LocatorProvider) -> Optional[str]:
        return self._save(active_tab_id, locator_provider, force_locator=True)

    def _save(
        self,
        active_tab_id: Optional[str],
        locator_provider: Optional[LocatorProvider],
        force_locator: bool,
    ) -> Optional[str]:
        if not active_tab_id:
            self.notify("Your active tab identifies which package to save ... please activate a tab.", "warning")
            return None

        try:
            pkg = self.resolve_persistable_pkg(active_tab_id)

            locator: Optional[str] = None
            if force_locator or not pkg.resource_locator:
                if locator_provider is None:
                    self.notify(f"'{pkg.name}' has not been saved yet, use Save As.", "warning")
                    return None
                locator = locator_provider()
                if not locator:
                    logger.info("Save canceled by user.")
                    return None

            path = self.pkg_persist.save_pkg(pkg, locator)
        except PersistenceUnsupportedError as e:
            logger.warning(f"Save refused: {e}")
            self.notify(e.display_msg(), "warning")
            return None
        except VisualizeItError as e:
            logger.error(f"Failed to save package: {e}")
            self.notify(e.display_msg(), "error")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error while saving package: {e}")
            self.notify(f"Could not save package: {e}", "error")
            return None

        self.notify(f"'{pkg.name}' saved to {path}", "info")
        return path

    def resolve_persistable_pkg(self, tab_id: str) -> SmartPkg:
        """
        Locate the package holding the target of tab ``tab_id``.

        Raises:
            TabNotFoundError: ``tab_id`` is stale.
            PersistenceUnsupportedError: No persistable package backs the tab.
        """
        controller = self.tab_manager.get_tab_controller(tab_id)
        pkg = controller.get_package()
        if not isinstance(pkg, SmartPkg):
            raise PersistenceUnsupportedError(
                f"Tab '{tab_id}' target is not contained in a registered package ({pkg!r})",
                user_msg=f"'{controller.get_tab_name()}' does not belong to a package that can be saved.",
            )
        if not pkg.can_persist():
            raise PersistenceUnsupportedError(
                f"Package '{pkg.pkg_name}' of tab '{tab_id}' holds classes (code)",
                user_msg=f"'{controller.get_tab_name()}' is a component class of '{pkg.name}', "
                         f"class libraries cannot be saved.",
            )
        return pkg
