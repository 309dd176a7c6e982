"""
Change Manager (Undo / Redo)
============================
Tracks the edits made to one package so they can be undone and redone.

Why is this file needed?
------------------------
1. History: Every edit is registered as a pair of functions (undo, redo).
   Registering a new edit after some undos prunes the redos that are no
   longer reachable.
2. Monitoring: ``monitor()`` summarizes what the shell needs to enable its
   actions (undo/redo availability, whether the package still matches its
   saved version). Subscribers are notified only when that summary changes.

Classes:
    UndoRedoMgr: The undo/redo stack.
    ChangeMonitor: Snapshot of the monitored state.
    ChangeManager: Applies edits to a package and keeps its monitor in sync.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from visualizeit.model.package import SmartPkg

logger = logging.getLogger(__name__)

ChangeFn = Callable[[], None]
MonitorListener = Callable[["ChangeMonitor"], None]


@dataclass(frozen=True)
class _Op:
    label: str
    undo_fn: ChangeFn
    redo_fn: ChangeFn


class UndoRedoMgr:
    def __init__(self) -> None:
        self._stack: list[_Op] = []
        # index of the most recently applied op, -1 when none
        self._cur = -1

    def register_op(self, undo_fn: ChangeFn, redo_fn: ChangeFn, label: str = "") -> None:
        # redos are unreachable once a new op is registered
        del self._stack[self._cur + 1:]
        self._stack.append(_Op(label, undo_fn, redo_fn))
        self._cur = len(self._stack) - 1

    def is_undo_avail(self) -> bool:
        return self._cur >= 0

    def is_redo_avail(self) -> bool:
        return self._cur < len(self._stack) - 1

    def undo_label(self) -> Optional[str]:
        return self._stack[self._cur].label if self.is_undo_avail() else None

    def redo_label(self) -> Optional[str]:
        return self._stack[self._cur + 1].label if self.is_redo_avail() else None

    def apply_undo(self) -> str:
        if not self.is_undo_avail():
            raise RuntimeError("No undo operation available")
        op = self._stack[self._cur]
        op.undo_fn()
        self._cur -= 1
        return op.label

    def apply_redo(self) -> str:
        if not self.is_redo_avail():
            raise RuntimeError("No redo operation available")
        op = self._stack[self._cur + 1]
        op.redo_fn()
        self._cur += 1
        return op.label

    def clear(self) -> None:
        self._stack.clear()
        self._cur = -1

    def __len__(self) -> int:
        return len(self._stack)


@dataclass(frozen=True)
class ChangeMonitor:
    in_sync: bool
    undo_avail: bool
    redo_avail: bool


class ChangeManager:
    """
    Args:
        pkg: The package whose edits are tracked. ``None`` tracks edits of a
            Scene that belongs to no package (it is never in sync).
    """

    def __init__(self, pkg: Optional[SmartPkg] = None) -> None:
        self.pkg = pkg
        self.undo_redo = UndoRedoMgr()
        self._listeners: list[MonitorListener] = []
        self._monitor = self._current_monitor()

    def _current_monitor(self) -> ChangeMonitor:
        in_sync = not self.pkg.is_modified() if self.pkg is not None else False
        return ChangeMonitor(in_sync, self.undo_redo.is_undo_avail(), self.undo_redo.is_redo_avail())

    def monitor(self) -> ChangeMonitor:
        return self._monitor

    def subscribe(self, listener: MonitorListener) -> Callable[[], None]:
        """Call ``listener`` with every new monitor state; returns the unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def sync_monitored_change(self) -> None:
        """Re-evaluate the monitor after a change (edit, undo/redo, save)."""
        monitor = self._current_monitor()
        if monitor == self._monitor:
            return
        self._monitor = monitor
        for listener in list(self._listeners):
            listener(monitor)

    def apply_change(self, change_fn: ChangeFn, undo_fn: ChangeFn, label: str = "") -> None:
        """Apply ``change_fn`` and register it (``change_fn`` doubles as the redo)."""
        if not callable(change_fn) or not callable(undo_fn):
            raise TypeError("change_fn and undo_fn must be callables")
        change_fn()
        self.undo_redo.register_op(undo_fn, change_fn, label)
        logger.debug(f"Change applied: {label or change_fn!r}")
        self.sync_monitored_change()

    def record_change(self, undo_fn: ChangeFn, redo_fn: ChangeFn, label: str = "") -> None:
        """Register a change that was already applied (e.g. a committed drag)."""
        self.undo_redo.register_op(undo_fn, redo_fn, label)
        logger.debug(f"Change recorded: {label or redo_fn!r}")
        self.sync_monitored_change()

    def apply_undo(self) -> str:
        label = self.undo_redo.apply_undo()
        logger.info(f"Undo: {label}")
        self.sync_monitored_change()
        return label

    def apply_redo(self) -> str:
        label = self.undo_redo.apply_redo()
        logger.info(f"Redo: {label}")
        self.sync_monitored_change()
        return label

    def is_undo_avail(self) -> bool:
        return self.undo_redo.is_undo_avail()

    def is_redo_avail(self) -> bool:
        return self.undo_redo.is_redo_avail()
