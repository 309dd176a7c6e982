"""
Display Modes
=============
The ``edit`` / ``view`` / ``animate`` modes of an open tab and the explicit
state machine driving the transitions between them.

A transition leaves the current mode (its leave hook runs first) and enters
the new one. Mode history lives only in memory; nothing about it is saved.
"""
from __future__ import annotations

from enum import StrEnum
import logging
from typing import Callable, Mapping, Optional

from visualizeit.model.errors import ValidationError

logger = logging.getLogger(__name__)

Hook = Callable[[], None]


class DispMode(StrEnum):
    EDIT = "edit"
    VIEW = "view"
    ANIMATE = "animate"

    @classmethod
    def parse(cls, value: DispMode | str) -> DispMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown display mode '{value}', expected one of "
                                  f"{', '.join(m.value for m in cls)}") from None


class DispModeMachine:
    """
    Args:
        initial: The mode entered by ``start()``.
        on_enter: Hooks run when a mode is entered.
        on_leave: Hooks run when a mode is left.
    """

    def __init__(
        self,
        initial: DispMode | str,
        on_enter: Optional[Mapping[DispMode, Hook]] = None,
        on_leave: Optional[Mapping[DispMode, Hook]] = None,
    ) -> None:
        self.initial = DispMode.parse(initial)
        self._on_enter = dict(on_enter or {})
        self._on_leave = dict(on_leave or {})
        self._mode: Optional[DispMode] = None

    @property
    def mode(self) -> Optional[DispMode]:
        return self._mode

    def start(self) -> DispMode:
        """Enter the initial mode (no leave hook runs)."""
        if self._mode is not None:
            raise RuntimeError(f"State machine already started in '{self._mode}'")
        self._enter(self.initial)
        return self.initial

    def transition(self, mode: DispMode | str) -> bool:
        """
        Switch to ``mode``.

        Returns:
            False when ``mode`` is already current (no hooks run), else True.
        """
        new_mode = DispMode.parse(mode)
        if self._mode is None:
            raise RuntimeError("State machine not started")
        if new_mode == self._mode:
            return False

        old_mode = self._mode
        leave = self._on_leave.get(old_mode)
        if leave is not None:
            leave()
        self._enter(new_mode)
        logger.debug(f"Display mode {old_mode} -> {new_mode}")
        return True

    def reenter(self) -> None:
        """Run the enter hook of the current mode again (e.g. after shared state was reset)."""
        if self._mode is None:
            raise RuntimeError("State machine not started")
        self._enter(self._mode)

    def _enter(self, mode: DispMode) -> None:
        enter = self._on_enter.get(mode)
        if enter is not None:
            enter()
        self._mode = mode
