"""
Error Taxonomy
==============
Exceptions raised by the model and controller layers.

Lower layers (SmartComp, Scene, SmartPkg) fail fast with these exceptions.
User-facing flows (see ``controller.file_actions``) catch them and turn them
into notifications. A user cancelling a file dialog is NOT an error: the
locator providers simply return ``None``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class VisualizeItError(Exception):
    """Base class for all visualizeit errors.

    Args:
        message: Diagnostic message (logs).
        user_msg: Optional message suitable for end users.
    """

    def __init__(self, message: str, user_msg: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_msg = user_msg

    def display_msg(self) -> str:
        return self.user_msg or str(self)


class ValidationError(VisualizeItError, ValueError):
    """Constructor or parameter contract violation."""


class PersistenceUnsupportedError(VisualizeItError):
    """Attempt to save a package that holds code rather than instance data."""


class PackageFormatError(VisualizeItError):
    """The resource could not be interpreted as a visualizeit package."""


class TabNotFoundError(VisualizeItError, KeyError):
    """A stale or unknown tab id was looked up."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message
        return str(self.args[0]) if self.args else ""


@dataclass(frozen=True)
class UnresolvedReference:
    """Per-entry diagnostic recorded when a class reference cannot be resolved."""
    entry_id: str
    comp_id: str
    pkg_name: str
    class_name: str
    reason: str

    def __str__(self) -> str:
        return (f"{self.entry_id}/{self.comp_id}: class '{self.pkg_name}/{self.class_name}' "
                f"is unresolved ({self.reason})")
