from __future__ import annotations

import json
import zlib
from typing import Any, Optional

from visualizeit.model.errors import ValidationError


class Identifiable:
    """
    Base capability shared by components, scenes and packages.

    The id is assigned at construction and cannot change afterwards.
    ``str(obj)`` is a stable rendering of the encoded state, and ``crc()``
    hashes it for change detection.
    """

    def __init__(self, id: str, name: Optional[str] = None) -> None:
        if not id or not isinstance(id, str):
            raise ValidationError(f"{self.diag_class_name()}() constructor parameter violation: "
                                  f"id must be a non-empty string, not {id!r}")
        if name is not None and not isinstance(name, str):
            raise ValidationError(f"{self.diag_class_name()}(id:'{id}') constructor parameter violation: "
                                  f"name must be a string")
        self._id = id
        self.name = name or id

    @property
    def id(self) -> str:
        return self._id

    def get_id(self) -> str:
        return self._id

    def get_name(self) -> str:
        return self.name

    @classmethod
    def diag_class_name(cls) -> str:
        return cls.__name__

    def encode(self) -> dict[str, Any]:
        """Return the persistable state of self (overridden by derivations)."""
        return {"id": self._id, "name": self.name}

    def __str__(self) -> str:
        return json.dumps(self.encode(), sort_keys=True, default=str)

    def __repr__(self) -> str:
        return f"{self.diag_class_name()}(id={self._id!r}, name={self.name!r})"

    def crc(self) -> int:
        return zlib.crc32(str(self).encode("utf-8"))


class Sentinel:
    """A falsy marker returned in place of a value (``NO_PACKAGE``, ``NOT_FOUND``)."""

    def __init__(self, name: str) -> None:
        self._name = name

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return self._name
