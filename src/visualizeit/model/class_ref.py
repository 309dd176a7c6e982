from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from visualizeit.model.errors import ValidationError


@dataclass(frozen=True)
class ClassRef:
    """
    Tagged reference ``(pkg_name, class_name)`` to a component class.

    Persisted in place of the class itself and resolved again through the
    PkgManager when a package is loaded.
    """
    pkg_name: str
    class_name: str

    def __post_init__(self) -> None:
        if not self.pkg_name or not self.class_name:
            raise ValidationError(f"ClassRef requires pkg_name and class_name, got "
                                  f"({self.pkg_name!r}, {self.class_name!r})")

    def get_class_pkg_name(self) -> str:
        return self.pkg_name

    def encode(self) -> dict[str, str]:
        return {"pkg": self.pkg_name, "class": self.class_name}

    @staticmethod
    def decode(data: Any) -> ClassRef:
        if not isinstance(data, dict) or "pkg" not in data or "class" not in data:
            raise ValidationError(f"Invalid classRef encoding: {data!r}")
        return ClassRef(pkg_name=str(data["pkg"]), class_name=str(data["class"]))

    def __str__(self) -> str:
        return f"{self.pkg_name}/{self.class_name}"
