"""
Sandbox Component Classes
=========================
A small class library (``generalComps``) used to play with the editor.

Classes decorated with ``register_comp`` are collected into the library
created by ``create_general_comps_pkg()``.
"""
from __future__ import annotations

import itertools
import logging
from typing import Optional

from visualizeit.model.package import SmartPkg
from visualizeit.model.primitives import Circle, Group, Path, Rect
from visualizeit.model.smart_comp import SmartComp

logger = logging.getLogger(__name__)

GENERAL_COMPS_PKG_NAME = "generalComps"

_REGISTRY: dict[str, type[SmartComp]] = {}


def register_comp(cls: type[SmartComp]) -> type[SmartComp]:
    """Class decorator to register a component class by its name."""
    key = getattr(cls, "KEY", None) or cls.__name__
    if key in _REGISTRY and _REGISTRY[key] is not cls:
        raise ValueError(f"Component class '{key}' is already registered")
    _REGISTRY[key] = cls
    return cls


def list_keys() -> list[str]:
    return list(_REGISTRY.keys())


def create_general_comps_pkg() -> SmartPkg:
    return SmartPkg(GENERAL_COMPS_PKG_NAME, classes=dict(_REGISTRY), desc="SandBox Comps")


@register_comp
class Valve1(SmartComp):
    """Several shapes in one group, plus a nested sub-group."""
    DEFAULT_PARAMS = {"x": 0, "y": 0, "fill": "green"}

    def __init__(self, id: str, name: Optional[str] = None, **visual_params) -> None:
        super().__init__(id, name, **visual_params)
        self._indicator: Optional[Circle] = None
        self._elapsed = 0.0

    def manifest(self, container: Group) -> None:
        group = self.mount_group(container)
        group.add(Rect(x=10, width=100, height=50, fill=self.visual_params["fill"],
                       stroke="black", stroke_width=5))
        # connectors, considering x/stroke_width of the body
        group.add(Circle(x=5 + 2.5, y=25, radius=5, fill="black", stroke="black", stroke_width=5))
        group.add(Circle(x=5 + 100 + 5, y=25, radius=5, fill="black", stroke="black", stroke_width=5))

        # sub-group positioned relative to the component group
        sub_group = Group(x=0, y=0)
        group.add(sub_group)
        self._indicator = Circle(x=10 + 100 / 2, y=50 / 2, radius=10, fill="red", stroke="red")
        sub_group.add(self._indicator)

    def unmanifest(self) -> None:
        super().unmanifest()
        self._indicator = None

    def animate(self, running: bool) -> None:
        super().animate(running)
        self._elapsed = 0.0
        if not running and self._indicator is not None:
            self._indicator.restyle(fill="red")

    def tick(self, elapsed: float) -> None:
        # blinks once per second
        self._elapsed += elapsed
        if self._indicator is not None:
            self._indicator.restyle(fill="red" if int(self._elapsed) % 2 == 0 else "yellow")


@register_comp
class Valve2(SmartComp):
    DEFAULT_PARAMS = {"x": 0, "y": 0, "fill": "red"}

    def manifest(self, container: Group) -> None:
        group = self.mount_group(container)
        group.add(Rect(width=100, height=50, fill=self.visual_params["fill"], corner_radius=10))


@register_comp
class Valve3(SmartComp):
    """A box with distinct corner radii; cycles its color while animating."""
    DEFAULT_PARAMS = {"x": 0, "y": 0, "fill": "blue"}
    ANIMATION_COLORS = ("blue", "deepskyblue", "cyan", "deepskyblue")

    def __init__(self, id: str, name: Optional[str] = None, **visual_params) -> None:
        super().__init__(id, name, **visual_params)
        self._body: Optional[Rect] = None
        self._colors = itertools.cycle(self.ANIMATION_COLORS)

    def manifest(self, container: Group) -> None:
        group = self.mount_group(container)
        self._body = Rect(width=100, height=100, fill=self.visual_params["fill"],
                          corner_radius=[0, 10, 20, 30])
        group.add(self._body)

    def unmanifest(self) -> None:
        super().unmanifest()
        self._body = None

    def animate(self, running: bool) -> None:
        super().animate(running)
        self._colors = itertools.cycle(self.ANIMATION_COLORS)
        if not running and self._body is not None:
            self._body.restyle(fill=self.visual_params["fill"])

    def tick(self, elapsed: float) -> None:
        if self._body is not None:
            self._body.restyle(fill=next(self._colors))


@register_comp
class Pipe(SmartComp):
    """A polyline connecting components (``points`` relative to x/y)."""
    DEFAULT_PARAMS = {"x": 0, "y": 0, "points": [[0, 0], [100, 0]], "stroke": "gray", "stroke_width": 6}

    def manifest(self, container: Group) -> None:
        group = self.mount_group(container)
        points = [(float(px), float(py)) for px, py in self.visual_params["points"]]
        group.add(Path(points=points, stroke=self.visual_params["stroke"],
                       stroke_width=self.visual_params["stroke_width"]))
