"""
Sandbox Scene Package
=====================
A resource based package built from the ``generalComps`` classes: two
scenes and a collage arranging copies of them.
"""
from __future__ import annotations

from visualizeit.model.package import SmartPkg
from visualizeit.model.scene import Collage, Scene
from visualizeit.sandbox.general_comps import Pipe, Valve1, Valve2, Valve3

SAMPLE_PKG_NAME = "sandbox.scenes"


def build_scene1(x: float = 0, y: float = 0) -> Scene:
    return Scene("Scene1", comps=[
        Valve1("myValve1", x=20, y=20),
        Valve2("myValve2", x=150, y=40),
        Valve3("myValve3", x=50, y=120),
    ], x=x, y=y)


def build_scene2(x: float = 0, y: float = 0) -> Scene:
    return Scene("Scene2", comps=[
        Valve1("myValve1", x=20, y=20),
        Pipe("myPipe", x=130, y=45, points=[[0, 0], [40, 0], [40, 20]]),
        Valve2("myValve2", x=150, y=70),
    ], x=x, y=y)


def build_collage1() -> Collage:
    # collage children are independent copies, never the package entries themselves
    return Collage("collage1", "Collage 1", comps=[
        build_scene1(x=0, y=0),
        build_scene2(x=300, y=250),
    ], width=650, height=600)


def create_sample_pkg() -> SmartPkg:
    """Requires the ``generalComps`` library to exist (its classes carry the ClassRefs)."""
    return SmartPkg(
        SAMPLE_PKG_NAME,
        entries=[build_scene1(), build_scene2(), build_collage1()],
        desc="Sandbox Scenes",
    )
