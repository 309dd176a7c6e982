import pytest

from visualizeit.controller.edit_actions import EditActions
from visualizeit.controller.tab_controller import TabControllerClass, TabControllerScene
from visualizeit.controller.tab_manager import TabManager
from visualizeit.sandbox.general_comps import Valve1


class Recorder:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, msg: str, level: str) -> None:
        self.messages.append((level, msg))

    @property
    def levels(self) -> list[str]:
        return [level for level, _ in self.messages]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def tabs() -> TabManager:
    return TabManager()


@pytest.fixture
def actions(tabs, recorder) -> EditActions:
    return EditActions(tabs, notify=recorder.notify)


def open_edit_tab(tabs: TabManager, sample_pkg) -> TabControllerScene:
    scene = sample_pkg.get_entry("Scene1")
    return tabs.open_tab(TabControllerScene("scene:Scene1", "Scene1", scene, initial_mode="edit"))


def test_undo_and_redo_the_active_tab(actions, tabs, sample_pkg, recorder) -> None:
    tab = open_edit_tab(tabs, sample_pkg)
    valve = tab.scene.children[0]
    tab.remove_comp(valve)
    assert actions.can_undo(tab) and not actions.can_redo(tab)

    assert actions.undo(tab.tab_id) == "Remove myValve1"
    assert valve in tab.scene
    assert actions.can_redo(tab)

    assert actions.redo(tab.tab_id) == "Remove myValve1"
    assert valve not in tab.scene
    assert recorder.messages == [("info", "Undo: Remove myValve1"), ("info", "Redo: Remove myValve1")]


def test_nothing_to_undo_is_only_reported(actions, tabs, sample_pkg, recorder) -> None:
    tab = open_edit_tab(tabs, sample_pkg)

    assert actions.undo(tab.tab_id) is None
    assert recorder.messages == [("info", "Nothing to undo.")]


def test_undo_outside_edit_mode_warns(actions, tabs, sample_pkg, recorder) -> None:
    tab = open_edit_tab(tabs, sample_pkg)
    tab.remove_comp(tab.scene.children[0])
    tab.set_disp_mode("view")

    assert not actions.can_undo(tab)
    assert actions.undo(tab.tab_id) is None
    assert recorder.levels == ["warning"]
    assert len(tab.scene) == 2


def test_without_active_or_with_stale_tab(actions, recorder) -> None:
    assert actions.undo(None) is None
    assert actions.redo("scene:gone") is None

    assert recorder.levels == ["warning", "warning"]
    assert recorder.messages[1][1] == "The tab is no longer open."


def test_class_tabs_have_no_history(actions, tabs, pkg_manager, recorder) -> None:
    tab = tabs.open_tab(TabControllerClass("class:Valve1", "Valve1", Valve1, pkg_manager))

    assert actions.monitor(tab) is None
    assert not actions.can_undo(tab)
    assert actions.undo(tab.tab_id) is None
    assert recorder.levels == ["warning"]
