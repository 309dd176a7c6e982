import pytest

from visualizeit.app.ui.canvas import SceneCanvas
from visualizeit.app.ui.main_window import MainWindow
from visualizeit.model.disp_mode import DispMode
from visualizeit.sandbox import GENERAL_COMPS_PKG_NAME, SAMPLE_PKG_NAME


@pytest.fixture
def window(qapp, context):
    win = MainWindow(context)
    yield win
    win.animate_timer.stop()
    win.deleteLater()


def test_navigation_lists_the_registered_packages(window) -> None:
    sample = window.left_nav.find_pkg_item(SAMPLE_PKG_NAME)
    library = window.left_nav.find_pkg_item(GENERAL_COMPS_PKG_NAME)

    assert sample is not None and sample.childCount() == 3
    assert library is not None and library.childCount() == 4
    assert not any(action.isEnabled() for action in window.mode_actions.values())


def test_open_tab_adds_a_canvas_once(window) -> None:
    first = window.open_tab(SAMPLE_PKG_NAME, "Scene1")
    again = window.open_tab(SAMPLE_PKG_NAME, "Scene1")

    assert again is first
    assert window.tabs.count() == 1
    assert isinstance(window.tabs.currentWidget(), SceneCanvas)
    assert window.mode_actions[DispMode.VIEW].isChecked()


def test_unknown_entry_is_notified(window) -> None:
    assert window.open_tab(SAMPLE_PKG_NAME, "nope") is None
    assert window.tabs.count() == 0


def test_mode_toolbar_drives_the_active_tab(window) -> None:
    controller = window.open_tab(SAMPLE_PKG_NAME, "Scene2")

    window.set_active_mode(DispMode.EDIT)
    assert controller.get_disp_mode() is DispMode.EDIT
    assert controller.scene.is_editing() is True
    assert controller.scene.draggable() is False

    window.set_active_mode(DispMode.ANIMATE)
    assert window.animate_timer.isActive()

    window.set_active_mode(DispMode.VIEW)
    assert not window.animate_timer.isActive()


def test_class_tab_disables_edit(window) -> None:
    controller = window.open_tab(GENERAL_COMPS_PKG_NAME, "Valve1")

    assert not controller.is_editable()
    assert not window.mode_actions[DispMode.EDIT].isEnabled()
    window.set_active_mode(DispMode.EDIT)
    assert controller.get_disp_mode() is DispMode.VIEW


def test_close_tab_closes_the_controller(window) -> None:
    controller = window.open_tab(SAMPLE_PKG_NAME, "collage1")

    window.close_tab(controller.tab_id)

    assert controller.is_closed()
    assert window.tabs.count() == 0
    assert window.context.tab_manager.get_active() is None


def test_edit_menu_undoes_the_active_tab_edits(window) -> None:
    controller = window.open_tab(SAMPLE_PKG_NAME, "Scene1")
    assert not window.act_undo.isEnabled()

    window.set_active_mode(DispMode.EDIT)
    controller.remove_comp(controller.scene.children[0])

    index = window.tabs.currentIndex()
    assert window.act_undo.isEnabled()
    assert not window.act_redo.isEnabled()
    assert window.tabs.tabText(index) == "Scene1 *"

    window.on_undo()

    assert len(controller.scene) == 3
    assert not window.act_undo.isEnabled()
    assert window.act_redo.isEnabled()
    assert window.tabs.tabText(index) == "Scene1"

    window.set_active_mode(DispMode.VIEW)
    assert not window.act_redo.isEnabled()
