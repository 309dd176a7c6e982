import pytest

from visualizeit.controller.smart_view import SmartView
from visualizeit.controller.tab_controller import TabControllerClass, TabControllerCollage, TabControllerScene
from visualizeit.controller.tab_manager import TabManager
from visualizeit.model.disp_mode import DispMode, DispModeMachine
from visualizeit.model.errors import TabNotFoundError, ValidationError
from visualizeit.model.pkg_manager import NOT_FOUND, PkgManager
from visualizeit.model.pkg_persist import PkgPersist
from visualizeit.model.primitives import Surface
from visualizeit.model.smart_comp import NO_PACKAGE
from visualizeit.sandbox import SAMPLE_PKG_NAME, create_general_comps_pkg
from visualizeit.sandbox.general_comps import GENERAL_COMPS_PKG_NAME, Valve1, Valve3
from visualizeit.sandbox.sample_pkg import build_scene1


def scene_tab(sample_pkg, entry_id: str = "Scene1", **kwargs) -> TabControllerScene:
    return TabControllerScene(f"scene:{entry_id}", entry_id, sample_pkg.get_entry(entry_id), **kwargs)


def test_disp_mode_parse() -> None:
    assert DispMode.parse("Edit") is DispMode.EDIT
    assert DispMode.parse(DispMode.ANIMATE) is DispMode.ANIMATE
    with pytest.raises(ValidationError):
        DispMode.parse("fly")


def test_machine_runs_leave_then_enter_hooks() -> None:
    calls = []
    machine = DispModeMachine(
        "view",
        on_enter={mode: (lambda m=mode: calls.append(f"enter {m}")) for mode in DispMode},
        on_leave={DispMode.ANIMATE: lambda: calls.append("leave animate")},
    )

    with pytest.raises(RuntimeError):
        machine.transition("edit")
    machine.start()
    assert machine.transition("animate") is True
    assert machine.transition("animate") is False
    machine.transition("edit")

    assert calls == ["enter view", "enter animate", "leave animate", "enter edit"]
    assert machine.mode is DispMode.EDIT


def test_scene_tab_starts_in_view_mode(sample_pkg) -> None:
    tab = scene_tab(sample_pkg)

    assert tab.get_disp_mode() is DispMode.VIEW
    assert tab.is_editable()
    assert tab.get_tab_id() == "scene:Scene1"
    assert tab.get_package() is sample_pkg
    assert not tab.is_started()
    assert tab.scene.is_editing() is None

    tab.start()
    assert tab.scene.is_editing() is False
    assert tab.scene.draggable() is False


def test_scene_tab_requires_a_scene(sample_pkg) -> None:
    with pytest.raises(ValidationError):
        TabControllerScene("t", "t", Valve1("v"))
    with pytest.raises(ValidationError):
        TabControllerScene("", "t", sample_pkg.get_entry("Scene1"))


def test_edit_and_view_toggle_draggability_at_runtime_only(sample_pkg) -> None:
    tab = scene_tab(sample_pkg)
    tab.get_tab_panel_comp()().mount(Surface(width=300, height=300))

    tab.set_disp_mode("edit")
    assert tab.scene.is_editing() is True
    assert all(c.root_primitive.draggable for c in tab.scene)

    tab.set_disp_mode(DispMode.VIEW)
    assert tab.scene.is_editing() is False
    assert not any(c.root_primitive.draggable for c in tab.scene)

    assert tab.scene.draggable() is False
    assert not sample_pkg.is_modified()


def test_view_mode_keeps_a_persisted_draggable_flag(sample_pkg) -> None:
    scene = sample_pkg.get_entry("Scene1").draggable(True)
    sample_pkg.reset_base_crc()
    tab = scene_tab(sample_pkg)
    tab.get_tab_panel_comp()().mount(Surface(width=300, height=300))

    assert not any(c.root_primitive.draggable for c in scene)
    assert scene.draggable() is True
    assert scene.encode()["draggable"] is True
    assert not sample_pkg.is_modified()

    tab.close()
    assert scene.is_editing() is None
    assert all(c.is_interactive() for c in scene)


def test_animate_leaves_the_persisted_state_alone(sample_pkg) -> None:
    tab = scene_tab(sample_pkg)
    tab.get_tab_panel_comp()().mount(Surface(width=300, height=300))
    before = tab.scene.encode()

    tab.set_disp_mode("animate")
    assert tab.scene.is_suspended()
    assert all(c.is_animating() for c in tab.scene)
    tab.tick(0.1)

    tab.set_disp_mode("view")
    assert not tab.scene.is_suspended()
    assert not any(c.is_animating() for c in tab.scene)
    assert tab.scene.encode() == before
    assert not sample_pkg.is_modified()


def test_animate_suspends_dragging_of_an_edited_scene(sample_pkg) -> None:
    tab = scene_tab(sample_pkg, initial_mode="edit")
    tab.get_tab_panel_comp()().mount(Surface(width=300, height=300))

    tab.set_disp_mode("animate")
    assert not any(c.root_primitive.draggable for c in tab.scene)
    assert tab.scene.is_editing() is True

    tab.set_disp_mode("edit")
    assert all(c.root_primitive.draggable for c in tab.scene)


def test_animation_ticks_and_restores_colors(sample_pkg) -> None:
    tab = scene_tab(sample_pkg)
    tab.get_tab_panel_comp()().mount(Surface(width=300, height=300))
    valve3 = tab.scene.children[2]
    assert isinstance(valve3, Valve3)
    body = valve3.root_primitive.children[0]

    tab.tick(0.1)  # ignored outside animate mode
    assert body.fill == "blue"

    tab.set_disp_mode("animate")
    tab.tick(0.1)
    tab.tick(0.1)
    assert body.fill == "deepskyblue"

    tab.set_disp_mode("view")
    assert body.fill == "blue"


def test_panel_factory_is_lazy_and_cached(sample_pkg) -> None:
    built = []
    tab = scene_tab(sample_pkg, panel_builder=lambda view: built.append(view) or view)

    factory = tab.get_tab_panel_comp()
    assert tab.get_tab_panel_comp() is factory
    assert built == []
    assert len(tab.views) == 1

    view = factory()
    assert isinstance(view, SmartView)
    assert built == [view]
    assert not view.is_mounted()


def test_close_unmounts_views_and_blocks_mode_changes(sample_pkg) -> None:
    tab = scene_tab(sample_pkg)
    surface = Surface(width=300, height=300)
    tab.get_tab_panel_comp()().mount(surface)
    tab.set_disp_mode("animate")

    tab.close()

    assert tab.is_closed()
    assert surface.listener_count() == 0
    assert not tab.scene.is_suspended()
    assert tab.scene.is_editing() is None
    assert not any(c.is_animating() for c in tab.scene)
    with pytest.raises(RuntimeError):
        tab.set_disp_mode("view")


def test_class_tab_is_never_editable(pkg_manager) -> None:
    tab = TabControllerClass("class:Valve1", "Valve1", Valve1, pkg_manager)

    assert not tab.is_editable()
    assert tab.get_disp_mode() is DispMode.VIEW
    assert isinstance(tab.get_target(), Valve1)
    with pytest.raises(ValidationError):
        tab.set_disp_mode("edit")
    with pytest.raises(ValidationError):
        TabControllerClass("class:Valve1", "Valve1", Valve1, pkg_manager, initial_mode="edit")


def test_class_tab_package_is_the_class_library(pkg_manager) -> None:
    tab = TabControllerClass("class:Valve1", "Valve1", Valve1, pkg_manager)

    pkg = tab.get_package()
    assert pkg.pkg_name == GENERAL_COMPS_PKG_NAME
    assert not pkg.can_persist()

    pkg_manager.unregister_pkg(GENERAL_COMPS_PKG_NAME)
    assert tab.get_package() is NOT_FOUND


def test_class_tab_rejects_contained_components(sample_pkg, pkg_manager) -> None:
    contained = sample_pkg.get_entry("Scene1").children[0]
    with pytest.raises(ValidationError):
        TabControllerClass("class:x", "x", contained, pkg_manager)


def test_tab_manager_shares_the_controller_of_an_open_target(sample_pkg) -> None:
    manager = TabManager()
    first = manager.open_tab(scene_tab(sample_pkg))
    duplicate = TabControllerScene("scene:other-id", "Scene1", sample_pkg.get_entry("Scene1"))

    assert manager.open_tab(duplicate) is first
    assert duplicate.is_closed()
    assert len(manager) == 1


def test_tab_manager_close_and_active_tab(sample_pkg) -> None:
    manager = TabManager()
    manager.open_tab(scene_tab(sample_pkg, "Scene1"))
    manager.open_tab(scene_tab(sample_pkg, "Scene2"))
    assert manager.active_tab_id == "scene:Scene2"

    closed = manager.close_tab("scene:Scene2")

    assert closed.is_closed()
    assert manager.active_tab_id == "scene:Scene1"
    assert manager.tab_ids() == ["scene:Scene1"]


def test_tab_manager_unknown_id() -> None:
    manager = TabManager()

    with pytest.raises(TabNotFoundError) as exc_info:
        manager.get_tab_controller("scene:gone")
    assert isinstance(exc_info.value, KeyError)
    assert exc_info.value.display_msg() == "The tab is no longer open."
    assert manager.get_active() is None


def test_context_creates_the_matching_controller(context) -> None:
    scene_controller = context.create_tab_controller(SAMPLE_PKG_NAME, "collage1")
    class_tab = context.create_tab_controller(GENERAL_COMPS_PKG_NAME, "Valve2")

    assert isinstance(scene_controller, TabControllerCollage)
    assert scene_controller.get_tab_name() == "Collage 1"
    assert scene_controller.tab_id == f"scene:{SAMPLE_PKG_NAME}/collage1"
    assert isinstance(class_tab, TabControllerClass)
    assert class_tab.tab_id == f"class:{GENERAL_COMPS_PKG_NAME}/Valve2"

    with pytest.raises(ValidationError):
        context.create_tab_controller("unknown", "Scene1")
    with pytest.raises(ValidationError):
        context.create_tab_controller(SAMPLE_PKG_NAME, "nope")


def test_context_open_tab_reuses_open_tabs(context) -> None:
    first = context.open_tab(SAMPLE_PKG_NAME, "Scene1")
    context.open_tab(SAMPLE_PKG_NAME, "Scene2")

    again = context.open_tab(SAMPLE_PKG_NAME, "Scene1")

    assert again is first
    assert context.tab_manager.get_active() is first
    assert len(context.tab_manager) == 2


def test_scene_without_package_has_no_package() -> None:
    tab = TabControllerScene("t", "t", build_scene1())
    assert tab.get_package() is NO_PACKAGE


def test_opening_a_view_tab_leaves_a_loaded_package_unmodified(persist, sample_pkg, tmp_path) -> None:
    path = str(tmp_path / "sample.vit.h5")
    sample_pkg.get_entry("Scene1").draggable(True)
    persist.save_pkg(sample_pkg, path)
    manager = PkgManager()
    manager.register_pkg(create_general_comps_pkg())
    reader = PkgPersist(manager)
    loaded = reader.load_pkg(path)
    scene = loaded.get_entry("Scene1")

    tabs = TabManager()
    tab = tabs.open_tab(TabControllerScene("scene:Scene1", "Scene1", scene))
    tab.get_tab_panel_comp()().mount(Surface(width=300, height=300))
    assert not loaded.is_modified()
    assert not any(c.root_primitive.draggable for c in scene)

    tab.set_disp_mode("edit")
    tab.set_disp_mode("view")
    assert not loaded.is_modified()

    reader.save_pkg(loaded)
    assert reader.load_pkg(path).get_entry("Scene1").draggable() is True


def test_sharing_a_target_keeps_the_open_tab_mode(sample_pkg) -> None:
    manager = TabManager()
    scene = sample_pkg.get_entry("Scene1")
    first = manager.open_tab(TabControllerScene("a", "a", scene, initial_mode="edit"))
    assert all(c.is_interactive() for c in scene)

    assert manager.open_tab(TabControllerScene("b", "b", scene)) is first

    assert first.get_disp_mode() is DispMode.EDIT
    assert scene.is_editing() is True
    assert all(c.is_interactive() for c in scene)


def test_sharing_a_started_duplicate_restores_the_open_tab_mode(sample_pkg) -> None:
    manager = TabManager()
    scene = sample_pkg.get_entry("Scene1")
    first = manager.open_tab(TabControllerScene("a", "a", scene, initial_mode="edit"))
    duplicate = TabControllerScene("b", "b", scene)
    duplicate.start()
    assert not any(c.is_interactive() for c in scene)

    assert manager.open_tab(duplicate) is first

    assert duplicate.is_closed()
    assert scene.is_editing() is True
    assert all(c.is_interactive() for c in scene)


def edit_tab(sample_pkg, entry_id: str = "Scene1") -> TabControllerScene:
    tab = TabManager().open_tab(scene_tab(sample_pkg, entry_id, initial_mode="edit"))
    tab.get_tab_panel_comp()().mount(Surface(width=300, height=300))
    return tab


def test_composition_edits_are_undone_and_redone(sample_pkg) -> None:
    tab = edit_tab(sample_pkg)
    scene = tab.scene
    v1, v2, v3 = scene.children
    changes = sample_pkg.change_manager

    tab.remove_comp(v2)
    tab.reorder_comp(v3, 0)
    tab.add_comp(Valve1("extra", x=5, y=5), index=1)
    assert [c.id for c in scene.children] == ["myValve3", "extra", "myValve1"]
    assert changes.monitor().undo_avail and not changes.monitor().in_sync

    assert tab.undo() == "Add extra"
    tab.undo()
    tab.undo()
    assert scene.children == (v1, v2, v3)
    assert v2.is_manifested() and v2.is_interactive()
    assert not sample_pkg.is_modified()
    assert changes.monitor().in_sync and changes.monitor().redo_avail

    tab.redo()
    assert scene.children == (v1, v3)


def test_a_new_edit_prunes_the_redos(sample_pkg) -> None:
    tab = edit_tab(sample_pkg)
    v1, v2, _ = tab.scene.children

    tab.remove_comp(v1)
    tab.undo()
    assert tab.get_change_manager().is_redo_avail()

    tab.remove_comp(v2)

    assert not tab.get_change_manager().is_redo_avail()
    assert v1 in tab.scene


def test_moves_between_scenes_of_a_collage_are_undone(sample_pkg) -> None:
    tab = edit_tab(sample_pkg, "collage1")
    first, second = tab.scene.children
    # only the first scene holds a "myValve3"
    valve = first.children[2]

    tab.move_comp(valve, second, index=0)
    assert valve.parent is second and second.children[0] is valve

    tab.undo()

    assert valve.parent is first and first.index_of(valve) == 2
    assert valve not in second
    assert not sample_pkg.is_modified()


def test_committed_drags_are_recorded(sample_pkg) -> None:
    tab = edit_tab(sample_pkg)
    surface = tab.views[0].surface
    v2 = tab.scene.children[1]

    surface.dispatch_pointer("down", 160, 50)
    surface.dispatch_pointer("move", 200, 100)
    surface.dispatch_pointer("up", 200, 100)
    assert (v2.x, v2.y) == (190, 90)

    assert tab.undo() == "Move myValve2"
    assert (v2.x, v2.y) == (150, 40)
    assert (v2.root_primitive.x, v2.root_primitive.y) == (150, 40)

    tab.redo()
    assert (v2.x, v2.y) == (190, 90)


def test_edits_require_edit_mode(sample_pkg, pkg_manager) -> None:
    tab = TabManager().open_tab(scene_tab(sample_pkg))

    with pytest.raises(ValidationError):
        tab.remove_comp(tab.scene.children[0])
    with pytest.raises(ValidationError):
        tab.undo()
    with pytest.raises(ValidationError):
        TabControllerClass("class:Valve1", "Valve1", Valve1, pkg_manager).undo()
    assert len(tab.scene) == 3


def test_edits_stay_inside_the_tab(sample_pkg) -> None:
    tab = edit_tab(sample_pkg)
    other = sample_pkg.get_entry("Scene2")

    with pytest.raises(ValidationError):
        tab.remove_comp(other.children[0])
    with pytest.raises(ValidationError):
        tab.move_comp(tab.scene.children[0], other)
    with pytest.raises(ValidationError):
        tab.add_comp(other.children[0])
    assert not tab.get_change_manager().is_undo_avail()


def test_scene_outside_a_package_keeps_its_own_history() -> None:
    tab = TabManager().open_tab(TabControllerScene("t", "t", build_scene1(), initial_mode="edit"))
    changes = tab.get_change_manager()

    tab.remove_comp(tab.scene.children[0])

    assert changes is tab.get_change_manager()
    assert changes.pkg is None and changes.is_undo_avail()
    tab.undo()
    assert len(tab.scene) == 3


def test_collage_tab_requires_a_collage(sample_pkg) -> None:
    with pytest.raises(ValidationError):
        TabControllerCollage("t", "t", sample_pkg.get_entry("Scene1"))
    tab = TabControllerCollage("t", "t", sample_pkg.get_entry("collage1"))
    assert tab.collage is tab.scene
