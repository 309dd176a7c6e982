import h5py
import pytest

from visualizeit.model.errors import PackageFormatError, PersistenceUnsupportedError, ValidationError
from visualizeit.model.package import SmartPkg
from visualizeit.model.pkg_manager import PkgManager
from visualizeit.model.pkg_persist import PkgPersist, UnresolvedComp, UnresolvedScene
from visualizeit.model.scene import Collage, Scene
from visualizeit.sandbox import create_general_comps_pkg
from visualizeit.sandbox.general_comps import GENERAL_COMPS_PKG_NAME, Valve1, Valve2


def fresh_persist(with_general_comps: bool = True) -> PkgPersist:
    manager = PkgManager()
    if with_general_comps:
        manager.register_pkg(create_general_comps_pkg())
    return PkgPersist(manager)


def test_save_and_load_round_trip(persist, sample_pkg, tmp_path) -> None:
    path = str(tmp_path / "sample.vit.h5")
    sample_pkg.get_entry("Scene1").draggable(True)

    assert persist.save_pkg(sample_pkg, path) == path
    assert sample_pkg.resource_locator == path
    assert not sample_pkg.is_modified()

    reader = fresh_persist()
    loaded = reader.load_pkg(path)

    assert loaded.encode() == sample_pkg.encode()
    assert loaded.resource_locator == path
    assert loaded.diagnostics == []
    assert not loaded.has_unresolved()
    assert reader.pkg_manager.get_package(loaded.pkg_name) is loaded
    assert isinstance(loaded.get_entry("collage1"), Collage)
    assert loaded.get_entry("Scene1").draggable() is True
    assert isinstance(loaded.get_entry("Scene1").children[0], Valve1)


def test_resource_attributes(persist, sample_pkg, tmp_path) -> None:
    path = tmp_path / "sample.vit.h5"
    persist.save_pkg(sample_pkg, str(path))

    with h5py.File(path, "r") as f:
        assert f.attrs["format"] == "visualizeit-pkg"
        assert f.attrs["pkg_name"] == sample_pkg.pkg_name
        assert f.attrs["kind"] == "scenes"
        assert "payload_json" in f.attrs
        assert "payload" not in f


def test_save_leaves_no_temporary_files(persist, sample_pkg, tmp_path) -> None:
    path = tmp_path / "sample.vit.h5"
    persist.save_pkg(sample_pkg, str(path))
    persist.save_pkg(sample_pkg)  # overwrite in place

    assert [p.name for p in tmp_path.iterdir()] == ["sample.vit.h5"]


def test_large_payload_uses_a_dataset(persist, tmp_path) -> None:
    scene = Scene("big", comps=[Valve2(f"valve-{i}", x=i, y=i) for i in range(800)])
    pkg = SmartPkg("big.pkg", entries=[scene])
    path = tmp_path / "big.vit.h5"

    persist.save_pkg(pkg, str(path))

    with h5py.File(path, "r") as f:
        assert "payload" in f
        assert "payload_json" not in f.attrs
    loaded = fresh_persist().load_pkg(str(path))
    assert len(loaded.get_entry("big")) == 800


def test_class_library_is_never_written(persist, pkg_manager, tmp_path) -> None:
    lib = pkg_manager.get_package(GENERAL_COMPS_PKG_NAME)
    path = tmp_path / "lib.vit.h5"

    with pytest.raises(PersistenceUnsupportedError):
        persist.save_pkg(lib, str(path))
    assert not path.exists()


def test_save_without_locator_is_rejected(persist, sample_pkg) -> None:
    with pytest.raises(ValidationError):
        persist.save_pkg(sample_pkg)


def test_unresolved_classes_become_placeholders(persist, sample_pkg, tmp_path) -> None:
    path = str(tmp_path / "sample.vit.h5")
    persist.save_pkg(sample_pkg, path)

    # generalComps is not loaded: every valve is unresolved, the load still succeeds
    loaded = fresh_persist(with_general_comps=False).load_pkg(path)

    assert [e.id for e in loaded.entries] == ["Scene1", "Scene2", "collage1"]
    assert loaded.has_unresolved()
    assert len(loaded.diagnostics) == 12
    diagnostic = loaded.diagnostics[0]
    assert (diagnostic.entry_id, diagnostic.comp_id) == ("Scene1", "myValve1")
    assert diagnostic.pkg_name == GENERAL_COMPS_PKG_NAME
    assert "not loaded" in diagnostic.reason

    placeholder = loaded.get_entry("Scene1").children[0]
    assert isinstance(placeholder, UnresolvedComp)
    assert placeholder.unresolved
    assert placeholder.get_class_ref().class_name == "Valve1"


def test_placeholders_round_trip_their_data(persist, sample_pkg, tmp_path) -> None:
    first = str(tmp_path / "first.vit.h5")
    second = str(tmp_path / "second.vit.h5")
    persist.save_pkg(sample_pkg, first)

    partial = fresh_persist(with_general_comps=False)
    loaded = partial.load_pkg(first)
    loaded.get_entry("Scene1").children[0].move(1, 2)
    partial.save_pkg(loaded, second)

    restored = fresh_persist().load_pkg(second)
    valve = restored.get_entry("Scene1").children[0]
    assert isinstance(valve, Valve1)
    assert (valve.x, valve.y) == (1, 2)
    assert restored.get_entry("Scene2").encode() == sample_pkg.get_entry("Scene2").encode()


def test_broken_entry_is_skipped_with_a_diagnostic(persist, sample_pkg) -> None:
    data = persist.encode_pkg(sample_pkg)
    data["entries"][1]["visualParams"]["width"] = -5

    loaded = persist.decode_pkg(data)

    assert [e.id for e in loaded.entries] == ["Scene1", "collage1"]
    assert len(loaded.diagnostics) == 1
    assert loaded.diagnostics[0].entry_id == "Scene2"


def test_unresolved_collage_child_keeps_its_siblings(persist, sample_pkg) -> None:
    data = persist.encode_pkg(sample_pkg)
    collage_data = data["entries"][2]
    collage_data["comps"][1]["classRef"] = {"pkg": "missingPkg", "class": "FancyScene"}

    loaded = persist.decode_pkg(data)
    collage = loaded.get_entry("collage1")

    assert collage is not None
    first, second = collage.children
    assert isinstance(first, Scene) and not first.unresolved
    assert isinstance(second, UnresolvedScene) and second.unresolved
    assert [c.id for c in second.children] == ["myValve1", "myPipe", "myValve2"]
    assert isinstance(second.children[0], Valve1)
    assert loaded.has_unresolved()
    assert [(d.entry_id, d.comp_id, d.pkg_name) for d in loaded.diagnostics] == [
        ("collage1", "Scene2", "missingPkg")
    ]

    # saved back unchanged, the missing class included
    assert persist.encode_pkg(loaded)["entries"][2] == collage_data


def test_collage_accepts_an_unresolved_placeholder_child(persist, sample_pkg) -> None:
    data = persist.encode_pkg(sample_pkg)
    child = data["entries"][2]["comps"][1]
    del child["comps"]
    child["classRef"] = {"pkg": "missingPkg", "class": "Gauge"}

    collage = persist.decode_pkg(data).get_entry("collage1")

    assert len(collage) == 2
    assert isinstance(collage.children[1], UnresolvedComp)
    assert [s.id for s in collage.scenes] == ["Scene1"]


def test_decode_rejects_foreign_documents(persist) -> None:
    with pytest.raises(PackageFormatError):
        persist.decode_pkg(["not", "a", "package"])
    with pytest.raises(PackageFormatError):
        persist.decode_pkg({"name": "p", "kind": "scenes", "format": "other"})
    with pytest.raises(PackageFormatError):
        persist.decode_pkg({"name": "p", "kind": "scenes", "entries": [], "classes": {}})
    with pytest.raises(PackageFormatError):
        persist.decode_pkg({"name": "p", "kind": "unknown"})


def test_class_manifest_is_imported(persist, pkg_manager, tmp_path) -> None:
    path = str(tmp_path / "lib.vit.h5")
    lib = pkg_manager.get_package(GENERAL_COMPS_PKG_NAME)
    persist.write_resource(persist.encode_pkg(lib), path)

    loaded = fresh_persist(with_general_comps=False).load_pkg(path)

    assert loaded.is_class_library()
    assert loaded.get_class("Valve1") is Valve1
    assert set(loaded.class_names()) == set(lib.class_names())


def test_class_manifest_failures_are_per_class(persist) -> None:
    loaded = persist.decode_pkg({
        "name": GENERAL_COMPS_PKG_NAME,
        "kind": "classes",
        "classes": {
            "Valve1": "visualizeit.sandbox.general_comps:Valve1",
            "Missing": "visualizeit.sandbox.no_such_module:Thing",
            "NotAComp": "visualizeit.model.scene:logger",
        },
    })

    assert loaded.class_names() == ["Valve1"]
    assert {d.class_name for d in loaded.diagnostics} == {"Missing", "NotAComp"}


def test_non_hdf5_resource_is_a_format_error(persist, tmp_path) -> None:
    path = tmp_path / "notes.vit.h5"
    path.write_text("hello")

    with pytest.raises(PackageFormatError):
        persist.load_pkg(str(path))
    with pytest.raises(PackageFormatError):
        persist.load_pkg(str(tmp_path / "missing.vit.h5"))


def test_hdf5_without_package_format_is_rejected(persist, tmp_path) -> None:
    path = tmp_path / "other.h5"
    with h5py.File(path, "w") as f:
        f.attrs["format"] = "something-else"

    with pytest.raises(PackageFormatError):
        persist.load_pkg(str(path))


def test_open_pkg_cancel_returns_none(persist) -> None:
    assert persist.open_pkg(lambda: None) is None


def test_open_pkg_registers_the_package(persist, sample_pkg, tmp_path) -> None:
    path = str(tmp_path / "sample.vit.h5")
    persist.save_pkg(sample_pkg, path)

    reader = fresh_persist()
    pkg = reader.open_pkg(lambda: path)

    assert reader.pkg_manager.get_package(sample_pkg.pkg_name) is pkg
