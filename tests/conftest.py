import os

# Qt tests run without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from visualizeit.context import AppContext
from visualizeit.model.pkg_manager import PkgManager
from visualizeit.model.pkg_persist import PkgPersist
from visualizeit.sandbox import create_general_comps_pkg, create_sample_pkg


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def pkg_manager() -> PkgManager:
    manager = PkgManager()
    manager.register_pkg(create_general_comps_pkg())
    return manager


@pytest.fixture
def persist(pkg_manager: PkgManager) -> PkgPersist:
    return PkgPersist(pkg_manager)


@pytest.fixture
def sample_pkg(pkg_manager: PkgManager):
    pkg = create_sample_pkg()
    pkg_manager.register_pkg(pkg)
    return pkg


@pytest.fixture
def context():
    ctx = AppContext.create()
    yield ctx
    ctx.shutdown()
