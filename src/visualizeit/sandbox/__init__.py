"""
Sandbox packages: the ``generalComps`` class library and a sample scene
package built from it.
"""
from __future__ import annotations

from visualizeit.sandbox.general_comps import GENERAL_COMPS_PKG_NAME, create_general_comps_pkg
from visualizeit.sandbox.sample_pkg import SAMPLE_PKG_NAME, create_sample_pkg

__all__ = ["GENERAL_COMPS_PKG_NAME", "SAMPLE_PKG_NAME", "create_general_comps_pkg", "create_sample_pkg"]
