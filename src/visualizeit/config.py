"""
Configuration
=============
Central registry for global constants.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers and file format identifiers from
   being scattered throughout the code.
2. Versioning: Persisted packages record the application version that wrote
   them, read once here from the installed distribution metadata.

Exports:
    APP_VERSION (str): Installed version of visualizeit.
    PKG_FORMAT_ID (str): Format marker stored in every package resource.
    PKG_FILE_SUFFIX (str): File suffix of persisted packages.
"""
from importlib.metadata import PackageNotFoundError, version


try:
    APP_VERSION = version("visualizeit")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"

# Persisted package resources (HDF5)
PKG_FORMAT_ID: str = "visualizeit-pkg"
PKG_FILE_SUFFIX: str = ".vit.h5"
PKG_FILE_FILTER: str = f"visualizeit Packages (*{PKG_FILE_SUFFIX} *.h5)"

# HDF5 attributes are limited to 64KB, larger payloads go to a dataset
ATTR_JSON_LIMIT: int = 60000

# Default canvas size when inspecting a single component class
CLASS_VIEW_SIZE: tuple[int, int] = (300, 300)

# Animate mode refresh interval (ms)
ANIMATE_INTERVAL_MS: int = 100
