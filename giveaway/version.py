"""
Version of the giveaway package.

Installed distributions report their metadata version; a source checkout
that was never installed reports BASE_VERSION as a dev release.
"""
from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version as _pkg_version

# Bump together with pyproject.toml.
BASE_VERSION = "0.1.0"

_PKG_NAME = "giveaway-draw"


@lru_cache(maxsize=1)
def get_version() -> str:
    try:
        return _pkg_version(_PKG_NAME)
    except PackageNotFoundError:
        return f"{BASE_VERSION}.dev0"


__version__ = get_version()
__all__ = ["__version__", "get_version", "BASE_VERSION"]
