"""mtctl: control client for Motor Town dedicated servers.

The package is split into the instance registry (:mod:`mtctl.state`), the
administrative API client (:mod:`mtctl.providers`) and the interactive front
ends (:mod:`mtctl.wizard`, :mod:`mtctl.session`) wired together by
:mod:`mtctl.cli`.
"""
from __future__ import annotations

__all__ = ["__version__", "get_version"]

# Keep in step with ``version`` in pyproject.toml.
__version__ = "0.1.0"


def get_version() -> str:
    """Return the version string reported by ``mtctl --version``."""
    return __version__
