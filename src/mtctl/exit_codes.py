"""Process exit codes returned by the ``mtctl`` command."""
from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit statuses; remote command failures inside a session never change them."""

    OK = 0
    # Bad operator input, e.g. an unknown instance name or selection.
    VALIDATION = 2
    # Unreadable config file or registry document.
    ENVIRONMENT = 3


__all__ = ["ExitCode"]
