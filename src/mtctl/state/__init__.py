"""Persistent state helpers for mtctl."""
from __future__ import annotations

from .registry import Instance, InstanceRegistry, RegistryIOError

__all__ = ["Instance", "InstanceRegistry", "RegistryIOError"]
