"""Provider interfaces for mtctl."""
from __future__ import annotations

from .remote_control import (
    ClientError,
    Envelope,
    NetworkError,
    PayloadKind,
    ProtocolError,
    RemoteControlClient,
    RemoteError,
)

__all__ = [
    "ClientError",
    "Envelope",
    "NetworkError",
    "PayloadKind",
    "ProtocolError",
    "RemoteControlClient",
    "RemoteError",
]
