"""HTTP client for the game server's administrative API.

Every call targets ``http://{address}:{port}{path}`` and carries the
instance secret as the ``password`` query parameter. Intent parameters are
sent as query parameters as well, including for POST requests, which have no
body. Responses share one envelope::

    {"data": <any>, "message": "...", "succeeded": true}

Failures are classified in order: transport problems raise
:class:`NetworkError`, undecodable bodies raise :class:`ProtocolError`, and
non-200 statuses or ``succeeded: false`` raise :class:`RemoteError` with the
decoded envelope attached.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import httpx

from ..config import DEFAULT_REQUEST_TIMEOUT
from ..state import Instance
from ..validation import require_text

LOGGER = logging.getLogger(__name__)


class ClientError(RuntimeError):
    """Base class for failures talking to an instance."""


class NetworkError(ClientError):
    """Raised when the request could not be delivered or timed out."""


class ProtocolError(ClientError):
    """Raised when the response body is not a valid envelope."""


class RemoteError(ClientError):
    """Raised when the server reports a failure."""

    def __init__(
        self,
        message: str,
        *,
        envelope: Envelope,
        status_code: int = 200,
    ) -> None:
        self.message = envelope.message
        self.envelope = envelope
        self.status_code = status_code
        super().__init__(message)


class PayloadKind(Enum):
    """Shape of the ``data`` member of an envelope."""

    ABSENT = "absent"
    SCALAR = "scalar"
    LIST = "list"
    MAPPING = "mapping"


@dataclass(frozen=True)
class Envelope:
    """Decoded administrative response."""

    succeeded: bool
    message: str
    data: object = None

    @property
    def kind(self) -> PayloadKind:
        """Return the shape of :attr:`data`."""
        if self.data is None:
            return PayloadKind.ABSENT
        if isinstance(self.data, Mapping):
            return PayloadKind.MAPPING
        if isinstance(self.data, list):
            return PayloadKind.LIST
        return PayloadKind.SCALAR

    def mapping(self) -> dict[str, object] | None:
        """Return :attr:`data` when it is a mapping, otherwise ``None``."""
        if self.kind is PayloadKind.MAPPING:
            return dict(self.data)  # type: ignore[call-overload]
        return None

    @classmethod
    def from_json(cls, payload: object) -> Envelope:
        """Validate a decoded JSON document and build an envelope."""
        if not isinstance(payload, Mapping):
            raise ProtocolError("failed to decode response: expected a JSON object")
        succeeded = payload.get("succeeded", False)
        if not isinstance(succeeded, bool):
            raise ProtocolError("failed to decode response: 'succeeded' must be a boolean")
        message = payload.get("message")
        if message is not None and not isinstance(message, str):
            raise ProtocolError("failed to decode response: 'message' must be a string")
        return cls(
            succeeded=succeeded,
            message=message or "",
            data=payload.get("data"),
        )


class RemoteControlClient:
    """Issue administrative calls against an :class:`Instance`.

    The client keeps no per-instance state; every call receives its target.
    A *transport* may be supplied to route requests somewhere other than the
    network, which the test-suite uses to emulate a game server.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    @property
    def timeout(self) -> float:
        """Return the per-request timeout in seconds."""
        return self._timeout

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------
    def player_count(self, instance: Instance) -> Envelope:
        """Return the number of connected players."""
        return self._request(instance, "GET", "/player/count")

    def player_list(self, instance: Instance) -> Envelope:
        """Return the connected players keyed by slot."""
        return self._request(instance, "GET", "/player/list")

    def ban_list(self, instance: Instance) -> Envelope:
        """Return the banned players."""
        return self._request(instance, "GET", "/player/banlist")

    def version(self, instance: Instance) -> Envelope:
        """Return the server version."""
        return self._request(instance, "GET", "/version")

    def housing_list(self, instance: Instance) -> Envelope:
        """Return the rented houses keyed by house name."""
        return self._request(instance, "GET", "/housing/list")

    # ------------------------------------------------------------------
    # State-changing calls
    # ------------------------------------------------------------------
    def send_chat(self, instance: Instance, message: str) -> Envelope:
        """Broadcast *message* to the in-game chat."""
        require_text(message, "message")
        return self._request(instance, "POST", "/chat", {"message": message})

    def kick(self, instance: Instance, unique_id: str) -> Envelope:
        """Kick the player identified by *unique_id*."""
        require_text(unique_id, "unique_id")
        return self._request(instance, "POST", "/player/kick", {"unique_id": unique_id})

    def ban(
        self,
        instance: Instance,
        unique_id: str,
        *,
        hours: int | None = None,
        reason: str = "",
    ) -> Envelope:
        """Ban *unique_id*; ``hours`` of zero or less means no expiry."""
        require_text(unique_id, "unique_id")
        params: dict[str, str] = {"unique_id": unique_id}
        if hours is not None and hours > 0:
            params["hours"] = str(hours)
        if reason:
            params["reason"] = reason
        return self._request(instance, "POST", "/player/ban", params)

    def unban(self, instance: Instance, unique_id: str) -> Envelope:
        """Lift the ban on *unique_id*."""
        require_text(unique_id, "unique_id")
        return self._request(instance, "POST", "/player/unban", {"unique_id": unique_id})

    # Internal helpers -------------------------------------------------
    def _request(
        self,
        instance: Instance,
        method: str,
        path: str,
        extra_params: Mapping[str, str] | None = None,
    ) -> Envelope:
        params: dict[str, str] = {"password": instance.secret}
        params.update(extra_params or {})
        url = f"{instance.base_url}{path}"
        LOGGER.debug("%s %s on %s", method, path, instance.endpoint)

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as http:
                response = http.request(method, url, params=params)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"request timed out after {self._timeout:g}s: {exc}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"failed to send request: {exc}") from exc

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ProtocolError(f"failed to decode response: {exc}") from exc
        envelope = Envelope.from_json(payload)

        if response.status_code != httpx.codes.OK:
            raise RemoteError(
                f"HTTP {response.status_code}: {envelope.message}",
                envelope=envelope,
                status_code=response.status_code,
            )
        if not envelope.succeeded:
            raise RemoteError(f"API call failed: {envelope.message}", envelope=envelope)

        LOGGER.debug("%s %s on %s succeeded: %s", method, path, instance.endpoint, envelope.message)
        return envelope


__all__ = [
    "ClientError",
    "Envelope",
    "NetworkError",
    "PayloadKind",
    "ProtocolError",
    "RemoteControlClient",
    "RemoteError",
]
