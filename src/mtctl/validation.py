"""Field validators shared by the registry, the wizard and the client.

Every validator accepts raw operator text (or an already-typed value) and
returns the normalised value, raising :class:`ValidationError` with an
operator-facing message when the input is unacceptable.
"""
from __future__ import annotations

import ipaddress
import re

MAX_NAME_LENGTH = 72
# bcrypt input limit.
MAX_SECRET_LENGTH = 72
MIN_PORT = 0
MAX_PORT = 65535

_NAME_PATTERN = re.compile(r"[a-z0-9_-]+")
_PORT_PATTERN = re.compile(r"[+-]?[0-9]+")


class ValidationError(ValueError):
    """Raised when locally supplied input is malformed."""


def validate_instance_name(name: str) -> str:
    """Validate and normalise an instance name."""
    normalised = name.strip()
    if not normalised:
        raise ValidationError("instance name cannot be empty")
    if len(normalised) > MAX_NAME_LENGTH:
        raise ValidationError(f"instance name cannot exceed {MAX_NAME_LENGTH} characters")
    if not _NAME_PATTERN.fullmatch(normalised):
        raise ValidationError(
            "instance name can only contain lowercase letters (a-z), numbers (0-9), "
            "hyphens (-), and underscores (_)"
        )
    return normalised


def validate_address(address: str) -> str:
    """Validate an IPv4 dotted-quad address."""
    normalised = address.strip()
    if not normalised:
        raise ValidationError("address cannot be empty")

    parts = normalised.split(".")
    if len(parts) != 4:
        raise ValidationError("address must have exactly 4 parts separated by dots")

    for index, part in enumerate(parts, start=1):
        if not part.isascii() or not part.isdigit():
            raise ValidationError(f"address part {index} is not a valid number: {part!r}")
        octet = int(part)
        if octet > 255:
            raise ValidationError(f"address part {index} must be between 0 and 255, got: {octet}")

    try:
        ipaddress.IPv4Address(normalised)
    except ipaddress.AddressValueError as exc:
        raise ValidationError(f"invalid IPv4 address: {exc}") from exc
    return normalised


def validate_port(port: str | int) -> int:
    """Validate a TCP port given as text or integer."""
    if isinstance(port, bool):
        raise ValidationError(f"port must be a number: {port!r}")
    if isinstance(port, int):
        value = port
    else:
        text = port.strip()
        if not text:
            raise ValidationError("port cannot be empty")
        if not _PORT_PATTERN.fullmatch(text):
            raise ValidationError(f"port must be a number: {text}")
        value = int(text)

    if value < MIN_PORT or value > MAX_PORT:
        raise ValidationError(f"port must be between {MIN_PORT} and {MAX_PORT}, got: {value}")
    return value


def validate_secret(secret: str) -> str:
    """Validate the shared secret used to authenticate against an instance.

    The secret is returned unchanged; surrounding whitespace is only trimmed
    from operator input at the prompt.
    """
    if not secret.strip():
        raise ValidationError("secret cannot be empty")
    if len(secret) > MAX_SECRET_LENGTH:
        raise ValidationError(f"secret cannot exceed {MAX_SECRET_LENGTH} characters")
    return secret


def require_text(value: str, label: str) -> str:
    """Return *value* unchanged unless it is blank."""
    if not value or not value.strip():
        raise ValidationError(f"{label} cannot be empty")
    return value


def mask_secret(secret: str) -> str:
    """Return *secret* with everything past the first two characters masked."""
    if len(secret) <= 3:
        return "*" * len(secret)
    return secret[:2] + "*" * (len(secret) - 2)


__all__ = [
    "MAX_NAME_LENGTH",
    "MAX_SECRET_LENGTH",
    "ValidationError",
    "mask_secret",
    "require_text",
    "validate_address",
    "validate_instance_name",
    "validate_port",
    "validate_secret",
]
