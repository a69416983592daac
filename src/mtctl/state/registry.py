"""Instance registry backed by a YAML document.

The registry lives in ``instances.yml`` next to the mtctl executable unless
configured otherwise. The document holds one top-level mapping::

    instances:
      main:
        address: 10.0.0.5
        port: 8080
        secret: s3cret

The registry is loaded once, mutated in memory and rewritten in full after
each successful mutation. Writes go through a temporary file followed by an
atomic replace.
"""
from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

try:  # PyYAML is a runtime dependency declared in pyproject.toml
    import yaml
except Exception as exc:  # pragma: no cover - import failure handled in tests
    raise RuntimeError(
        "PyYAML is required to manage mtctl instances. Install with `pip install mtctl`."
    ) from exc

from ..config import ConfigError
from ..validation import (
    ValidationError,
    validate_address,
    validate_instance_name,
    validate_port,
    validate_secret,
)

REGISTRY_FILE_MODE = 0o600


class RegistryIOError(RuntimeError):
    """Raised when the registry document cannot be written."""


@dataclass(frozen=True)
class Instance:
    """Connection parameters for one administratively reachable server."""

    address: str
    port: int
    secret: str

    def __post_init__(self) -> None:
        """Validate every field so that malformed records never exist."""
        object.__setattr__(self, "address", validate_address(self.address))
        object.__setattr__(self, "port", validate_port(self.port))
        object.__setattr__(self, "secret", validate_secret(self.secret))

    @property
    def endpoint(self) -> str:
        """Return ``address:port`` for display."""
        return f"{self.address}:{self.port}"

    @property
    def base_url(self) -> str:
        """Return the HTTP base URL of the administrative API."""
        return f"http://{self.address}:{self.port}"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> Instance:
        """Build an instance from a registry entry."""
        address = payload.get("address")
        port = payload.get("port")
        secret = payload.get("secret")
        if not isinstance(address, str):
            raise ValidationError("address must be a string")
        if not isinstance(port, (int, str)) or isinstance(port, bool):
            raise ValidationError("port must be an integer")
        if not isinstance(secret, str):
            raise ValidationError("secret must be a string")
        return cls(address=address, port=validate_port(port), secret=secret)

    def to_dict(self) -> dict[str, object]:
        """Return the serialisable registry entry."""
        return {"address": self.address, "port": self.port, "secret": self.secret}


@dataclass
class InstanceRegistry:
    """In-memory mapping of instance names to :class:`Instance` records."""

    path: Path
    instances: dict[str, Instance] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> InstanceRegistry:
        """Read the registry at *path*; a missing file yields an empty registry."""
        path = path.expanduser()
        if not path.exists():
            return cls(path=path)

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse registry file {path}: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Failed to read registry file {path}: {exc}") from exc

        if data is None:
            return cls(path=path)
        if not isinstance(data, Mapping):
            raise ConfigError(f"Registry file {path} must contain a mapping at the top level.")

        raw_instances = data.get("instances")
        if raw_instances is None:
            return cls(path=path)
        if not isinstance(raw_instances, Mapping):
            raise ConfigError(f"Registry file {path}: 'instances' must be a mapping.")

        instances: dict[str, Instance] = {}
        for raw_name, entry in raw_instances.items():
            try:
                name = validate_instance_name(str(raw_name))
                if not isinstance(entry, Mapping):
                    raise ValidationError("entry must be a mapping")
                instances[name] = Instance.from_mapping(entry)
            except ValidationError as exc:
                raise ConfigError(
                    f"Registry file {path}: invalid instance '{raw_name}': {exc}"
                ) from exc
        return cls(path=path, instances=instances)

    def save(self) -> None:
        """Atomically rewrite the registry document."""
        payload = {
            "instances": {
                name: self.instances[name].to_dict() for name in self.sorted_names()
            }
        }
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            tmp_fd, tmp_name = tempfile.mkstemp(dir=str(directory), prefix=f".{self.path.name}.")
        except OSError as exc:
            raise RegistryIOError(f"Failed to write registry file {self.path}: {exc}") from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                yaml.safe_dump(payload, handle, sort_keys=False)
            os.chmod(tmp_path, REGISTRY_FILE_MODE)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise RegistryIOError(f"Failed to write registry file {self.path}: {exc}") from exc
        finally:
            tmp_path.unlink(missing_ok=True)

    def add_or_replace(self, name: str, instance: Instance) -> None:
        """Insert *instance* under *name*, overwriting any previous record."""
        self.instances[validate_instance_name(name)] = instance

    def get(self, name: str) -> Instance | None:
        """Return the instance registered as *name*, if any."""
        return self.instances.get(name)

    def delete(self, name: str) -> bool:
        """Remove *name*; return whether it was registered."""
        return self.instances.pop(name, None) is not None

    def names(self) -> set[str]:
        """Return the registered instance names."""
        return set(self.instances)

    def sorted_names(self) -> list[str]:
        """Return the registered names in display order."""
        return sorted(self.instances)

    def __len__(self) -> int:
        return len(self.instances)

    def __contains__(self, name: object) -> bool:
        return name in self.instances


__all__ = ["Instance", "InstanceRegistry", "RegistryIOError"]
