"""Configuration loader for mtctl.

Settings come from four layers, each overriding the one before:

1. Built-in defaults. Paths sit in the application directory, the directory
   holding the running ``mtctl`` executable.
2. ``mtctl.yml`` in the application directory, or the file named by
   ``--config-file`` / ``MTCTL_CONFIG_FILE``.
3. ``MTCTL_*`` environment variables.
4. Command line flags such as ``--registry-file``.

Numeric environment values go through PyYAML's ``safe_load``::

    export MTCTL_REQUEST_TIMEOUT=5
    export MTCTL_REGISTRY_FILE=~/motortown/instances.yml
"""
from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

try:  # PyYAML is a runtime dependency declared in pyproject.toml
    import yaml
except Exception as exc:  # pragma: no cover - import failure handled in tests
    raise RuntimeError(
        "PyYAML is required to load mtctl configuration. Install with `pip install mtctl`."
    ) from exc


ENV_PREFIX = "MTCTL_"
CONFIG_ENV_VAR = "MTCTL_CONFIG_FILE"

CONFIG_FILENAME = "mtctl.yml"
REGISTRY_FILENAME = "instances.yml"
LOGS_DIRNAME = "logs"
DEFAULT_REQUEST_TIMEOUT = 10.0

PATH_KEYS = ("registry_file", "logs_dir")
KNOWN_KEYS = frozenset({"config_file", "registry_file", "logs_dir", "request_timeout"})


class ConfigError(RuntimeError):
    """Raised when configuration or registry documents cannot be parsed."""


@dataclass(frozen=True)
class AppConfig:
    """Resolved configuration values for mtctl."""

    config_file: Path
    registry_file: Path
    logs_dir: Path
    request_timeout: float

    def to_dict(self) -> dict[str, object]:
        """Return the configuration with paths rendered as strings."""
        return {
            "config_file": str(self.config_file),
            "registry_file": str(self.registry_file),
            "logs_dir": str(self.logs_dir),
            "request_timeout": self.request_timeout,
        }


def application_dir(argv0: str | None = None) -> Path:
    """Return the directory that holds the running executable."""
    candidate = argv0 if argv0 is not None else (sys.argv[0] if sys.argv else "")
    if not candidate:
        return Path.cwd()
    return Path(candidate).expanduser().resolve().parent


def load_config(
    config_file: str | os.PathLike[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
    app_dir: Path | None = None,
) -> AppConfig:
    """Resolve every configuration layer into an :class:`AppConfig`."""
    base_dir = app_dir if app_dir is not None else application_dir()
    environ = os.environ if env is None else env

    if config_file:
        config_path = Path(config_file).expanduser()
    elif CONFIG_ENV_VAR in environ:
        config_path = Path(environ[CONFIG_ENV_VAR]).expanduser()
    else:
        config_path = base_dir / CONFIG_FILENAME

    settings: dict[str, object] = {}
    settings.update(_read_config_file(config_path))
    settings.update(_settings_from_env(environ))
    if overrides:
        settings.update({key: value for key, value in overrides.items() if value is not None})

    unknown = sorted(set(settings) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}.")

    return AppConfig(
        config_file=config_path,
        registry_file=_path_setting(settings, "registry_file", base_dir / REGISTRY_FILENAME),
        logs_dir=_path_setting(settings, "logs_dir", base_dir / LOGS_DIRNAME),
        request_timeout=_timeout_setting(settings.get("request_timeout")),
    )


def _read_config_file(path: Path) -> dict[str, object]:
    if not path.exists():
        return {}
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc

    if document is None:
        return {}
    if not isinstance(document, Mapping):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level.")
    for key in document:
        if not isinstance(key, str):
            raise ConfigError(f"Config file {path} must use string keys. Got {key!r}.")
    return dict(document)


def _settings_from_env(environ: Mapping[str, str]) -> dict[str, object]:
    settings: dict[str, object] = {}
    for name, raw in environ.items():
        if name == CONFIG_ENV_VAR or not name.startswith(ENV_PREFIX):
            continue
        key = name[len(ENV_PREFIX) :].lower()
        if not key:
            continue
        if key in PATH_KEYS:
            # Kept verbatim: YAML reads "~" as null.
            settings[key] = raw.strip()
            continue
        try:
            settings[key] = yaml.safe_load(raw.strip())
        except yaml.YAMLError:
            settings[key] = raw.strip()
    return settings


def _path_setting(settings: Mapping[str, object], key: str, default: Path) -> Path:
    value = settings.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise ConfigError(f"{key} must be a string path or null.")


def _timeout_setting(value: object) -> float:
    if value is None:
        return DEFAULT_REQUEST_TIMEOUT
    if isinstance(value, bool):
        raise ConfigError(f"request_timeout must be a number. Got boolean {value!r}.")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        try:
            seconds = float(value)
        except ValueError as exc:
            raise ConfigError(f"Invalid number for request_timeout: {value!r}.") from exc
    else:
        raise ConfigError(f"request_timeout must be numeric. Got {type(value).__name__}.")
    if seconds <= 0:
        raise ConfigError(f"request_timeout must be greater than zero. Got {seconds}.")
    return seconds


__all__ = [
    "AppConfig",
    "ConfigError",
    "DEFAULT_REQUEST_TIMEOUT",
    "application_dir",
    "load_config",
]
