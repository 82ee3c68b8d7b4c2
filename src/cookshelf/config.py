"""cookshelf configuration.

Settings come from three layers, later ones winning:

1. Built-in defaults (``Config()``).
2. A YAML file: the explicit ``--config`` path, else ``$COOKSHELF_CONFIG``,
   else ``~/.cookshelf/config.yaml`` when it exists.
3. ``COOKSHELF_*`` environment variables (e.g. ``COOKSHELF_API_TIMEOUT=10``,
   ``COOKSHELF_DEFAULT_SOURCES=https://a,https://b``).

Example file::

    default_sources:
      - https://supermarket.chef.io
    api_timeout: 30
    concurrency: 8
    resolve_timeout: 300
    chef_server_url: https://chef.example.com/organizations/ops
    client_name: ci
    client_key: ~/.chef/ci.pem
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from cookshelf import PUBLIC_SUPERMARKET
from cookshelf.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "COOKSHELF_CONFIG"
ENV_PREFIX = "COOKSHELF_"
DEFAULT_CONFIG_PATH = Path("~/.cookshelf/config.yaml")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class Config:
    """Effective configuration.

    Attributes:
        default_sources: Registry URLs used when a Berksfile names none.
        api_timeout: HTTP timeout in seconds.
        retry_count: HTTP retries on transient failures.
        retry_delay: Base delay between retries in seconds.
        concurrency: Resolver worker count; 0 picks twice the CPU count.
        resolve_timeout: Overall resolution deadline in seconds, or None.
        cache_path: Root of the on-disk cache.
        ssl_verify: Verify TLS certificates.
        chef_server_url: Organization URL used by ``source :chef_server``.
        client_name: Chef API client that signs Chef Server requests.
        client_key: Path to that client's PEM private key.
    """

    default_sources: list[str] = field(default_factory=lambda: [PUBLIC_SUPERMARKET])
    api_timeout: float = 30.0
    retry_count: int = 3
    retry_delay: float = 1.0
    concurrency: int = 0
    resolve_timeout: float | None = None
    cache_path: str = "~/.cookshelf/cache"
    ssl_verify: bool = True
    chef_server_url: str = ""
    client_name: str = ""
    client_key: str = ""

    def validate(self) -> None:
        """Raise ``ConfigError`` on out-of-range values."""
        if not self.default_sources:
            raise ConfigError("default_sources must list at least one source")
        if self.api_timeout <= 0:
            raise ConfigError("api_timeout must be positive")
        if self.retry_count < 0:
            raise ConfigError("retry_count cannot be negative")
        if self.retry_delay < 0:
            raise ConfigError("retry_delay cannot be negative")
        if self.concurrency < 0:
            raise ConfigError("concurrency cannot be negative")
        if self.resolve_timeout is not None and self.resolve_timeout <= 0:
            raise ConfigError("resolve_timeout must be positive")


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def _coerce(key: str, value: Any, default: Any, *, from_env: bool) -> Any:
    """Convert *value* to the type of the field's *default*."""
    try:
        if key == "default_sources":
            if from_env and isinstance(value, str):
                return [part.strip() for part in value.split(",") if part.strip()]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise TypeError("expected a list of URLs")
            return list(value)
        if key == "resolve_timeout":
            if value is None or (from_env and str(value).strip().lower() in ("", "none")):
                return None
            return float(value)
        if isinstance(default, bool):
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if from_env and text in _TRUE:
                return True
            if from_env and text in _FALSE:
                return False
            raise TypeError("expected a boolean")
        if isinstance(default, int):
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise TypeError("expected an integer")
            return int(value)
        if isinstance(default, float):
            if isinstance(value, bool):
                raise TypeError("expected a number")
            return float(value)
        if not isinstance(value, str):
            raise TypeError("expected a string")
        return value
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid value for {key}: {value!r} ({exc})") from exc


def _apply(config: Config, values: Mapping[str, Any], *, from_env: bool, origin: str) -> None:
    defaults = {f.name: getattr(Config(), f.name) for f in fields(Config)}
    for key, value in values.items():
        if key not in defaults:
            logger.warning("Ignoring unknown configuration key %r in %s", key, origin)
            continue
        setattr(config, key, _coerce(key, value, defaults[key], from_env=from_env))


def _config_path(path: Path | str | None, environ: Mapping[str, str]) -> tuple[Path | None, bool]:
    """Return the file to read and whether it must exist."""
    if path is not None:
        return Path(path).expanduser(), True
    env_path = environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser(), True
    default = DEFAULT_CONFIG_PATH.expanduser()
    return (default, False) if default.is_file() else (None, False)


def load_config(path: Path | str | None = None, *, env: Mapping[str, str] | None = None) -> Config:
    """Load the effective configuration.

    Args:
        path: Explicit YAML file. Overrides ``$COOKSHELF_CONFIG``.
        env: Environment to read overrides from (defaults to ``os.environ``).

    Returns:
        The validated ``Config``.

    Raises:
        ConfigError: If an explicitly named file is missing or invalid, or
            a value has the wrong type.
    """
    environ = os.environ if env is None else env
    config = Config()

    file_path, required = _config_path(path, environ)
    if file_path is not None:
        if not file_path.is_file():
            if required:
                raise ConfigError(f"config file not found: {file_path}")
        else:
            try:
                with open(file_path, encoding="utf-8") as fh:
                    data = yaml.safe_load(fh) or {}
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(f"cannot load config file {file_path}: {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigError(f"config file {file_path} must contain a mapping")
            logger.debug("Loaded configuration from %s", file_path)
            _apply(config, data, from_env=False, origin=str(file_path))

    overrides = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in environ.items()
        if key.startswith(ENV_PREFIX) and key != CONFIG_ENV_VAR
    }
    if overrides:
        _apply(config, overrides, from_env=True, origin="environment")

    config.validate()
    return config
