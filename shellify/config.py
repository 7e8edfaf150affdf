"""Per-user configuration: where shellify keeps its state and how it talks to git.

Storage layout under the home directory (``~/.shellify`` by default):
- ``config.yaml`` -- optional overrides (``cache_dir``, ``http_timeout``, ``git_backend``)
- ``registries.json`` -- the registered registry list
- ``cache/`` -- one shallow clone per registry
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import yaml

from shellify.errors import ConfigError

HOME_ENV_VAR = "SHELLIFY_HOME"
CACHE_ENV_VAR = "SHELLIFY_CACHE_DIR"

DEFAULT_HTTP_TIMEOUT = 15.0
GIT_BACKENDS = ("gitpython", "cli")


@dataclass
class ShellifyConfig:
    """Resolved configuration."""

    home_dir: Path
    cache_dir: Path
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    git_backend: str = "gitpython"

    @property
    def registries_file(self) -> Path:
        return self.home_dir / "registries.json"

    @property
    def config_file(self) -> Path:
        return self.home_dir / "config.yaml"

    @classmethod
    def for_home(cls, home_dir: str | Path) -> "ShellifyConfig":
        """Defaults rooted at ``home_dir``, without reading any file."""
        home = Path(home_dir)
        return cls(home_dir=home, cache_dir=home / "cache")


def default_home() -> Path:
    return Path.home() / ".shellify"


def load_config(
    home_dir: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ShellifyConfig:
    """Resolve the configuration.

    Precedence, lowest first: built-in defaults, ``config.yaml`` in the home
    directory, environment variables, then an explicit ``home_dir``.

    Raises:
        ConfigError: If ``config.yaml`` is malformed or holds invalid values.
    """
    env = os.environ if environ is None else environ

    if home_dir is not None:
        home = Path(home_dir).expanduser()
    elif env.get(HOME_ENV_VAR):
        home = Path(env[HOME_ENV_VAR]).expanduser()
    else:
        home = default_home()

    config = ShellifyConfig.for_home(home)
    _apply_file(config, _read_config_file(config.config_file))

    if env.get(CACHE_ENV_VAR):
        config.cache_dir = Path(env[CACHE_ENV_VAR]).expanduser()

    return config


def _read_config_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", details={"path": str(path)}, cause=e) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", details={"path": str(path)}, cause=e) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping", details={"path": str(path)})
    return data


def _apply_file(config: ShellifyConfig, data: dict) -> None:
    path = str(config.config_file)

    cache_dir = data.get("cache_dir")
    if cache_dir:
        config.cache_dir = Path(str(cache_dir)).expanduser()

    if "http_timeout" in data:
        try:
            timeout = float(data["http_timeout"])
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"http_timeout must be a number, got {data['http_timeout']!r}",
                details={"path": path},
                cause=e,
            ) from e
        if timeout <= 0:
            raise ConfigError(f"http_timeout must be positive, got {timeout}", details={"path": path})
        config.http_timeout = timeout

    backend = data.get("git_backend")
    if backend is not None:
        if backend not in GIT_BACKENDS:
            raise ConfigError(
                f"Invalid git_backend '{backend}'. Must be one of: {', '.join(GIT_BACKENDS)}",
                details={"path": path},
            )
        config.git_backend = backend
