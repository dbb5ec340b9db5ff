"""Configuration loading: TOML layers, variable expansion, env resolution.

Layers, lowest priority first:
    1. Built-in defaults (Pydantic model defaults)
    2. User config: ``~/.config/toolhost/config.toml``
    3. Project-local config: ``./toolhost.toml``
    4. ``$TOOLHOST_CONFIG`` (explicit path from the environment)
    5. ``path`` argument to ``load_config``
    6. ``overrides`` argument to ``load_config``

String values read from files may reference environment variables as
``$NAME`` or ``${NAME}``; unknown names are left as written. This is how
tool server ``env``, ``headers`` and ``args`` pick up secrets without
storing them in the file.

After validation, ``GOOGLE_CLOUD_PROJECT`` fills
``onboarding.project_override`` when the files leave it unset (an empty
value counts as unset) and ``CODE_ASSIST_ENDPOINT`` replaces
``onboarding.endpoint``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from toolhost.core.errors import ConfigError

from .schema import ToolhostConfig

CONFIG_ENV_VAR = "TOOLHOST_CONFIG"


def user_config_path() -> Path:
    """XDG location of the per-user config file."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "toolhost" / "config.toml"


def _config_layers(path: str | Path | None) -> list[Path]:
    """Existing config files in merge order.

    Optional layers are skipped when absent; a named file that is missing
    is an error.
    """
    optional = (user_config_path(), Path.cwd() / "toolhost.toml")
    layers = [p for p in optional if p.is_file()]

    named = [
        (os.environ.get(CONFIG_ENV_VAR), f"{CONFIG_ENV_VAR} points to non-existent file"),
        (path, "Config file not found"),
    ]
    for value, problem in named:
        if not value:
            continue
        p = Path(value)
        if not p.is_file():
            msg = f"{problem}: {value}"
            raise ConfigError(msg)
        layers.append(p)
    return layers


def expand_env_vars(value: Any) -> Any:
    """Substitute ``$NAME``/``${NAME}`` in every string inside ``value``."""
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    return value


def _read_layer(path: Path) -> dict[str, Any]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e
    return expand_env_vars(data)


def merge_layers(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Merge ``layer`` over ``base``; nested tables merge key by key."""
    merged = dict(base)
    for key, value in layer.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_layers(current, value)
        else:
            merged[key] = value
    return merged


def _resolve_onboarding_env(config: ToolhostConfig) -> None:
    onboarding = config.onboarding
    if not onboarding.project_override:
        onboarding.project_override = os.environ.get("GOOGLE_CLOUD_PROJECT") or None
    endpoint = os.environ.get("CODE_ASSIST_ENDPOINT")
    if endpoint:
        onboarding.endpoint = endpoint


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ToolhostConfig:
    """Load and validate configuration.

    Args:
        path: Explicit config file path (highest file priority).
        overrides: Dict merged last, as-is (no variable expansion).

    Raises:
        ConfigError: On invalid TOML, missing files, or validation failure.
            Validation messages name the files that were merged.
    """
    layers = _config_layers(path)
    merged: dict[str, Any] = {}
    for layer in layers:
        merged = merge_layers(merged, _read_layer(layer))
    if overrides:
        merged = merge_layers(merged, overrides)

    try:
        config = ToolhostConfig.model_validate(merged)
    except ValidationError as e:
        sources = ", ".join(str(p) for p in layers) or "defaults"
        msg = f"Configuration validation failed ({sources}): {e}"
        raise ConfigError(msg) from e

    _resolve_onboarding_env(config)
    return config
