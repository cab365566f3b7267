"""Layered configuration loading.

Every source is reduced to the same sectioned dict before merging, so a
flat env-style key such as ``search_provider_chain`` and the YAML block
``search: {provider_chain: ...}`` address the same setting.  Layers are
folded in order; later layers win key by key.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_TOP_LEVEL_KEYS = ("app_name", "environment")

_SECTIONS = frozenset(
    {"http", "logging", "search", "metadata_cache", "breaker", "tmdb", "imdb", "omdb"}
)

# Flat keys whose section prefix differs from the section name.
_ALIASED_FLAT_KEYS: dict[str, tuple[str, str]] = {
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "metadata_cache_dir": ("metadata_cache", "dir"),
}


def _split_flat_key(key: str) -> tuple[str, str] | None:
    """``"search_max_results"`` → ``("search", "max_results")``."""
    if key in _ALIASED_FLAT_KEYS:
        return _ALIASED_FLAT_KEYS[key]
    for section in _SECTIONS:
        prefix = f"{section}_"
        if key.startswith(prefix) and len(key) > len(prefix):
            return section, key[len(prefix) :]
    return None


def _merge_into(target: dict[str, Any], layer: Mapping[str, Any]) -> None:
    """Merge *layer* into *target* in place; nested mappings merge, rest replaces."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            target[key] = value


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer into the sectioned shape AppConfig validates.

    Unknown keys are dropped; a flat key overrides the same setting given
    as a section within the same layer.
    """
    shaped: dict[str, Any] = {
        key: layer[key] for key in _TOP_LEVEL_KEYS if key in layer
    }
    for key, value in layer.items():
        if key in _SECTIONS and isinstance(value, Mapping):
            shaped.setdefault(key, {}).update(value)
    for key, value in layer.items():
        if key in _SECTIONS or key in _TOP_LEVEL_KEYS:
            continue
        target = _split_flat_key(key)
        if target is None:
            continue
        section, name = target
        shaped.setdefault(section, {})[name] = value
    return shaped


def _yaml_layer(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise ValueError(f"{path}: top level must be a mapping, not {type(parsed)!r}")
    return dict(parsed)


def _fold(layers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for layer in layers:
        _merge_into(merged, _sectioned(layer))
    return merged


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Build the validated AppConfig.

    Precedence, lowest first: built-in defaults, YAML file, environment
    (``CINESIFT_*``, including a ``.env`` file), CLI overrides.  Variables
    already set in the process environment beat the ``.env`` file.

    Nothing is created on disk.

    Raises:
        FileNotFoundError: *config_path* or *dotenv_path* does not exist.
        pydantic.ValidationError: the merged settings are invalid.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = [deepcopy(DEFAULT_CONFIG)]
    if config_path is not None:
        layers.append(_yaml_layer(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    return AppConfig.model_validate(_fold(layers))
