"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import WriterFriendConfig

ENV_PREFIX = "WRITERFRIEND__"


def resolve_with_precedence(
    *,
    defaults: WriterFriendConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> WriterFriendConfig:
    """Merge configuration layers, later layers winning over earlier ones.

    The order is defaults, configuration file, environment, then CLI flags.
    Override keys may be nested mappings or dotted paths such as
    ``"paths.projects_root"``.

    Raises:
        ConfigError: If an override is malformed or the merged values fail validation.
    """
    merged = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for source_name, layer in layers:
        if layer is None:
            continue
        merged = _deep_merge(merged, expand_dotted(layer, source_name=source_name))

    try:
        return WriterFriendConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``WRITERFRIEND__SECTION__KEY`` variables into a nested mapping.

    Values are parsed as YAML literals so ``"false"`` and ``"[.md]"`` become a
    bool and a list; unparsable values are kept as raw strings.
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            value: Any = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        node = overrides
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value
    return overrides


def flatten_for_env(config: WriterFriendConfig) -> Dict[str, str]:
    """Render the config as the environment variables that would reproduce it."""
    flat: Dict[str, str] = {}

    def _walk(prefix: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk([*prefix, str(key)], child)
            return
        env_key = ENV_PREFIX + "__".join(part.upper() for part in prefix)
        if isinstance(value, list):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[env_key] = "null"
        else:
            flat[env_key] = str(value)

    _walk([], config.model_dump(mode="python"))
    return flat


def expand_dotted(source: Mapping[str, Any], *, source_name: str = "override") -> dict[str, Any]:
    """Return ``source`` with dotted keys expanded into nested mappings.

    Raises:
        ConfigError: If ``source`` is not a mapping, has non-string keys, or a
            dotted key traverses a non-mapping value.
    """
    label = source_name.capitalize()
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{label} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label} override keys must be strings.")
        *parents, leaf = key.split(".")
        node = expanded
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(f"{label} override for {key} conflicts with existing value.")
            node = child
        if isinstance(value, MappingABC):
            nested = expand_dotted(value, source_name=source_name)
            current = node.get(leaf)
            node[leaf] = _deep_merge(current, nested) if isinstance(current, dict) else nested
        else:
            node[leaf] = value
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "parse_env_overrides",
    "flatten_for_env",
    "expand_dotted",
]
