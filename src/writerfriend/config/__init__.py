"""Configuration management for WriterFriend.

Settings are layered: built-in defaults, then ``~/.writerfriend/config.yaml``,
then ``WRITERFRIEND__SECTION__KEY`` environment variables, then CLI flags.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import WriterFriendConfig
from .resolver import (
    ENV_PREFIX,
    expand_dotted,
    flatten_for_env,
    parse_env_overrides,
    resolve_with_precedence,
)

DEFAULT_CONFIG_PATH = Path("~/.writerfriend/config.yaml")
_HEADER_LINES = (
    "# WriterFriend configuration file",
    "# Written by `writerfriend config set` and `writerfriend config edit`; "
    "unknown keys are rejected.",
)


class ConfigManager:
    """Read, resolve, and persist the YAML configuration file.

    Args:
        config_path: File to use; ``~/.writerfriend/config.yaml`` when omitted.
        env: Environment consulted for overrides; ``os.environ`` when omitted.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env: Mapping[str, str] = os.environ if env is None else env

    @property
    def config_path(self) -> Path:
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> WriterFriendConfig:
        """Resolve the effective configuration.

        Args:
            cli_overrides: Highest-precedence values, nested or dotted.
            include_env: Whether environment variables participate.
            ensure_file: Whether a default file is written when none exists.
            env_overrides: Environment to read instead of the manager's own.

        Returns:
            WriterFriendConfig: Validated configuration.

        Raises:
            ConfigError: If the file is unreadable YAML or a value is invalid.
        """
        if ensure_file:
            self.ensure_exists()

        from_env: dict[str, Any] | None = None
        if include_env:
            from_env = parse_env_overrides(self._env if env_overrides is None else env_overrides)

        return resolve_with_precedence(
            defaults=WriterFriendConfig(),
            file_overrides=self._parse_file(),
            env_overrides=from_env or None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the mapping stored in the file, without defaults applied."""
        return self._parse_file()

    def save(self, config: WriterFriendConfig | Mapping[str, Any]) -> None:
        data = (
            config.model_dump(mode="python")
            if isinstance(config, WriterFriendConfig)
            else dict(config)
        )
        self._dump(data)

    def ensure_exists(self) -> Path:
        """Write the default configuration unless the file is already present."""
        if not self._config_path.exists():
            self._dump(WriterFriendConfig().model_dump(mode="python"))
        return self._config_path

    def read_text(self) -> str:
        try:
            return self._config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def _parse_file(self) -> dict[str, Any]:
        text = self.read_text()
        if not text:
            return {}
        try:
            parsed = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {self._config_path}: {exc}") from exc
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigError(f"{self._config_path} must contain a mapping at the top level.")
        return parsed

    def _dump(self, data: Mapping[str, Any]) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        body = yaml.safe_dump(dict(data), sort_keys=False)
        header = "\n".join((*_HEADER_LINES, f"# Last updated: {stamp}"))
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(f"{header}\n{body}", encoding="utf-8")


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
    "WriterFriendConfig",
    "resolve_with_precedence",
    "parse_env_overrides",
    "flatten_for_env",
    "expand_dotted",
    "ConfigError",
]
