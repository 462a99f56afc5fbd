"""
Config system - layered store configuration.

Merge order (later overrides earlier):
1. Config files (JSON / YAML)
2. ``.env`` file
3. Environment variables (``PIECEKIT_*`` prefix)
4. Manual overrides

Store settings live under ``stores.<name>`` and fall back to root keys::

    # piecekit.yaml
    extensions: [".py"]
    stores:
      commands:
        paths: ["./commands"]

    PIECEKIT_STORES__COMMANDS__IGNORE_PREFIXES=_,test_
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from glob import glob
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import dotenv_values

from .faults import ConfigError
from .strategies.loader import DEFAULT_EXTENSIONS, DEFAULT_IGNORE_PREFIXES

logger = logging.getLogger("piecekit.config")


@dataclass
class StoreConfig:
    """Settings for a single store and its default loader strategy."""

    name: str
    paths: Tuple[str, ...] = ()
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    ignore_prefixes: Tuple[str, ...] = DEFAULT_IGNORE_PREFIXES


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.
    """

    def __init__(self, env_prefix: str = "PIECEKIT_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "PIECEKIT_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from all sources.

        Args:
            paths: Config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        matches = sorted(glob(pattern))
        if not matches:
            logger.debug("No config files match %s", pattern)

        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                raise ConfigError(str(path), f"unsupported config format '{path.suffix}'")

    def _load_json_file(self, path: Path):
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ConfigError(str(path), f"invalid JSON: {exc}") from exc
        if data:
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        import yaml

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(str(path), f"invalid YAML: {exc}") from exc
        if data:
            self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        if not Path(path).exists():
            logger.debug("Env file %s not found, skipping", path)
            return

        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert PIECEKIT_STORES__COMMANDS__PATHS to a nested dict."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        if "," in value:
            return [item.strip() for item in value.split(",") if item.strip()]

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_store_config(self, name: str) -> StoreConfig:
        """
        Build a validated :class:`StoreConfig` for store ``name``.

        Keys under ``stores.<name>`` override root-level keys.

        Raises:
            ConfigError: If a value has the wrong shape
        """
        root = {k: v for k, v in self.config_data.items() if k != "stores"}
        merged = {**root, **self.get(f"stores.{name}", {})}

        kwargs: Dict[str, Any] = {"name": name}
        for field_info in fields(StoreConfig):
            if field_info.name == "name" or field_info.name not in merged:
                continue
            kwargs[field_info.name] = self._as_str_tuple(field_info.name, merged[field_info.name])

        return StoreConfig(**kwargs)

    @staticmethod
    def _as_str_tuple(key: str, value: Any) -> Tuple[str, ...]:
        if isinstance(value, str):
            value = [value] if value else []
        if not isinstance(value, (list, tuple)):
            raise ConfigError(key, f"expected a list of strings, got {type(value).__name__}")
        for item in value:
            if not isinstance(item, str):
                raise ConfigError(key, f"expected a list of strings, got item {item!r}")
        return tuple(value)

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()
