"""
Configuration loading and validation for Partial Dump.
"""

import os
import re
from typing import Any, Optional

import yaml

from .errors import ConfigurationError
from .manifest import Manifest

DECLARATION_KINDS = ('dump', 'sql', 'include', 'reset_id_seq')
IDS_PLACEHOLDER = '{ids}'


class ConfigLoader:
    """Loads and validates configuration from YAML file."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f)

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration file '{self.config_path}' must be a mapping")

        return self._resolve_env_vars(config)

    def _resolve_env_vars(self, obj: Any) -> Any:
        """Recursively resolve environment variables in config."""
        if isinstance(obj, str):
            matches = self.ENV_VAR_PATTERN.findall(obj)
            for match in matches:
                env_value = os.environ.get(match, '')
                obj = obj.replace(f'${{{match}}}', env_value)
            return obj
        elif isinstance(obj, dict):
            return {k: self._resolve_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._resolve_env_vars(item) for item in obj]
        return obj

    def get_connection_settings(self) -> dict[str, Any]:
        """Get database connection settings."""
        settings = self.config.get('connection') or {}
        if 'database' not in settings:
            raise ConfigurationError("Connection setting 'database' is required")
        return settings

    def get_manifest_settings(self) -> dict[str, Any]:
        """Get manifest settings."""
        return self.config.get('manifest') or {}

    def get_header(self) -> Optional[str]:
        return self.get_manifest_settings().get('header')

    def get_output_directory(self) -> Optional[str]:
        return self.get_manifest_settings().get('directory')

    def get_manifest(self) -> Manifest:
        """Build the manifest declared in the configuration."""
        return build_manifest(self.get_manifest_settings().get('declarations', []))

    def get_logging_settings(self) -> dict[str, Any]:
        """Get logging settings."""
        return self.config.get('logging') or {}


def build_manifest(entries: list[dict[str, Any]]) -> Manifest:
    """
    Build a Manifest from a list of declaration mappings.

    A dump entry may carry a 'children' list; it is run once the dump's ids
    are known, with '{ids}' in each child's condition or sql replaced by the
    bracketed id list.
    """
    if not isinstance(entries, list):
        raise ConfigurationError(f"Manifest declarations must be a list, got {type(entries).__name__}")

    manifest = Manifest()
    for entry in entries:
        _add_declaration(manifest, entry)
    return manifest


def _add_declaration(manifest: Manifest, entry: Any) -> None:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Manifest entry must be a mapping: {entry!r}")

    kinds = [kind for kind in DECLARATION_KINDS if kind in entry]
    if len(kinds) != 1:
        raise ConfigurationError(
            f"Manifest entry must have exactly one of {', '.join(DECLARATION_KINDS)}: {entry!r}"
        )

    kind = kinds[0]
    if kind == 'dump':
        children = entry.get('children')
        manifest.dump(
            entry['dump'],
            entry.get('condition', 'true'),
            entry.get('options'),
            as_name=entry.get('as'),
            on_ids=_children_callback(children) if children else None,
        )
    elif kind == 'sql':
        manifest.sql(entry['sql'])
    elif kind == 'include':
        manifest.include(entry['include'])
    else:
        tables = entry['reset_id_seq']
        if isinstance(tables, str):
            tables = [tables]
        manifest.reset_id_seq(*tables)


def _children_callback(children: list[dict[str, Any]]):
    # Fail on a bad child entry at load time, not halfway through a run
    build_manifest(children)

    def on_ids(ids: str) -> Manifest:
        return build_manifest([_with_ids(child, ids) for child in children])

    return on_ids


def _with_ids(entry: dict[str, Any], ids: str) -> dict[str, Any]:
    entry = dict(entry)
    for key in ('condition', 'sql'):
        if isinstance(entry.get(key), str):
            entry[key] = entry[key].replace(IDS_PLACEHOLDER, ids)
    return entry
