"""
Configuration management for the album arranger.

This module handles loading and validating configuration from YAML files
with sensible defaults and environment variable support, and builds the
immutable run options that are passed to every pipeline component.
"""

import json
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from utils.exceptions import ConfigurationError


ENV_PREFIX = "ARRANGE_"


@dataclass
class LoggingSection:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class FilesystemSection:
    # Entries skipped while listing a directory (OS and NAS junk)
    ignored_names: list = field(default_factory=lambda: [
        '.DS_Store', 'Thumbs.db', 'desktop.ini', '@eaDir'
    ])


@dataclass
class RelocationSection:
    unsafe_char_replacement: str = "_"


@dataclass
class OptionsSection:
    remove_source: bool = False
    fix_tags: bool = True
    output_to_destdir: bool = True
    guess_year: bool = False


@dataclass
class ArrangeConfig:
    """Structured configuration class with defaults."""

    logging: LoggingSection = field(default_factory=LoggingSection)
    filesystem: FilesystemSection = field(default_factory=FilesystemSection)
    relocation: RelocationSection = field(default_factory=RelocationSection)
    options: OptionsSection = field(default_factory=OptionsSection)


@dataclass(frozen=True)
class ArrangeOptions:
    """
    Immutable per-run options.

    Built once from the configuration and command line, then handed to the
    validator, the relocation planner and the orchestrator.
    """

    remove_source: bool = False
    fix_tags: bool = True
    output_to_destdir: bool = True
    guess_year: bool = False
    unsafe_char_replacement: str = "_"
    ignored_names: frozenset = frozenset()

    @property
    def relocate(self) -> bool:
        """Whether validated albums are moved into the destination tree."""
        return self.fix_tags and self.output_to_destdir

    @classmethod
    def from_config(cls, config: Dict[str, Any], **overrides) -> "ArrangeOptions":
        """
        Build run options from a loaded configuration dictionary.

        Args:
            config: Dictionary returned by load_config()
            **overrides: Values taking precedence over the configuration
                (typically command line switches); None values are ignored

        Returns:
            ArrangeOptions instance
        """
        options = config.get('options', {})
        values = {
            'remove_source': bool(options.get('remove_source', False)),
            'fix_tags': bool(options.get('fix_tags', True)),
            'output_to_destdir': bool(options.get('output_to_destdir', True)),
            'guess_year': bool(options.get('guess_year', False)),
            'unsafe_char_replacement': config.get('relocation', {}).get('unsafe_char_replacement', '_'),
            'ignored_names': frozenset(config.get('filesystem', {}).get('ignored_names', [])),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file with defaults and environment variable support.

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config_dict = _dataclass_to_dict(ArrangeConfig())

    if config_path and config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f)
                if file_config:
                    if not isinstance(file_config, dict):
                        raise ConfigurationError(
                            f"Config file {config_path} must contain a mapping at the top level"
                        )
                    config_dict = _merge_configs(config_dict, file_config)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except IOError as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}")

    config_dict = _apply_env_overrides(config_dict)

    _validate_config(config_dict)

    return config_dict


def _dataclass_to_dict(obj) -> Dict[str, Any]:
    """Convert dataclass to dictionary recursively."""
    if hasattr(obj, '__dataclass_fields__'):
        result = {}
        for field_name in obj.__dataclass_fields__:
            value = getattr(obj, field_name)
            result[field_name] = _dataclass_to_dict(value)
        return result
    elif isinstance(obj, dict):
        return {k: _dataclass_to_dict(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_dataclass_to_dict(item) for item in obj]
    else:
        return obj


def _merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge configuration dictionaries.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Environment variables should be prefixed with ARRANGE_ and use
    double underscores to represent nested keys.

    Examples:
        ARRANGE_LOGGING__LEVEL=DEBUG
        ARRANGE_OPTIONS__GUESS_YEAR=true
    """
    for env_var, value in os.environ.items():
        if not env_var.startswith(ENV_PREFIX):
            continue

        key_path = env_var[len(ENV_PREFIX):].lower().split('__')
        _set_nested_value(config, key_path, _convert_env_value(value))

    return config


def _convert_env_value(value: str) -> Any:
    """Convert environment variable string to appropriate Python type."""
    if value.lower() in ('true', 'yes', 'on'):
        return True
    elif value.lower() in ('false', 'no', 'off'):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    # JSON/List values (if starts with [ or {)
    if value.startswith(('[', '{')):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def _set_nested_value(config: Dict[str, Any], key_path: list, value: Any):
    """Set a value in a nested dictionary using a list of keys."""
    current = config

    for key in key_path[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[key_path[-1]] = value


def _validate_config(config: Dict[str, Any]):
    """
    Validate configuration values.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ConfigurationError: If configuration is invalid
    """
    logging_config = config.get('logging', {})

    log_level = logging_config.get('level', 'INFO')
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if not isinstance(log_level, str) or log_level.upper() not in valid_levels:
        raise ConfigurationError(f"logging.level must be one of {valid_levels}")

    filesystem_config = config.get('filesystem', {})

    ignored_names = filesystem_config.get('ignored_names', [])
    if not isinstance(ignored_names, list) or not all(isinstance(n, str) for n in ignored_names):
        raise ConfigurationError("filesystem.ignored_names must be a list of strings")

    relocation_config = config.get('relocation', {})

    replacement = relocation_config.get('unsafe_char_replacement', '_')
    if not isinstance(replacement, str) or '/' in replacement or '\\' in replacement:
        raise ConfigurationError(
            "relocation.unsafe_char_replacement must be a string without path separators"
        )

    options_config = config.get('options', {})
    for name in ('remove_source', 'fix_tags', 'output_to_destdir', 'guess_year'):
        if not isinstance(options_config.get(name, False), bool):
            raise ConfigurationError(f"options.{name} must be a boolean")


def get_config_template() -> str:
    """
    Get a YAML template for the configuration file.

    Returns:
        YAML configuration template as string
    """
    return """# Configuration for music-arrange
logging:
  level: INFO
  file: null            # e.g. "~/.cache/music-arrange/arrange.log"

filesystem:
  ignored_names:
    - .DS_Store
    - Thumbs.db
    - desktop.ini
    - "@eaDir"

relocation:
  unsafe_char_replacement: "_"   # replaces / and \\ in artist, album and title

# Defaults for the command line switches
options:
  remove_source: false
  fix_tags: true
  output_to_destdir: true
  guess_year: false
"""
