# dac/config.py
"""
Configuration management.
Supports YAML configuration files holding global settings and table definitions.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, List

from .defaults import settings
from .table import Table
from .validation import rule_from_config

try:
    import yaml
except ImportError:
    raise ImportError("PyYAML is required. Install with: pip install PyYAML")

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Manage dac configuration from YAML files.

    ConfigManager loads a YAML file with two optional sections: ``settings``,
    merged into the global :data:`dac.defaults.settings`, and ``tables``,
    column definitions from which :class:`~dac.table.Table` objects are built.

    Configuration File Structure
    ----------------------------
    ::

        # dac.yml
        settings:
          validation_error_format: "{title}: {error}"
          logging:
            directory: ./logs
            level: DEBUG

        tables:
          users:
            id: {primary_key: true, auto_inc: true}
            name: {title: Name, validations: [required, {length: [1, 50]}]}
            email: {validations: [email, unique]}
            status: {default: active, read_only: true}

    Configuration Locations
    -----------------------
    When no file is given, ConfigManager looks for, in order:

    1. ``./dac.yml``
    2. ``./dac.yaml``
    3. ``~/.config/dac.yml``
    4. ``~/.config/dac.yaml``

    If none exists the built-in defaults are used unchanged.

    Example
    -------
    ::

        from dac.config import ConfigManager

        config_mgr = ConfigManager('/etc/dac/production.yml')
        users = config_mgr.get_table('users')
        fmt = config_mgr.get_setting('validation_error_format')
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize config manager and load configuration.

        Raises
        ------
        FileNotFoundError
            If ``config_file`` is given and does not exist
        ValueError
            If the config file is invalid or malformed
        """
        self.config_file = self._find_config_file(config_file)
        if self.config_file is None:
            logger.debug("No config file found, using default settings")
            self.config = {}
        else:
            self.config = self._load_config()

        # Apply global settings
        self._apply_settings()

    def _find_config_file(self, config_file: Optional[str]) -> Optional[Path]:
        """Find the configuration file."""
        if config_file:
            path = Path(config_file)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {config_file}")
            return path

        candidates = [
            Path("dac.yml"),
            Path("dac.yaml"),
            Path.home() / ".config" / "dac.yml",
            Path.home() / ".config" / "dac.yaml"
        ]
        for candidate in candidates:
            if candidate.exists():
                return candidate
        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load and validate configuration file."""
        try:
            with open(self.config_file, 'r') as f:
                config = yaml.safe_load(f) or {}
            if not isinstance(config, dict):
                raise ValueError(f"Invalid config file {self.config_file}.")

            if 'settings' in config and not isinstance(config['settings'], dict):
                raise ValueError(f"Invalid config file {self.config_file}: 'settings' must be a dictionary")

            if 'tables' in config:
                if not isinstance(config['tables'], dict):
                    raise ValueError(f"Invalid config file {self.config_file}: 'tables' must be a dictionary")
                for name, columns in config['tables'].items():
                    if not isinstance(columns, dict):
                        raise ValueError(f"Invalid table '{name}' in {self.config_file}: columns must be a dictionary")

            logger.info(f"Loaded config from {self.config_file}")
            return config
        except Exception as e:
            raise ValueError(f"Failed to load config file {self.config_file}: {e}")

    def _apply_settings(self) -> None:
        """Apply global settings from config, merging nested sections."""
        _merge_settings(settings, self.config.get('settings', {}))

    def get_setting(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Values from the config file win over built-in defaults.

        Args:
            key: Setting key (supports dot notation like 'logging.level')
            default: Default value if key not found

        Example:
            level = config.get_setting('logging.level', 'INFO')
        """
        value = settings
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set_setting(self, key: str, value: Any) -> None:
        """
        Set a setting value and save config.

        Args:
            key: Setting key (supports dot notation)
            value: Setting value
        """
        if self.config_file is None:
            raise ValueError("No config file loaded, cannot save settings")
        config_settings = self.config.setdefault('settings', {})

        keys = key.split('.')
        current = config_settings
        for k in keys[:-1]:
            current = current.setdefault(k, {})

        current[keys[-1]] = value
        self._save_config()

        # Re-apply settings
        self._apply_settings()

    def list_tables(self) -> List[str]:
        return list(self.config.get('tables', {}).keys())

    def get_table(self, name: str) -> Table:
        """
        Build a Table from its definition in the ``tables`` section.

        Rule names in ``validations`` are resolved with
        :func:`dac.validation.rule_from_config`.

        Raises:
            ValueError: If the table is not defined or a rule is unknown
        """
        tables = self.config.get('tables', {})
        if name not in tables:
            raise ValueError(f"Table '{name}' not found in config")
        columns = {}
        for col, col_def in tables[name].items():
            col_def = dict(col_def or {})
            if 'validations' in col_def:
                col_def['validations'] = [rule_from_config(rule) for rule in col_def['validations']]
            columns[col] = col_def
        return Table(name, columns)

    def _save_config(self) -> None:
        """Save config with consistent key ordering."""
        ordered_config = {}

        # Settings first
        if 'settings' in self.config:
            ordered_config['settings'] = self.config['settings']

        # Tables last, sorted by name; column order is significant and kept
        if 'tables' in self.config:
            ordered_config['tables'] = dict(sorted(self.config['tables'].items()))

        with open(self.config_file, 'w') as f:
            yaml.safe_dump(ordered_config, f, default_flow_style=False, sort_keys=False)


def _merge_settings(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_settings(target[key], value)
        else:
            target[key] = value


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def _get_manager(config_file: Optional[str] = None) -> ConfigManager:
    global _config_manager

    # Use provided config file or global instance
    if config_file:
        return ConfigManager(config_file)
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def set_config_file(config_file: str) -> None:
    """Set the configuration file to use globally."""
    global _config_manager
    _config_manager = ConfigManager(config_file)


def get_setting(key: str, default: Any = None, config_file: Optional[str] = None) -> Any:
    """
    Get a setting value from configuration.

    Args:
        key: Setting key (supports dot notation like 'logging.level')
        default: Default value if key not found
        config_file: Optional path to config file

    Example:
        fmt = get_setting('validation_error_format')
    """
    return _get_manager(config_file).get_setting(key, default)


def get_table(name: str, config_file: Optional[str] = None) -> Table:
    """
    Build a Table defined in configuration.

    Example:
        users = get_table('users')
        users.insert(db, {'name': 'Sokka'})
    """
    return _get_manager(config_file).get_table(name)
