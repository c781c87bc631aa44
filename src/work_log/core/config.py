"""Configuration management for the work log."""

import copy
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

DEFAULT_HOME = Path.home() / ".work-log"

TIME_FORMATS = ["m", "minutes", "ma", "minutes-approx", "h", "hours", "hr", "human-readable"]


class ConfigManager:
    """Manage application configuration."""

    DEFAULT_CONFIG = {
        "version": "1.0",
        "general": {
            "log_file": "~/.work-log/work.log",
            "week_start": "monday",
        },
        "display": {
            "time_format": "human-readable",
            "color": True,
        },
        "advanced": {
            "log_level": "WARNING",
        },
    }

    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "version": {"type": "string"},
            "general": {
                "type": "object",
                "properties": {
                    "log_file": {"type": "string", "minLength": 1},
                    "week_start": {"type": "string", "enum": ["monday", "sunday"]},
                },
            },
            "display": {
                "type": "object",
                "properties": {
                    "time_format": {"type": "string", "enum": TIME_FORMATS},
                    "color": {"type": "boolean"},
                },
            },
            "advanced": {
                "type": "object",
                "properties": {
                    "log_level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR"],
                    },
                },
            },
        },
        "required": ["version"],
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file. Defaults to ~/.work-log/config.yml
        """
        if config_path is None:
            config_path = self.default_path()
        self.config_path = Path(config_path).expanduser()
        self._config: dict[str, Any] = {}
        self._load_or_create()

    @staticmethod
    def default_path() -> Path:
        """Default location of the configuration file."""
        return DEFAULT_HOME / "config.yml"

    def _load_or_create(self) -> None:
        """Load existing config or create default."""
        if self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f) or {}
            if not isinstance(loaded_config, dict):
                raise ValueError(f"Invalid configuration in {self.config_path}: not a mapping")
            # Merge with defaults to ensure all keys exist
            self._config = self._merge_with_defaults(loaded_config)
            self.validate()
        else:
            self._config = copy.deepcopy(self.DEFAULT_CONFIG)
            self.save()

    def _merge_with_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """Merge config with defaults to ensure all keys exist.

        Args:
            config: User configuration

        Returns:
            Merged configuration with all default keys
        """
        result = copy.deepcopy(self.DEFAULT_CONFIG)
        self._deep_merge(result, config)
        return result

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> None:
        """Deep merge override into base dictionary (in-place)."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., 'general.week_start')
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get('display.time_format')
            'human-readable'
            >>> config.get('nonexistent.key', 'default')
            'default'
        """
        keys = key.split(".")
        value: Any = self._config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
            if value is None:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation.

        The previous configuration is kept if the new value does not validate.

        Raises:
            ValueError: If configuration is invalid after setting
        """
        previous = copy.deepcopy(self._config)
        keys = key.split(".")
        config = self._config
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value
        try:
            self.validate()
        except ValueError:
            self._config = previous
            raise
        self.save()

    def validate(self) -> bool:
        """Validate configuration against schema.

        Returns:
            True if valid

        Raises:
            ValueError: If configuration is invalid
        """
        try:
            validate(instance=self._config, schema=self.CONFIG_SCHEMA)
            return True
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e.message}")

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    def reset(self) -> None:
        """Reset to default configuration."""
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.save()

    def to_dict(self) -> dict[str, Any]:
        """Get full configuration as dictionary."""
        return copy.deepcopy(self._config)

    @property
    def log_file(self) -> Path:
        """Location of the work log, with ``~`` expanded."""
        return Path(self.get("general.log_file")).expanduser()
