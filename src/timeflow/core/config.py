"""Configuration management for TimeFlow."""

import copy
import getpass
import secrets
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]


class ConfigManager:
    """Manage application configuration."""

    DEFAULT_CONFIG = {
        "version": "1.0",
        "general": {
            "data_dir": "~/.timeflow/data",
            "user_id": None,
        },
        "timer": {
            "tick_interval": 1.0,
            "resync_factor": 1.5,
            "default_billable": True,
            "title": "TimeFlow",
        },
        "storage": {
            "structured_backend": True,
        },
        "advanced": {
            "log_level": "WARNING",
        },
        "api": {
            "enabled": False,
            "host": "localhost",
            "port": 8000,
            "authentication": {
                "enabled": True,
                "token_expiry_hours": 24,
                "secret_key": None,
            },
            "cors": {
                "enabled": True,
                "origins": ["http://localhost:3000", "http://localhost:5173"],
            },
            "advanced": {
                "log_level": "info",
                "access_log": True,
            },
        },
    }

    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "version": {"type": "string"},
            "general": {
                "type": "object",
                "properties": {
                    "data_dir": {"type": "string"},
                    "user_id": {"type": ["string", "null"]},
                },
            },
            "timer": {
                "type": "object",
                "properties": {
                    "tick_interval": {"type": "number", "exclusiveMinimum": 0, "maximum": 60},
                    "resync_factor": {"type": "number", "minimum": 1},
                    "default_billable": {"type": "boolean"},
                    "title": {"type": "string"},
                },
            },
            "storage": {
                "type": "object",
                "properties": {
                    "structured_backend": {"type": "boolean"},
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
            "api": {
                "type": "object",
                "properties": {
                    "enabled": {"type": "boolean"},
                    "host": {"type": "string"},
                    "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                    "authentication": {
                        "type": "object",
                        "properties": {
                            "enabled": {"type": "boolean"},
                            "token_expiry_hours": {
                                "type": "integer",
                                "minimum": 1,
                                "maximum": 8760,
                            },
                            "secret_key": {"type": ["string", "null"]},
                        },
                    },
                    "cors": {
                        "type": "object",
                        "properties": {
                            "enabled": {"type": "boolean"},
                            "origins": {
                                "type": "array",
                                "items": {"type": "string"},
                            },
                        },
                    },
                    "advanced": {
                        "type": "object",
                        "properties": {
                            "log_level": {"type": "string"},
                            "access_log": {"type": "boolean"},
                        },
                    },
                },
            },
        },
        "required": ["version"],
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Load the config file, creating it with defaults when missing.

        Args:
            config_path: Config file location. Defaults to ~/.timeflow/config.yml

        Raises:
            ValueError: If the existing file fails validation; it is moved
                aside to ``config.yml.backup`` and defaults are written instead
        """
        self.config_path = config_path or Path.home() / ".timeflow" / "config.yml"
        self._config: dict[str, Any] = copy.deepcopy(self.DEFAULT_CONFIG)

        if not self.config_path.exists():
            self.save()
            return

        with open(self.config_path, encoding="utf-8") as f:
            _deep_merge(self._config, yaml.safe_load(f) or {})

        try:
            self.validate()
        except ValueError as e:
            backup_path = self.config_path.with_suffix(".yml.backup")
            self.config_path.rename(backup_path)
            self.reset()
            raise ValueError(f"Config validation failed, moved to {backup_path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``timer.tick_interval``.

        Missing keys and null values both yield ``default``.
        """
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Assign a dotted key, then validate and write the file.

        Raises:
            ValueError: If the result does not match the schema
        """
        *parents, leaf = key.split(".")
        node = self._config
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
        self.validate()
        self.save()

    def validate(self) -> bool:
        """Check the loaded values against CONFIG_SCHEMA.

        Raises:
            ValueError: If a value has the wrong type or range
        """
        try:
            validate(instance=self._config, schema=self.CONFIG_SCHEMA)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e.message}")
        return True

    def save(self) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    def reset(self) -> None:
        """Restore and save the defaults."""
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.save()

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._config)

    def ensure_api_secret_key(self) -> str:
        """Return the JWT signing key, generating and saving one on first use."""
        secret_key: Optional[str] = self.get("api.authentication.secret_key")
        if not secret_key:
            secret_key = secrets.token_urlsafe(32)
            self.set("api.authentication.secret_key", secret_key)
        return secret_key

    def get_user_id(self) -> Optional[str]:
        """User time entries are attributed to.

        Returns:
            Configured ``general.user_id`` or the login name, None if neither is known
        """
        user_id: Optional[str] = self.get("general.user_id")
        if user_id:
            return user_id
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return None

    @property
    def data_dir(self) -> Path:
        """Expanded data directory."""
        return Path(self.get("general.data_dir", "~/.timeflow/data")).expanduser()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Merge ``override`` into ``base`` in place, recursing into nested sections."""
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
