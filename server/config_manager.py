"""Centralized Configuration Manager.

Provides thread-safe, read-only access to config.json with:
- Automatic cache invalidation via mtime checking
- Section-based API for clean access patterns
- Schema validation and schema defaults

The file lives at the project root; set ``AA_SLACK_CONFIG`` to point
somewhere else. A missing file is not an error: every key has a default.
Secrets (the bot token) are never read from here.

Usage:
    from server.config_manager import config

    slack_config = config.get("slack")
    interval = config.get_with_default("slack", "min_request_interval")
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Project root (this file is at server/config_manager.py)
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_FILE = Path(os.environ.get("AA_SLACK_CONFIG", PROJECT_ROOT / "config.json"))


# ==================== Config Validation ====================


class ConfigValidationError(Exception):
    """Raised when config validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Config validation failed: {'; '.join(errors)}")


_MISSING = object()

# Format: {section: {key: (type, required, default)}}
CONFIG_SCHEMA: dict[str, dict[str, Any]] = {
    "slack": {
        "base_url": (str, False, "https://slack.com/api"),
        "min_request_interval": ((int, float), False, 1.0),
        "default_retry_after": ((int, float), False, 60.0),
        "max_rate_limit_retries": (int, False, None),
        "max_rate_limit_wait": ((int, float), False, None),
        "timeout": ((int, float), False, 30.0),
    },
}


def _type_name(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def validate_config(config: dict[str, Any], strict: bool = False) -> list[str]:
    """Validate config against schema.

    Args:
        config: Config dict to validate
        strict: If True, fail on unknown sections and keys

    Returns:
        List of validation error messages (empty if valid)
    """
    errors: list[str] = []

    if strict:
        for section in config:
            if section not in CONFIG_SCHEMA:
                errors.append(f"Unknown section: {section}")

    for section, schema in CONFIG_SCHEMA.items():
        if section not in config:
            continue

        section_data = config[section]
        if not isinstance(section_data, dict):
            errors.append(f"Section '{section}' must be a dict, got {type(section_data).__name__}")
            continue

        for key, (expected_type, required, _default) in schema.items():
            if key not in section_data:
                if required:
                    errors.append(f"Missing required key: {section}.{key}")
                continue

            value = section_data[key]
            # bool is an int subclass; reject it explicitly for numeric keys
            if value is not None and (
                isinstance(value, bool) or not isinstance(value, expected_type)
            ):
                errors.append(
                    f"Invalid type for {section}.{key}: expected {_type_name(expected_type)}, "
                    f"got {type(value).__name__}"
                )

        if strict:
            for key in section_data:
                if key not in schema:
                    errors.append(f"Unknown key: {section}.{key}")

    return errors


class ConfigManager:
    """Thread-safe configuration reader.

    Singleton pattern ensures one manager per process.

    Features:
    - Thread-safe: RLock protects all operations
    - Auto-reload: Detects external file changes via mtime
    """

    _instance: "ConfigManager | None" = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        """Singleton pattern - one instance per process."""
        with cls._instance_lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._initialized = False
                cls._instance = instance
            return cls._instance

    def __init__(self):
        """Initialize the config manager (only runs once due to singleton)."""
        if getattr(self, "_initialized", False):
            return

        self._lock = threading.RLock()
        self._cache: dict[str, Any] = {}
        self._last_mtime: float = 0.0
        self._initialized = True

        self._load()

        logger.debug(f"ConfigManager initialized from {CONFIG_FILE}")

    def _load(self) -> None:
        """Load config from disk (internal, no lock)."""
        try:
            if CONFIG_FILE.exists():
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                self._cache = data if isinstance(data, dict) else {}
                self._last_mtime = CONFIG_FILE.stat().st_mtime
                logger.debug(f"Config loaded, {len(self._cache)} sections")
            else:
                self._cache = {}
                self._last_mtime = 0.0
                logger.debug(f"Config file not found: {CONFIG_FILE}, using defaults")
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {CONFIG_FILE}: {e}")
            self._cache = {}
        except OSError as e:
            logger.error(f"Failed to read {CONFIG_FILE}: {e}")
            self._cache = {}

    def _check_reload(self) -> None:
        """Reload if the file was modified externally (internal, no lock)."""
        try:
            if CONFIG_FILE.exists():
                current_mtime = CONFIG_FILE.stat().st_mtime
                if current_mtime > self._last_mtime:
                    logger.info("Config file changed externally, reloading")
                    self._load()
        except OSError:
            pass

    # ==================== Public API ====================

    def get(self, section: str, key: str | None = None, default: Any = None) -> Any:
        """Get a config value.

        Args:
            section: Top-level section name (e.g., "slack")
            key: Optional key within section. If None, returns entire section.
            default: Default value if not found

        Examples:
            config.get("slack")
            config.get("slack", "timeout", 30.0)
        """
        with self._lock:
            self._check_reload()

            section_data = self._cache.get(section)
            if section_data is None:
                return default

            if key is None:
                return section_data

            if isinstance(section_data, dict):
                return section_data.get(key, default)

            return default

    def get_with_default(self, section: str, key: str) -> Any:
        """Get a config value, falling back to schema default.

        Returns:
            Config value, schema default, or None
        """
        value = self.get(section, key, _MISSING)
        if value is not _MISSING:
            return value

        spec = CONFIG_SCHEMA.get(section, {}).get(key)
        if isinstance(spec, tuple) and len(spec) >= 3:
            return spec[2]

        return None

    def reload(self) -> None:
        """Force reload config from disk."""
        with self._lock:
            self._load()

    @property
    def config_file(self) -> Path:
        return CONFIG_FILE

    def validate(self, strict: bool = False) -> list[str]:
        """Validate the current config against the schema."""
        with self._lock:
            self._check_reload()
            return validate_config(self._cache, strict=strict)

    def validate_or_raise(self, strict: bool = False) -> None:
        """Validate config and raise exception if invalid.

        Raises:
            ConfigValidationError: If validation fails
        """
        errors = self.validate(strict=strict)
        if errors:
            raise ConfigValidationError(errors)


# Global singleton instance for convenient access
config = ConfigManager()
