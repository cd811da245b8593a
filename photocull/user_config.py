"""
User configuration management for photocull.

Each setting is resolved in this order:
1. Runtime parameters (command-line flags; handled by the caller)
2. Environment variables (PHOTOCULL_*)
3. User config file (~/.photocull/config.json, or $PHOTOCULL_CONFIG_DIR)
4. Defaults from config.py

Example config.json:
{
    "near_threshold": 0.1,
    "workers": 4,
    "hash_size": 16,
    "history_file": null,
    "cache_db_file": null,
    "quarantine_dir": null,
    "excluded_dirs": ["duplicates"]
}
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from .config import (
    CACHE_DB_FILE,
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_HASH_SIZE,
    DEFAULT_NEAR_THRESHOLD,
    DEFAULT_QUARANTINE_DIR,
    DEFAULT_WORKERS,
    HISTORY_FILE,
)

logger = logging.getLogger(__name__)


def _name_list(value: Any) -> tuple[str, ...]:
    """
    Directory names from a JSON list or a comma-separated string.

    Examples:
        >>> _name_list("duplicates, trash")
        ('duplicates', 'trash')
    """
    if isinstance(value, str):
        value = value.split(',')
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"expected a list of directory names, got {type(value).__name__}")
    return tuple(str(name).strip() for name in value if str(name).strip())


class _Setting:
    """
    Typed, read-only configuration property.

    A value that cannot be converted (e.g. PHOTOCULL_WORKERS=lots) is
    logged and replaced by the default instead of failing at use time.
    Range checks are left to the validators. Settings cast with str take
    the environment value verbatim, so a path is never read as JSON.
    """

    def __init__(self, env_var: str, default: Any, cast: Callable[[Any], Any], doc: str):
        self.env_var = env_var
        self.default = default
        self.cast = cast
        self.__doc__ = doc
        self.key = ''

    def __set_name__(self, owner, name):
        self.key = name

    def __get__(self, config: Optional['UserConfig'], owner=None):
        if config is None:
            return self
        value = config.get(self.key, env_var=self.env_var, parse_json=self.cast is not str)
        if value is None or value == '':
            return self.default
        try:
            return self.cast(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid {self.key} setting {value!r}, using {self.default!r}")
            return self.default


class UserConfig:
    """
    Settings from the environment and the user config file.

    Singleton; the config file is read on first access and cached until
    reload(). Environment variables are read on every access.
    """

    _instance: Optional['UserConfig'] = None
    _config_data: Optional[dict] = None

    near_threshold = _Setting(
        'PHOTOCULL_NEAR_THRESHOLD', DEFAULT_NEAR_THRESHOLD, float,
        "Normalized perceptual distance for near-duplicates (0.0-1.0).",
    )
    workers = _Setting(
        'PHOTOCULL_WORKERS', DEFAULT_WORKERS, int,
        "Number of parallel hashing workers.",
    )
    hash_size = _Setting(
        'PHOTOCULL_HASH_SIZE', DEFAULT_HASH_SIZE, int,
        "Perceptual hash size (bits = hash_size ** 2).",
    )
    history_file = _Setting(
        'PHOTOCULL_HISTORY_FILE', HISTORY_FILE, str,
        "Path to the history log.",
    )
    cache_db_file = _Setting(
        'PHOTOCULL_CACHE_DB', CACHE_DB_FILE, str,
        "Path to the hash cache database.",
    )
    quarantine_dir = _Setting(
        'PHOTOCULL_QUARANTINE_DIR', DEFAULT_QUARANTINE_DIR, str,
        "Default quarantine directory for moves.",
    )
    excluded_dirs = _Setting(
        'PHOTOCULL_EXCLUDED_DIRS', DEFAULT_EXCLUDED_DIRS, _name_list,
        "Directory names skipped during scans.",
    )

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def settings(cls) -> list[str]:
        """Names of all settings, in declaration order."""
        return [name for name, attr in vars(cls).items() if isinstance(attr, _Setting)]

    @property
    def config_dir(self) -> Path:
        env_dir = os.getenv('PHOTOCULL_CONFIG_DIR')
        return Path(env_dir) if env_dir else Path.home() / '.photocull'

    @property
    def config_file_path(self) -> Path:
        return self.config_dir / 'config.json'

    def _load_config_file(self) -> dict:
        path = self.config_file_path
        if not path.exists():
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config file {path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {path}: expected a JSON object")
            return {}

        unknown = sorted(k for k in data if k not in self.settings() and not k.startswith('_'))
        if unknown:
            logger.warning(f"Unknown settings in {path}: {', '.join(unknown)}")
        logger.debug(f"Loaded configuration from {path}")
        return data

    def reload(self):
        """Forget the cached config file contents."""
        self._config_data = None

    def get(
        self,
        key: str,
        default: Any = None,
        env_var: Optional[str] = None,
        parse_json: bool = True,
    ) -> Any:
        """
        Look up a raw value: environment variable, then config file, then default.

        Environment values are parsed as JSON when possible, so "4" becomes
        4 and "null" becomes None; anything else is returned as a string.
        With parse_json=False the environment value is returned unchanged.
        """
        if env_var:
            env_value = os.getenv(env_var)
            if env_value is not None:
                if not parse_json:
                    return env_value
                try:
                    return json.loads(env_value)
                except json.JSONDecodeError:
                    return env_value

        if self._config_data is None:
            self._config_data = self._load_config_file()
        return self._config_data.get(key, default)

    def as_dict(self) -> dict:
        """Effective settings, for display."""
        return {name: getattr(self, name) for name in self.settings()}

    def create_example_config(self) -> bool:
        """
        Write a config.json listing every setting.

        Numeric and list settings are filled with their defaults; path
        settings are null, meaning "use the default location".

        Returns:
            True if the file was written
        """
        example: dict[str, Any] = {"_comment": "photocull user configuration"}
        for name in self.settings():
            default = vars(UserConfig)[name].default
            if isinstance(default, tuple):
                example[name] = list(default)
            else:
                example[name] = default if isinstance(default, (int, float)) else None

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, 'w', encoding='utf-8') as f:
                json.dump(example, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to create example config: {e}")
            return False

        logger.info(f"Created example config file at {self.config_file_path}")
        return True


_user_config = UserConfig()


def get_user_config() -> UserConfig:
    """Get the global UserConfig instance."""
    return _user_config
