"""
Config system - Typed client configuration with layered loading.

``HypermediaConfig`` is the immutable value object a ``ConnectionManager``
is built with. ``ConfigLoader`` merges config files, ``.env`` files,
environment variables and explicit overrides into one.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Union, get_type_hints, get_origin, get_args
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
import os
import json

from .faults import Fault, FaultDomain


SECURITY_LOG_LEVELS = ("warn", "error")


class ConfigError(Fault):
    """Raised when configuration validation fails."""

    def __init__(self, message: str):
        super().__init__("WS_CONFIG_INVALID", message, domain=FaultDomain.CONFIG)


@dataclass(frozen=True)
class HypermediaConfig:
    """
    Client configuration.

    Durations are integer milliseconds; sizes are counted in characters
    of the decoded text frame.

    Callbacks may be plain callables or coroutine functions:
        on_connect()
        on_disconnect()
        on_error(fault)
        on_message(raw_frame)
    """

    auto_reconnect: bool = True
    reconnect_delay: int = 1000
    max_reconnect_attempts: int = 5
    escape_char: str = "~"
    max_message_size: int = 1024 * 1024
    max_parts: int = 100
    max_json_size: int = 1024 * 1024
    enable_json_validation: bool = False
    enable_security_logging: bool = False
    security_log_level: str = "warn"
    protocol_version: str = "1.1"
    require_version: bool = False
    input_sanitizers: Mapping[str, Callable[[str], str]] = field(default_factory=dict)
    on_connect: Optional[Callable[..., Any]] = None
    on_disconnect: Optional[Callable[..., Any]] = None
    on_error: Optional[Callable[..., Any]] = None
    on_message: Optional[Callable[..., Any]] = None

    def __post_init__(self):
        if not isinstance(self.escape_char, str) or len(self.escape_char) != 1:
            raise ConfigError("escape_char must be a single character")
        if self.escape_char == "|":
            raise ConfigError("escape_char cannot be the field separator '|'")
        if self.security_log_level not in SECURITY_LOG_LEVELS:
            raise ConfigError(
                f"security_log_level must be one of {SECURITY_LOG_LEVELS}, "
                f"got {self.security_log_level!r}"
            )
        for name in ("reconnect_delay", "max_message_size", "max_parts", "max_json_size", "max_reconnect_attempts"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigError(f"{name} must be an integer, got {type(value).__name__}")
        for name in ("reconnect_delay", "max_message_size", "max_parts", "max_json_size"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.max_reconnect_attempts < 0:
            raise ConfigError("max_reconnect_attempts cannot be negative")

    def with_options(self, **options: Any) -> "HypermediaConfig":
        """Return a copy with the given fields replaced."""
        unknown = set(options) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigError(f"Unknown config options: {', '.join(sorted(unknown))}")
        return replace(self, **options)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "WSHM_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list] = None,
        env_prefix: str = "WSHM_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Args:
            paths: Config file paths (.json, .yaml, .yml; glob patterns supported)
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
        """Load config from JSON or YAML files."""
        from glob import glob

        for path_str in sorted(glob(pattern)):
            path = Path(path_str)

            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                if "=" in line:
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip().strip('"').strip("'")

                    if key.startswith(self.env_prefix):
                        self._set_key(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_key(key, value)

    def _set_key(self, key: str, value: str):
        """Convert WSHM_MAX_PARTS to max_parts."""
        key = key[len(self.env_prefix):].lower()
        self.config_data[key] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a loaded value by key."""
        return self.config_data.get(key, default)

    def to_config(self, **overrides: Any) -> HypermediaConfig:
        """
        Build a validated ``HypermediaConfig`` from the loaded data.

        Keys that are not config fields (``url`` for instance) are ignored.

        Raises:
            ConfigError: A value has the wrong type or fails validation
        """
        data = {**self.config_data, **overrides}
        hints = get_type_hints(HypermediaConfig)
        kwargs = {}

        for field_info in fields(HypermediaConfig):
            name = field_info.name
            if name not in data:
                continue

            expected = hints[name]
            value = self._coerce(data[name], expected)

            if not self._check_type(value, expected):
                raise ConfigError(
                    f"Config field '{name}' expected {expected}, "
                    f"got {type(value).__name__}"
                )

            kwargs[name] = value

        return HypermediaConfig(**kwargs)

    def _coerce(self, value: Any, expected_type: Any) -> Any:
        """Undo lossy string parsing (``1.1`` -> ``"1.1"``, ``1`` -> ``True``)."""
        if expected_type is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if expected_type is bool and isinstance(value, int) and value in (0, 1):
            return bool(value)
        if expected_type is int and isinstance(value, bool):
            return int(value)
        return value

    def _check_type(self, value: Any, expected_type: Any) -> bool:
        """Basic type checking."""
        origin = get_origin(expected_type)
        if origin is Union:
            if value is None:
                return True
            return any(self._check_type(value, arg) for arg in get_args(expected_type) if arg is not type(None))

        if expected_type is int and isinstance(value, bool):
            return False

        if origin:
            try:
                return isinstance(value, origin)
            except TypeError:
                return True

        try:
            return isinstance(value, expected_type)
        except TypeError:
            return True

    def to_dict(self) -> dict:
        """Export all loaded values as dictionary."""
        return self.config_data.copy()
