"""Configuration management for Joplin MCP server."""

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 41184
DEFAULT_DISCOVERY_ATTEMPTS = 10
DEFAULT_DISCOVERY_TIMEOUT_MS = 300
TRANSPORTS = ("stdio", "http")
LOG_LEVELS = ("debug", "info", "warning", "error")


class ConfigError(Exception):
    """Configuration-related errors."""

    pass


class ConfigParser:
    """Helper class for parsing configuration values."""

    @staticmethod
    def parse_int(value: str, field_name: str) -> int:
        """Parse integer value from string, with a hint for common mistakes."""
        if "." in value:
            raise ConfigError(
                f"Invalid integer value for {field_name}: '{value}'. Remove decimal point - use whole numbers only"
            )
        try:
            return int(value)
        except ValueError:
            raise ConfigError(
                f"Invalid integer value for {field_name}: '{value}'. Use a numeric value (e.g., '30', '41184')"
            )

    @staticmethod
    def get_env_var(name: str, prefix: str = "JOPLIN_") -> Optional[str]:
        """Get environment variable and strip whitespace."""
        value = os.environ.get(f"{prefix}{name}")
        return value.strip() if value else None


class ConfigValidator:
    """Helper class for configuration validation."""

    @staticmethod
    def validate_host_format(host: str) -> None:
        """Validate host format and provide helpful error messages."""
        if not host or not host.strip():
            raise ConfigError("Host cannot be empty")

        host = host.strip()

        if host.startswith(("http://", "https://")):
            raise ConfigError(
                f"Host should not include protocol, got '{host}'. Use host name only (e.g., '127.0.0.1')"
            )

        if "@" in host:
            raise ConfigError(
                f"Host should not include username, got '{host}'. Use host name only"
            )

        if ":" in host and not (host.startswith("[") and host.endswith("]")):
            parts = host.split(":")
            if len(parts) == 2 and parts[1].isdigit():
                raise ConfigError(
                    f"Host should not include port, got '{host}'. Use the 'port' configuration separately"
                )
            raise ConfigError(
                f"Invalid host format, got '{host}'. Use a valid hostname or IP address"
            )

    @staticmethod
    def validate_token_format(token: Optional[str]) -> None:
        """Validate token format and provide guidance."""
        if not token or not token.strip():
            raise ConfigError(
                "Token is required. Use --token <token> or set JOPLIN_TOKEN "
                "(find it in Joplin: Tools > Options > Web Clipper)"
            )

        if any(c in token for c in ["$", "%", "^", "&", "*", "(", ")", " "]):
            raise ConfigError(
                "Token contains invalid characters. Ensure it's properly copied without spaces or special characters"
            )

    @staticmethod
    def validate_port_range(port: int, field_name: str = "Port") -> None:
        """Validate port is in valid range."""
        if not (1 <= port <= 65535):
            raise ConfigError(f"{field_name} must be between 1 and 65535, got {port}")

    @staticmethod
    def validate_positive(value: int, field_name: str) -> None:
        """Validate a numeric setting is positive."""
        if value <= 0:
            raise ConfigError(f"{field_name} must be positive, got {value}")


@dataclass(frozen=True)
class JoplinMCPConfig:
    """Configuration for Joplin MCP server.

    Instances are immutable; use :meth:`copy` to derive a changed record.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    token: Optional[str] = None
    timeout: int = 60
    discovery_start_port: int = DEFAULT_PORT
    discovery_attempts: int = DEFAULT_DISCOVERY_ATTEMPTS
    discovery_timeout_ms: int = DEFAULT_DISCOVERY_TIMEOUT_MS
    max_pages: int = 1000
    transport: str = "stdio"
    http_host: str = "127.0.0.1"
    http_port: int = 3000
    http_path: str = "/mcp"
    log_level: str = "info"
    log_dir: Optional[str] = None

    # Default configuration paths for auto-discovery
    DEFAULT_CONFIG_PATHS = [
        Path.home() / ".joplin-mcp.json",
        Path.home() / ".joplin-mcp.yaml",
        Path.home() / ".joplin-mcp.yml",
        Path.cwd() / "joplin-mcp.json",
        Path.cwd() / "joplin-mcp.yaml",
        Path.cwd() / "joplin-mcp.yml",
    ]

    # Environment variable name -> field name
    ENV_VARS = {
        "JOPLIN_HOST": "host",
        "JOPLIN_PORT": "port",
        "JOPLIN_TOKEN": "token",
        "JOPLIN_TIMEOUT": "timeout",
        "JOPLIN_MCP_TRANSPORT": "transport",
        "JOPLIN_MCP_HTTP_PORT": "http_port",
        "JOPLIN_MCP_LOG_DIR": "log_dir",
        "LOG_LEVEL": "log_level",
    }

    @classmethod
    def _field_types(cls) -> Dict[str, Any]:
        return {f.name: f.type for f in fields(cls)}

    @classmethod
    def _coerce(cls, name: str, value: Any) -> Any:
        """Convert a raw file/env value into the type of field ``name``."""
        expected = cls._field_types()[name]
        if expected is int or expected == "int":
            if isinstance(value, bool):
                raise ConfigError(
                    f"Invalid data type for '{name}': expected integer, got {type(value)}"
                )
            if isinstance(value, int):
                return value
            if isinstance(value, str):
                return ConfigParser.parse_int(value.strip(), name)
            raise ConfigError(
                f"Invalid data type for '{name}': expected integer, got {type(value)}"
            )
        if not isinstance(value, str):
            raise ConfigError(
                f"Invalid data type for '{name}': expected string, got {type(value)}"
            )
        return value.strip()

    @classmethod
    def from_environment(cls) -> "JoplinMCPConfig":
        """Load configuration from environment variables."""
        return cls(**cls._environment_values())

    @classmethod
    def _environment_values(cls) -> Dict[str, Any]:
        values = {}
        for env_name, field_name in cls.ENV_VARS.items():
            raw = os.environ.get(env_name)
            if raw is None or not raw.strip():
                continue
            value = cls._coerce(field_name, raw)
            if field_name in ("transport", "log_level"):
                value = value.lower()
            values[field_name] = value
        return values

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> "JoplinMCPConfig":
        """Load configuration from a JSON or YAML file."""
        return cls(**cls._file_values(file_path))

    @classmethod
    def _file_values(cls, file_path: Union[str, Path]) -> Dict[str, Any]:
        file_path = Path(file_path)

        if not file_path.exists():
            raise ConfigError(f"Configuration file not found: {file_path}")

        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Error reading configuration file {file_path}: {e}")

        suffix = file_path.suffix.lower()
        if suffix == ".json":
            try:
                data = json.loads(content)
            except json.JSONDecodeError as e:
                raise ConfigError(
                    f"Invalid JSON in file {file_path}: {e}. Please check syntax and fix any formatting errors."
                )
        elif suffix in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError as e:
                raise ConfigError(
                    f"Invalid YAML in file {file_path}: {e}. Please check syntax and fix any formatting errors."
                )
        else:
            raise ConfigError(
                f"Unsupported file format '{file_path.suffix}' for file {file_path}. Use .json, .yaml, or .yml files."
            )

        if not isinstance(data, dict):
            raise ConfigError(
                f"Configuration file {file_path} must contain a dictionary/object, got {type(data)}. Check file format."
            )

        try:
            return cls._validate_file_data(data)
        except ConfigError as e:
            raise ConfigError(f"Error in file {file_path}: {e}")

    @classmethod
    def _validate_file_data(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and convert data types from configuration file.

        Unknown keys are ignored and null values fall back to defaults.
        """
        known = cls._field_types()
        validated = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            validated[key] = cls._coerce(key, value)
        return validated

    @classmethod
    def load(
        cls,
        config_file: Optional[Union[str, Path]] = None,
        env_file: Optional[Union[str, Path]] = None,
        **overrides: Any,
    ) -> "JoplinMCPConfig":
        """Load configuration from every source.

        Priority: overrides (CLI) > environment > env file > config file > defaults.
        ``None`` overrides are ignored so argparse defaults can be passed through.
        """
        values: Dict[str, Any] = {}

        if config_file:
            values.update(cls._file_values(config_file))
        else:
            for path in cls.get_default_config_paths():
                if path.exists():
                    values.update(cls._file_values(path))
                    break

        load_env_file(env_file)
        values.update(cls._environment_values())
        values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**values)

    @classmethod
    def get_default_config_paths(cls) -> List[Path]:
        """Get list of default configuration file paths to search."""
        return list(cls.DEFAULT_CONFIG_PATHS)

    def validate(self) -> None:
        """Validate configuration and raise ConfigError if invalid."""
        ConfigValidator.validate_token_format(self.token)
        ConfigValidator.validate_host_format(self.host)
        ConfigValidator.validate_port_range(self.port)
        ConfigValidator.validate_port_range(self.discovery_start_port, "Discovery start port")
        ConfigValidator.validate_port_range(self.http_port, "HTTP port")
        ConfigValidator.validate_positive(self.timeout, "Timeout")
        ConfigValidator.validate_positive(self.discovery_attempts, "Discovery attempts")
        ConfigValidator.validate_positive(self.discovery_timeout_ms, "Discovery timeout")
        ConfigValidator.validate_positive(self.max_pages, "Max pages")
        if self.transport not in TRANSPORTS:
            raise ConfigError(
                f"Transport must be either 'stdio' or 'http', got '{self.transport}'"
            )
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"Log level must be one of {', '.join(LOG_LEVELS)}, got '{self.log_level}'"
            )

    @property
    def is_valid(self) -> bool:
        """Check if configuration is valid without raising exceptions."""
        try:
            self.validate()
            return True
        except ConfigError:
            return False

    @property
    def base_url(self) -> str:
        """Get the base URL for Joplin API."""
        return f"http://{self.host}:{self.port}"

    def copy(self, **overrides: Any) -> "JoplinMCPConfig":
        """Create a copy of this configuration with optional overrides."""
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary, hiding sensitive data."""
        data = asdict(self)
        data["token"] = "***" if self.token else None
        data["base_url"] = self.base_url
        return data

    def __repr__(self) -> str:
        """String representation, hiding sensitive data."""
        token_display = "***" if self.token else None
        return (
            f"JoplinMCPConfig(host='{self.host}', port={self.port}, "
            f"token={token_display}, timeout={self.timeout}, "
            f"transport='{self.transport}')"
        )


def load_env_file(env_file: Optional[Union[str, Path]] = None) -> bool:
    """Load variables from an env file without overriding the environment.

    Falls back to ``.env`` in the working directory. A missing default file
    is fine; a missing explicit file is an error.
    """
    if env_file:
        path = Path(env_file)
        if not path.exists():
            raise ConfigError(f"Environment file not found: {path}")
    else:
        path = Path.cwd() / ".env"
        if not path.exists():
            return False
    return load_dotenv(path, override=False)
