"""
load the config from config.yaml and environment variables
"""

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    def __init__(self, config_path: str = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, looks for config.yaml
                        in the same directory as this module.
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        self.config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(config, dict):
            raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            'RAWCLIENT_HOST': ('server', 'host'),
            'RAWCLIENT_PORT': ('server', 'port'),
            'RAWCLIENT_PATH': ('request', 'path'),
            'RAWCLIENT_METHOD': ('request', 'method'),
            'RAWCLIENT_CONTENT_TYPE': ('request', 'content_type'),
            'RAWCLIENT_CONNECT_TIMEOUT': ('timeouts', 'connect'),
            'RAWCLIENT_RECEIVE_TIMEOUT': ('timeouts', 'receive'),
            'LOG_LEVEL': ('logging', 'level'),
            'LOG_FORMAT': ('logging', 'format'),
        }

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get configuration value by nested keys.

        Args:
            *keys: Configuration keys (e.g., 'server', 'host')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def server(self) -> Dict[str, Any]:
        """Get target server configuration."""
        return self.get('server', default={})

    @property
    def request(self) -> Dict[str, Any]:
        """Get default request configuration."""
        return self.get('request', default={})

    @property
    def timeouts(self) -> Dict[str, Any]:
        """Get connect/receive timeout configuration."""
        return self.get('timeouts', default={})

    @property
    def receive(self) -> Dict[str, Any]:
        """Get receive loop configuration."""
        return self.get('receive', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})


@dataclass(frozen=True)
class ClientSettings:
    """Everything one run of the pipeline needs, resolved from Config and flags."""
    host: str = "localhost"
    port: int = 80
    path: str = "/"
    method: str = "GET"
    body: Optional[str] = None
    content_type: str = "text/plain"
    connect_timeout: float = 60.0
    receive_timeout: Optional[float] = None
    interactive_receive_timeout: float = 60.0
    chunk_size: int = 4096
    connection_close: bool = True
    trailing_crlf: bool = False

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "ClientSettings":
        """Build settings from a Config; keyword overrides that are None are ignored."""
        defaults = cls()
        settings = cls(
            host=str(config.server.get('host', defaults.host)),
            port=int(config.server.get('port', defaults.port)),
            path=str(config.request.get('path', defaults.path)),
            method=str(config.request.get('method', defaults.method)).upper(),
            body=_body_text(config.request.get('body', defaults.body)),
            content_type=str(config.request.get('content_type', defaults.content_type)),
            connect_timeout=float(config.timeouts.get('connect', defaults.connect_timeout)),
            receive_timeout=_optional_float(config.timeouts.get('receive', defaults.receive_timeout)),
            interactive_receive_timeout=float(
                config.timeouts.get('interactive_receive', defaults.interactive_receive_timeout)),
            chunk_size=int(config.receive.get('chunk_size', defaults.chunk_size)),
            connection_close=bool(config.request.get('connection_close', defaults.connection_close)),
            trailing_crlf=bool(config.request.get('trailing_crlf', defaults.trailing_crlf)),
        )
        return replace(settings, **{key: value for key, value in overrides.items() if value is not None})


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _body_text(value) -> Optional[str]:
    # unquoted YAML bodies arrive as mappings, lists or scalars; send them as JSON
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, default=str)
