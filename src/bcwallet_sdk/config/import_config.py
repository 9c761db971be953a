"""
Configuration for wallet imports

Settings load from a JSON document of the form::

    {
      "network": "mainnet",
      "default_v1_iterations": 10,
      "default_second_password_iterations": 10,
      "verify_second_password_hash": true,
      "storage": {"backend": "memory", "storage_dir": null, "use_keyring": true},
      "logging": {"level": "INFO", "structured": false}
    }

Every key is optional; missing keys take the defaults shown.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..crypto.keys import SUPPORTED_NETWORKS, NetworkParameters, get_network
from ..exceptions import ConfigError

SUPPORTED_STORAGE_BACKENDS = ['memory', 'secure']
SUPPORTED_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

DEFAULT_CONFIG_PATHS = [
    Path("bcwallet-import.json"),
    Path.home() / ".config" / "bcwallet" / "import.json",
]


@dataclass
class StorageConfig:
    """Key store selection"""
    backend: str = 'memory'
    storage_dir: Optional[str] = None
    use_keyring: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = 'INFO'
    structured: bool = False


@dataclass
class ImportConfig:
    """Wallet import configuration"""
    network: str = 'mainnet'
    default_v1_iterations: int = 10
    default_second_password_iterations: int = 10
    verify_second_password_hash: bool = True
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.network not in SUPPORTED_NETWORKS:
            raise ConfigError(f"Unsupported network: {self.network}", "INVALID_NETWORK")
        for name in ('default_v1_iterations', 'default_second_password_iterations'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigError(f"{name} must be a positive integer", "INVALID_ITERATIONS")
        if self.storage.backend not in SUPPORTED_STORAGE_BACKENDS:
            raise ConfigError(f"Unsupported storage backend: {self.storage.backend}", "INVALID_STORAGE_BACKEND")
        level = self.logging.level
        if not isinstance(level, str) or level.upper() not in SUPPORTED_LOG_LEVELS:
            raise ConfigError(f"Unsupported log level: {level!r}", "INVALID_LOG_LEVEL")

    @property
    def network_parameters(self) -> NetworkParameters:
        return get_network(self.network)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImportConfig':
        """Build configuration from a parsed JSON object"""
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object", "INVALID_FORMAT")
        try:
            values = dict(data)
            values['storage'] = StorageConfig(**(values.get('storage') or {}))
            values['logging'] = LoggingConfig(**(values.get('logging') or {}))
            return cls(**values)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration format: {e}", "INVALID_FORMAT") from e

    @classmethod
    def from_json(cls, json_string: str) -> 'ImportConfig':
        """Load configuration from JSON string"""
        try:
            data = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse configuration JSON: {e}", "PARSE_ERROR") from e
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'ImportConfig':
        """Load configuration from file"""
        try:
            with open(Path(file_path), 'r', encoding='utf-8') as f:
                json_string = f.read()
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}", "FILE_ERROR") from e
        return cls.from_json(json_string)


def load_import_config(file_path: Optional[Union[str, Path]] = None) -> ImportConfig:
    """
    Load configuration from ``file_path``, else from the first default
    location that exists, else return defaults
    """
    if file_path is not None:
        return ImportConfig.from_file(file_path)

    for path in DEFAULT_CONFIG_PATHS:
        if path.exists():
            return ImportConfig.from_file(path)

    return ImportConfig()
