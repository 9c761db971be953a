"""
Configuration management for the Blockchain wallet import SDK
"""

from .import_config import (
    ImportConfig,
    StorageConfig,
    LoggingConfig,
    load_import_config,
    SUPPORTED_STORAGE_BACKENDS,
    SUPPORTED_LOG_LEVELS,
)

__all__ = [
    'ImportConfig',
    'StorageConfig',
    'LoggingConfig',
    'load_import_config',
    'SUPPORTED_STORAGE_BACKENDS',
    'SUPPORTED_LOG_LEVELS',
]
