"""
Core module for spot-rotator.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs

Usage:
    from spot_rotator.core import (
        Config, load_config,
        setup_logging, get_logger,
        RotatorError, ConfigError, CacheError
    )
"""

from spot_rotator.core.config import (
    CacheConfig,
    Config,
    LoggingConfig,
    RotationConfig,
    ServerConfig,
    SpotifyConfig,
    load_config,
)
from spot_rotator.core.exceptions import (
    CacheError,
    ConfigError,
    InsufficientTracksError,
    ReconcileError,
    RotatorError,
    SpotifyError,
    SummaryError,
)
from spot_rotator.core.logger import (
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "CacheConfig",
    "LoggingConfig",
    "RotationConfig",
    "ServerConfig",
    "load_config",
    # Exceptions
    "RotatorError",
    "ConfigError",
    "SpotifyError",
    "CacheError",
    "SummaryError",
    "InsufficientTracksError",
    "ReconcileError",
    # Logger
    "setup_logging",
    "get_logger",
    "shutdown_logging",
]
