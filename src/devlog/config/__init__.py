"""Configuration management for devlog.

Hierarchical YAML configuration with system, user and project layers plus
DEVLOG_* environment overrides.

Example usage:
    from devlog.config import load_config

    config = load_config(root="/path/to/devlog")
    print(config.lease.duration_minutes)
"""

from devlog.config.loader import deep_merge, dict_to_config, load_config
from devlog.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from devlog.config.schema import (
    Config,
    LeaseConfig,
    LoggingConfig,
    StorageConfig,
    TrackingConfig,
)

__all__ = [
    "Config",
    "LeaseConfig",
    "LoggingConfig",
    "StorageConfig",
    "TrackingConfig",
    "deep_merge",
    "dict_to_config",
    "load_config",
    "get_config_paths",
    "get_project_config_path",
    "get_system_config_path",
    "get_user_config_path",
]
