"""
autosave Configuration

Loads autosave.toml; environment variables override TOML values.
"""

from .loader import (
    AutosaveConfig,
    LoggingConfig,
    PipelineConfig,
    RoundUpConfig,
    SubscriptionConfig,
    load_config,
)

__all__ = [
    "AutosaveConfig",
    "LoggingConfig",
    "PipelineConfig",
    "RoundUpConfig",
    "SubscriptionConfig",
    "load_config",
]
