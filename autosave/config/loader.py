"""
autosave TOML Configuration Loader

Loads autosave.toml with environment variable overrides. Every section is a
dataclass with ``from_dict`` and ``apply_env``.

Environment variable mapping:
    [logging] level                         → AUTOSAVE_LOG_LEVEL
    [logging] file                          → AUTOSAVE_LOG_FILE
    [roundup] slot_policy                   → AUTOSAVE_SLOT_POLICY
    [subscriptions] accrual_interval_seconds → AUTOSAVE_ACCRUAL_INTERVAL
    [pipeline] secondary_failure_policy     → AUTOSAVE_SECONDARY_FAILURE_POLICY
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import ACCRUAL_INTERVAL_SECONDS, LOG_FILE_OUTPUT, LOG_LEVEL
from ..exceptions import ConfigurationError
from ..logger import configure_logging
from ..pipeline import SecondaryFailurePolicy
from ..roundup import SlotPolicy

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = str(LOG_LEVEL).upper()
    file: str = ""
    console: bool = True
    file_output: bool = bool(LOG_FILE_OUTPUT)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", str(LOG_LEVEL))).upper(),
            file=data.get("file", ""),
            console=data.get("console", True),
            file_output=data.get("file_output", bool(LOG_FILE_OUTPUT)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("AUTOSAVE_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("AUTOSAVE_LOG_FILE"):
            self.file = v
            self.file_output = True

    def apply(self) -> None:
        """Push these settings into the logging manager."""
        configure_logging(
            log_level=self.level,
            log_file=Path(self.file) if self.file else None,
            console_output=self.console,
            file_output=self.file_output,
        )


@dataclass
class RoundUpConfig:
    """[roundup] section."""
    slot_policy: str = SlotPolicy.FIRST_SLOT.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoundUpConfig":
        return cls(slot_policy=data.get("slot_policy", SlotPolicy.FIRST_SLOT.value))

    def apply_env(self) -> None:
        if v := os.environ.get("AUTOSAVE_SLOT_POLICY"):
            self.slot_policy = v

    @property
    def policy(self) -> SlotPolicy:
        try:
            return SlotPolicy(self.slot_policy.lower())
        except ValueError as e:
            raise ConfigurationError(f"Invalid slot_policy: {self.slot_policy!r}") from e


@dataclass
class SubscriptionConfig:
    """[subscriptions] section."""
    accrual_interval_seconds: int = ACCRUAL_INTERVAL_SECONDS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubscriptionConfig":
        return cls(
            accrual_interval_seconds=data.get(
                "accrual_interval_seconds", ACCRUAL_INTERVAL_SECONDS
            ),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("AUTOSAVE_ACCRUAL_INTERVAL"):
            try:
                self.accrual_interval_seconds = int(v)
            except ValueError as e:
                raise ConfigurationError(f"AUTOSAVE_ACCRUAL_INTERVAL is not an integer: {v!r}") from e


@dataclass
class PipelineConfig:
    """[pipeline] section."""
    secondary_failure_policy: str = SecondaryFailurePolicy.ISOLATE.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        return cls(
            secondary_failure_policy=data.get(
                "secondary_failure_policy", SecondaryFailurePolicy.ISOLATE.value
            ),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("AUTOSAVE_SECONDARY_FAILURE_POLICY"):
            self.secondary_failure_policy = v

    @property
    def policy(self) -> SecondaryFailurePolicy:
        try:
            return SecondaryFailurePolicy(self.secondary_failure_policy.lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid secondary_failure_policy: {self.secondary_failure_policy!r}"
            ) from e


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class AutosaveConfig:
    """Complete autosave configuration."""
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    roundup: RoundUpConfig = field(default_factory=RoundUpConfig)
    subscriptions: SubscriptionConfig = field(default_factory=SubscriptionConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutosaveConfig":
        return cls(
            logging=LoggingConfig.from_dict(data.get("logging", {})),
            roundup=RoundUpConfig.from_dict(data.get("roundup", {})),
            subscriptions=SubscriptionConfig.from_dict(data.get("subscriptions", {})),
            pipeline=PipelineConfig.from_dict(data.get("pipeline", {})),
        )

    @classmethod
    def from_file(cls, config_path: str | Path) -> "AutosaveConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults (with env overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s — using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.logging.apply_env()
        self.roundup.apply_env()
        self.subscriptions.apply_env()
        self.pipeline.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        if self.logging.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        interval = self.subscriptions.accrual_interval_seconds
        if not isinstance(interval, int) or isinstance(interval, bool) or interval <= 0:
            raise ConfigurationError(
                f"accrual_interval_seconds must be a positive integer, got {interval!r}"
            )
        # Unknown policy names raise ConfigurationError
        _ = (self.roundup.policy, self.pipeline.policy)
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
                "console": self.logging.console,
                "file_output": self.logging.file_output,
            },
            "roundup": {"slot_policy": self.roundup.slot_policy},
            "subscriptions": {
                "accrual_interval_seconds": self.subscriptions.accrual_interval_seconds,
            },
            "pipeline": {
                "secondary_failure_policy": self.pipeline.secondary_failure_policy,
            },
        }


def load_config(path: Optional[str] = None) -> AutosaveConfig:
    """
    Load and validate autosave configuration.

    Resolution order:
        1. Explicit *path* argument
        2. AUTOSAVE_CONFIG env var
        3. ./autosave.toml in current directory
        4. Defaults (with env overrides)

    The [logging] section is applied to the logging manager once the
    configuration validates.
    """
    if path is None:
        path = os.environ.get("AUTOSAVE_CONFIG", "autosave.toml")

    cfg = AutosaveConfig.from_file(path)
    cfg.validate()
    cfg.logging.apply()
    return cfg
