"""
Configuration management for usbinfo.

Handles loading, validation, and access to configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/usbinfo/usbinfo.yaml")


@dataclass
class LoggingConfig:
    """Logging settings."""

    log_level: str = "warning"
    log_file: str | None = None


@dataclass
class RegistryConfig:
    """Class code registry settings."""

    # Table file in usb.ids class format; embedded table if unset
    class_table: str | None = None

    def __post_init__(self) -> None:
        # Load table path from environment if not set
        if self.class_table is None:
            self.class_table = os.environ.get("USBINFO_CLASS_TABLE")


@dataclass
class ReportConfig:
    """Report output settings."""

    format: str = "text"
    raw_descriptors: bool = True


@dataclass
class MonitorConfig:
    """Presence monitor settings."""

    # Print the full report for present and connected devices
    details: bool = False


@dataclass
class UsbInfoConfig:
    """Main configuration container."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UsbInfoConfig:
        """Create configuration from dictionary."""
        return cls(
            logging=LoggingConfig(**(data.get("logging") or {})),
            registry=RegistryConfig(**(data.get("registry") or {})),
            report=ReportConfig(**(data.get("report") or {})),
            monitor=MonitorConfig(**(data.get("monitor") or {})),
        )


def load_config(path: str | Path | None = None) -> UsbInfoConfig:
    """
    Load configuration from YAML file.

    Args:
        path: Path to configuration file. If None, uses default paths.

    Returns:
        UsbInfoConfig instance with loaded settings.

    Raises:
        FileNotFoundError: If the given config file does not exist.
        yaml.YAMLError: If config file is invalid YAML.
        TypeError: If the file is not a mapping or has unknown keys.
    """
    if path is None:
        candidates = [
            DEFAULT_CONFIG_PATH,
            Path("config/usbinfo.yaml"),
            Path("usbinfo.yaml"),
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path is None:
        return UsbInfoConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise TypeError(f"Configuration must be a mapping: {path}")

    return UsbInfoConfig.from_dict(data)


def validate_config(config: UsbInfoConfig) -> list[str]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate.

    Returns:
        List of error messages. Empty list if valid.
    """
    errors: list[str] = []

    valid_log_levels = {"debug", "info", "warning", "error"}
    if config.logging.log_level not in valid_log_levels:
        errors.append(f"Invalid log_level: {config.logging.log_level}")

    valid_formats = {"text", "json"}
    if config.report.format not in valid_formats:
        errors.append(f"Invalid report format: {config.report.format}")

    if config.registry.class_table is not None:
        if not Path(config.registry.class_table).is_file():
            errors.append(f"Class table not found: {config.registry.class_table}")

    return errors
