"""
Configuration defaults and validation for the telemetry context.

This module provides:
- Default values for every configuration section
- Validation of reporting, threshold, polling and alert settings
- Loading of YAML/JSON configuration files
"""

import copy
import json
import logging
import platform
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import yaml

from .. import __version__

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("development", "production")

DEFAULT_CONFIG: Dict[str, Any] = {
    "environment": "development",
    "page": {
        "url": "about:blank",
        "user_agent": f"perftelemetry/{__version__} python/{platform.python_version()}",
    },
    "reporting": {
        "endpoint": None,
        "interval_ms": 300000,
        "timeout_s": 10.0,
        "beacon_timeout_s": 2.0,
        "send_on_shutdown": True,
    },
    "thresholds": {
        "slow_resource_ms": 500,
        "recommendation_ms": 1000,
        "alert_ms": 1000,
        "stalled_timing_ms": 5000,
    },
    "polling": {
        "metric_refresh_ms": 2000,
        "dashboard_refresh_ms": 5000,
        "alert_check_ms": 10000,
        "memory_check_ms": 30000,
    },
    "alerts": {
        "show_in_production": False,
        "max_alerts": 5,
        "recent_window_ms": 10000,
    },
    "memory": {
        "warn_rss_mb": 512,
    },
    "clock": {
        "realtime": True,
    },
}


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""
    pass


def apply_defaults(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of ``config`` with every missing key filled from the defaults."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in (config or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


class TelemetryConfigValidator:
    """Validates a complete telemetry configuration."""

    POSITIVE_NUMBER_SECTIONS = {
        "thresholds": ("slow_resource_ms", "recommendation_ms", "alert_ms", "stalled_timing_ms"),
        "polling": ("metric_refresh_ms", "dashboard_refresh_ms", "alert_check_ms", "memory_check_ms"),
    }

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """Validate a configuration (defaults are applied first)."""
        errors: List[str] = []
        if not isinstance(config, dict):
            return False, ["Configuration must be a mapping"]

        known = set(DEFAULT_CONFIG)
        unknown = set(config) - known
        if unknown:
            logger.warning(f"Ignoring unknown configuration sections: {sorted(unknown)}")

        for section in sorted(known - {"environment"}):
            if section in config and not isinstance(config[section], dict):
                errors.append(f"Section '{section}' must be a mapping")
        if errors:
            return False, errors

        merged = apply_defaults(config)

        if merged["environment"] not in ENVIRONMENTS:
            errors.append(
                f"Invalid environment: {merged['environment']} (must be one of {', '.join(ENVIRONMENTS)})"
            )

        errors.extend(cls._validate_reporting(merged["reporting"]))
        for section, keys in cls.POSITIVE_NUMBER_SECTIONS.items():
            errors.extend(cls._validate_positive(section, merged[section], keys))
        errors.extend(cls._validate_alerts(merged["alerts"]))

        if not isinstance(merged["clock"].get("realtime"), bool):
            errors.append("clock.realtime must be true or false")

        return len(errors) == 0, errors

    @classmethod
    def _validate_reporting(cls, reporting: Dict[str, Any]) -> List[str]:
        errors = []

        endpoint = reporting.get("endpoint")
        if endpoint is not None:
            parsed = urlparse(str(endpoint))
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(f"Invalid reporting endpoint: {endpoint} (must be an http(s) URL)")

        for key in ("interval_ms", "timeout_s", "beacon_timeout_s"):
            value = reporting.get(key)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                errors.append(f"Invalid reporting.{key}: {value}")

        return errors

    @classmethod
    def _validate_positive(cls, section: str, values: Dict[str, Any], keys: Tuple[str, ...]) -> List[str]:
        errors = []
        for key in keys:
            value = values.get(key)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                errors.append(f"Invalid {section}.{key}: {value} (must be a positive number)")
        return errors

    @classmethod
    def _validate_alerts(cls, alerts: Dict[str, Any]) -> List[str]:
        errors = []
        max_alerts = alerts.get("max_alerts")
        if not isinstance(max_alerts, int) or max_alerts <= 0:
            errors.append(f"Invalid alerts.max_alerts: {max_alerts}")
        window = alerts.get("recent_window_ms")
        if not isinstance(window, (int, float)) or window <= 0:
            errors.append(f"Invalid alerts.recent_window_ms: {window}")
        return errors


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load a YAML or JSON configuration file."""
    config_file = Path(config_path)
    with open(config_file) as f:
        if config_file.suffix in [".yaml", ".yml"]:
            config = yaml.safe_load(f)
        else:
            config = json.load(f)
    return config or {}


def validate_and_fix_config(config_path: str) -> Tuple[bool, List[str], Optional[Dict[str, Any]]]:
    """
    Load and validate a configuration file, filling in defaults.

    Returns:
        (is_valid, errors, config_with_defaults)
    """
    config = load_config_file(config_path)
    is_valid, errors = TelemetryConfigValidator.validate(config)

    if not is_valid:
        logger.warning(f"Configuration has {len(errors)} validation errors")
        for error in errors[:10]:
            logger.warning(f"  - {error}")
        if len(errors) > 10:
            logger.warning(f"  ... and {len(errors) - 10} more errors")
        return is_valid, errors, config

    return is_valid, errors, apply_defaults(config)
