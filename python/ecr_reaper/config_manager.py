#!/usr/bin/env python3
"""
Configuration Manager for the ECR stale image reaper

This module handles loading and managing configuration from config.yaml
and environment variables. Command-line flags are applied on top by the CLI.
"""

import logging
import os
import re
from typing import Any, Dict, List, Optional

import yaml

from ecr_reaper.error_utils import ActionableError, create_config_error

VALID_MODES = ("ecr", "k8s")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""


class ConfigManager:
    """Manages configuration for the stale image reaper"""

    def __init__(self, config_file: str = None, validate: bool = True):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to config.yaml or CONFIG_FILE env var)
            validate: If True, validate configuration on initialization
        """
        if config_file is None:
            config_file = os.environ.get("CONFIG_FILE", "config.yaml")
        self.config_file = config_file
        self.config = self._load_config()
        self._overridden = set()

        if validate:
            self.validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with defaults"""
        default_config = {
            "aws": {"region": "us-east-1"},
            "scan": {"days": 365, "mode": "ecr"},
            "kubernetes": {"namespace": ""},
            "logging": {"level": "INFO"},
            "reports": {"output_file": ""},
        }

        if not os.path.exists(self.config_file):
            logging.debug(f"Config file {self.config_file} not found, using defaults")
            return default_config

        try:
            with open(self.config_file, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationError(f"Error loading config file {self.config_file}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigValidationError(f"Config file {self.config_file} must contain a YAML mapping")
        for section in default_config:
            if section in user_config and not isinstance(user_config[section], dict):
                raise ConfigValidationError(
                    f"Config file {self.config_file}: section '{section}' must be a mapping, got: {user_config[section]!r}"
                )
        return self._merge_config(default_config, user_config)

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults"""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Apply command-line values on top of file and environment config.

        Keys are dotted ``section.key`` paths (``scan.days``); ``None`` values
        are ignored so unset flags keep the configured value.
        """
        for dotted, value in overrides.items():
            if value is None:
                continue
            section, key = dotted.split(".", 1)
            self.config.setdefault(section, {})[key] = value
            self._overridden.add(dotted)

    def _env_or_config(self, env_var: str, section: str, key: str) -> Any:
        """CLI overrides win, then the environment, then the config file."""
        if f"{section}.{key}" in self._overridden:
            return self.config[section][key]
        return os.environ.get(env_var) or self.config[section][key]

    # AWS configuration
    def get_region(self) -> str:
        """Get AWS region from environment or config"""
        return self._env_or_config("AWS_REGION", "aws", "region")

    # Scan configuration
    def get_days(self) -> int:
        """Get the staleness threshold in whole days, with type coercion"""
        days = self._env_or_config("STALE_DAYS", "scan", "days")
        if isinstance(days, bool) or (isinstance(days, float) and not days.is_integer()):
            raise create_config_error("scan.days", days, "must be an integer")
        try:
            return int(days)
        except (ValueError, TypeError):
            raise create_config_error("scan.days", days, "must be an integer")

    def get_mode(self) -> str:
        """Get scan mode ('ecr' or 'k8s') from environment or config"""
        return str(self._env_or_config("SCAN_MODE", "scan", "mode")).lower()

    def is_workload_aware(self) -> bool:
        return self.get_mode() == "k8s"

    # Kubernetes configuration
    def get_namespace(self) -> Optional[str]:
        """Get the namespace to list pods from; None means all namespaces"""
        namespace = self._env_or_config("K8S_NAMESPACE", "kubernetes", "namespace")
        return namespace if namespace else None

    # Logging configuration
    def get_log_level(self) -> str:
        return str(self._env_or_config("LOG_LEVEL", "logging", "level")).upper()

    # Report configuration
    def get_output_file(self) -> Optional[str]:
        """Get report base path (without extension); None disables report files"""
        output_file = self.config.get("reports", {}).get("output_file", "")
        return output_file if output_file else None

    def validate_config(self) -> None:
        """Validate configuration values

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        errors: List[str] = []

        region = self.get_region()
        if not region or not str(region).strip():
            errors.append("AWS region is required and cannot be empty")
        elif not self._is_valid_region(str(region)):
            errors.append(f"AWS region '{region}' is invalid (expected format: us-east-1)")

        try:
            days = self.get_days()
        except ActionableError:
            raw_days = self._env_or_config("STALE_DAYS", "scan", "days")
            errors.append(f"scan.days must be an integer, got: {raw_days}")
        else:
            if days < 0:
                errors.append(f"scan.days must be a non-negative integer, got: {days}")

        mode = self.get_mode()
        if mode not in VALID_MODES:
            errors.append(f"Invalid mode: {mode}. Must be 'ecr' or 'k8s'.")

        namespace = self.get_namespace()
        if namespace and not self._is_valid_k8s_name(namespace):
            errors.append(
                f"Namespace '{namespace}' is not a valid Kubernetes name (lowercase alphanumeric and hyphens only)"
            )

        log_level = self.get_log_level()
        if log_level not in VALID_LOG_LEVELS:
            errors.append(f"logging.level must be one of {', '.join(VALID_LOG_LEVELS)}, got: {log_level}")

        if errors:
            error_msg = "Configuration validation failed:\n  " + "\n  ".join(errors)
            raise ConfigValidationError(error_msg)

    def _is_valid_region(self, region: str) -> bool:
        """Validate AWS region format"""
        pattern = r"^[a-z]{2}(-[a-z]+)+-\d+$"
        return bool(re.match(pattern, region))

    def _is_valid_k8s_name(self, name: str) -> bool:
        """Validate Kubernetes resource name format"""
        if not name:
            return False
        # Kubernetes names: lowercase alphanumeric and hyphens, max 63 chars for namespaces
        pattern = r"^[a-z0-9]([a-z0-9\-]*[a-z0-9])?$"
        return bool(re.match(pattern, name)) and len(name) <= 63

    def describe(self) -> Dict[str, Any]:
        """Effective configuration, for logging at startup"""
        return {
            "region": self.get_region(),
            "days": self.get_days(),
            "mode": self.get_mode(),
            "namespace": self.get_namespace() or "(all)",
            "output_file": self.get_output_file() or "(none)",
        }
