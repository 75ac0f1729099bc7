"""Configuration manager for loading and validating .restretry.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from restretry.domain.config import (
    AppConfig,
    HttpConfig,
    RetryConfiguration,
    normalize_retry_keys,
    retry_config_from_dict,
)
from restretry.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".restretry.yml"


def format_validation_error(error: ValidationError) -> str:
    """Render pydantic errors as one line per field"""
    lines = []
    for item in error.errors():
        field = ".".join(str(x) for x in item["loc"])
        lines.append(f"  - {field}: {item['msg']}")
    return "Configuration validation failed:\n" + "\n".join(lines)


class ConfigManager:
    """Manages configuration from .restretry.yml and environment variables

    Configuration priority:
    1. Default values
    2. .restretry.yml file (searched from current directory upwards)
    3. Environment variables (RESTRETRY_*)
    4. CLI arguments (handled by CLI layer)
    """

    DEFAULT_CONFIG = {
        "retry": {
            "max_attempts": 1,
            "base_delay": 5.0,
            "backoff": "constant",
            "max_delay": 30.0,
        },
        "http": {
            "timeout": 30.0,
            "headers": {},
            "auth_token": None,
        },
    }

    ENV_OVERRIDES = {
        "RESTRETRY_MAX_ATTEMPTS": ("retry", "max_attempts"),
        "RESTRETRY_BASE_DELAY": ("retry", "base_delay"),
        "RESTRETRY_BACKOFF": ("retry", "backoff"),
        "RESTRETRY_TIMEOUT": ("http", "timeout"),
        "RESTRETRY_AUTH_TOKEN": ("http", "auth_token"),
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager

        Args:
            config_path: Path to .restretry.yml (searches from current dir if None)

        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            raise ConfigurationError(format_validation_error(e)) from e
        except ValueError as e:
            raise ConfigurationError(f"Configuration validation failed:\n  - {e}") from e

    def _find_config_file(self) -> Optional[Path]:
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and validate with Pydantic

        Raises:
            ValidationError: If configuration is invalid
        """
        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
                if isinstance(file_config, dict) and isinstance(file_config.get("retry"), dict):
                    # Legacy keys must be renamed before they meet the defaults
                    file_config["retry"] = normalize_retry_keys(file_config["retry"])
                config_dict = self._merge_config(config_dict, file_config)
                logger.info(f"Loaded configuration from {self.config_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {self.config_path}: {e}")
                logger.info("Using default configuration")

        config_dict = self._apply_env_overrides(config_dict)

        retry_section = config_dict.get("retry")
        if isinstance(retry_section, dict):
            # Accept legacy keys (retry_number, retry_delay, delay_type, ...)
            config_dict["retry"] = retry_config_from_dict(retry_section)

        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        for env_name, (section, key) in self.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                if not isinstance(config.get(section), dict):
                    config[section] = {}
                config[section][key] = value
        return config

    def get_retry_config(self) -> RetryConfiguration:
        return self.config.retry

    def get_http_config(self) -> HttpConfig:
        return self.config.http

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)

        Args:
            key: Configuration key (e.g., "retry.backoff" or "http")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config.model_dump(mode="json")
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value
