"""Configuration models with Pydantic validation."""

from restretry.domain.config.app import AppConfig
from restretry.domain.config.http import HttpConfig
from restretry.domain.config.retry import (
    BackoffKind,
    RetryConfiguration,
    normalize_retry_keys,
    retry_config_from_dict,
)

__all__ = [
    "AppConfig",
    "BackoffKind",
    "HttpConfig",
    "RetryConfiguration",
    "normalize_retry_keys",
    "retry_config_from_dict",
]
