"""Retry configuration model."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class BackoffKind(str, Enum):
    """Delay strategies between retry attempts."""

    CONSTANT = "constant"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    EXPONENTIAL_WITH_JITTER = "exponential_with_jitter"
    RANDOM = "random"
    FIBONACCI = "fibonacci"
    EXPONENTIAL_FULL_JITTER = "exponential_full_jitter"
    NO_RETRY = "no_retry"

    @classmethod
    def parse(cls, value: Any) -> "BackoffKind":
        """Parse a backoff kind, tolerating case, dashes and CamelCase names.

        Accepts "exponential", "ExponentialFullJitter", "exponential-full-jitter",
        "NO_RETRY" and so on.
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        normalized = text.replace("-", "_").lower()
        if "_" not in normalized and text not in (text.lower(), text.upper()):
            # CamelCase -> snake_case
            chars = []
            for i, ch in enumerate(text):
                if ch.isupper() and i > 0:
                    chars.append("_")
                chars.append(ch.lower())
            normalized = "".join(chars)
        try:
            return cls(normalized)
        except ValueError:
            available = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown backoff kind: {value}. Available kinds: {available}") from None


class RetryConfiguration(BaseModel):
    """Configuration for retry logic.

    Attributes:
        max_attempts: Number of retries after the initial attempt
            (total calls = max_attempts + 1)
        base_delay: Base delay in seconds fed to the backoff formula
        backoff: Backoff strategy
        max_delay: Upper bound in seconds for any single delay
    """

    max_attempts: int = Field(1, ge=0)
    base_delay: float = Field(5.0, ge=0.0)
    backoff: BackoffKind = BackoffKind.CONSTANT
    max_delay: float = Field(30.0, gt=0.0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def total_attempts(self) -> int:
        """Upper bound on transport calls for one logical request"""
        if self.backoff is BackoffKind.NO_RETRY:
            return 1
        return self.max_attempts + 1


_LEGACY_ALIASES = {
    "retry_number": "max_attempts",
    "max_retries": "max_attempts",
    "retry_delay": "base_delay",
    "delay_type": "backoff",
    "backoff_type": "backoff",
}


def normalize_retry_keys(config: Dict[str, Any]) -> Dict[str, Any]:
    """Rename legacy retry keys to their current names.

    Preferred keys win over aliases. ``retry_delay_ms`` is accepted as a
    millisecond variant of ``base_delay``. None values are dropped.
    """
    values: Dict[str, Any] = {}
    for key, value in config.items():
        if value is None:
            continue
        if key == "retry_delay_ms":
            if config.get("base_delay") is None and config.get("retry_delay") is None:
                values["base_delay"] = float(value) / 1000.0
            continue
        target = _LEGACY_ALIASES.get(key, key)
        if target == key or config.get(target) is None:
            values[target] = value
    return values


def retry_config_from_dict(config: Dict[str, Any]) -> RetryConfiguration:
    """Parse retry config from dict, supporting legacy aliases.

    Raises:
        pydantic.ValidationError: If a value is out of range
        ValueError: If the backoff kind is unknown
    """
    values = normalize_retry_keys(config)

    if "backoff" in values:
        values["backoff"] = BackoffKind.parse(values["backoff"])

    return RetryConfiguration(**values)
