"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from restretry.domain.config.http import HttpConfig
from restretry.domain.config.retry import RetryConfiguration


class AppConfig(BaseModel):
    """Main application configuration.

    Root model aggregating all configuration sections. Validation is
    performed at load time to fail fast on configuration errors.

    Attributes:
        retry: Retry and backoff configuration
        http: HTTP transport configuration
    """

    retry: RetryConfiguration = Field(default_factory=RetryConfiguration)
    http: HttpConfig = Field(default_factory=HttpConfig)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "retry": {
                    "max_attempts": 3,
                    "base_delay": 1.0,
                    "backoff": "exponential_full_jitter",
                    "max_delay": 30.0,
                },
                "http": {
                    "timeout": 10.0,
                    "headers": {"Accept": "application/json"},
                    "auth_token": None,
                },
            }
        },
    )
