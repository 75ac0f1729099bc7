"""Errors raised to callers before any request is attempted."""


class Messages:
    """Fixed error texts"""

    BASE_URL_INVALID = "Invalid Base URL"
    RESOURCE_INVALID = "Invalid Resource"
    SERIALIZATION_ERROR = "The object cannot be serialized"
    OBJECT_NULL = "The object is null"


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


class RequestBodyError(ValueError):
    """Request body is missing or cannot be encoded."""

    pass
