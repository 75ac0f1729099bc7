"""HTTP transport configuration model."""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class HttpConfig(BaseModel):
    """Configuration for the HTTP transport.

    Attributes:
        timeout: Per-request timeout in seconds
        headers: Default headers sent with every request
        auth_token: Bearer token (None = no Authorization header)
    """

    timeout: float = Field(30.0, gt=0.0)
    headers: Dict[str, str] = Field(default_factory=dict)
    auth_token: Optional[str] = None
