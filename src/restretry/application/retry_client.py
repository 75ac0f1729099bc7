"""RetryClient - REST client with retry on transient failures"""

import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from restretry.domain.config.http import HttpConfig
from restretry.domain.config.retry import BackoffKind, RetryConfiguration
from restretry.domain.errors import ConfigurationError, Messages
from restretry.domain.models.attempt_outcome import AttemptOutcome
from restretry.infrastructure.cancellation import CancellationToken
from restretry.infrastructure.config.config_manager import format_validation_error
from restretry.infrastructure.http_client import (
    AsyncRestTransport,
    HttpxTransport,
    RequestsTransport,
    RestTransport,
    encode_body,
)
from restretry.infrastructure.retry import RetryOrchestrator

logger = logging.getLogger(__name__)


def _check_configuration(base_url: str, resource: str) -> None:
    if not base_url or not isinstance(base_url, str):
        raise ConfigurationError(Messages.BASE_URL_INVALID)
    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(Messages.BASE_URL_INVALID)
    if not resource or not isinstance(resource, str):
        raise ConfigurationError(Messages.RESOURCE_INVALID)


class RetryClient:
    """REST client for one resource, retrying transient failures.

    Every verb returns the final AttemptOutcome. Transient failures and
    exhausted retries are reported through the outcome, never raised; only
    misconfiguration and unusable request bodies raise.

    Example:
        client = RetryClient("https://api.example.com", "posts", max_attempts=3, base_delay=0.5)
        outcome = client.post({"title": "foo"})
        if not outcome.is_successful:
            ...
    """

    def __init__(
        self,
        base_url: str,
        resource: str,
        max_attempts: int = 1,
        base_delay: float = 5.0,
        backoff: BackoffKind = BackoffKind.CONSTANT,
        *,
        http: Optional[HttpConfig] = None,
        transport: Optional[RestTransport] = None,
        async_transport: Optional[AsyncRestTransport] = None,
        orchestrator: Optional[RetryOrchestrator] = None,
    ):
        """Initialize client

        Args:
            base_url: Absolute http(s) base URL
            resource: Resource path appended to base_url
            max_attempts: Retries after the initial attempt
            base_delay: Base delay in seconds for the backoff formula
            backoff: Backoff kind (enum member or its name)
            http: Timeout, default headers and bearer token
            transport: Sync transport (requests-based if None)
            async_transport: Async transport (httpx-based, created lazily if None)
            orchestrator: Retry orchestrator (default one if None)

        Raises:
            ConfigurationError: If URL, resource or retry values are invalid
        """
        _check_configuration(base_url, resource)
        self.base_url = base_url
        self.resource = resource
        self.http = http or HttpConfig()
        self._retry = self._build_config(max_attempts=max_attempts, base_delay=base_delay, backoff=backoff)
        self._transport = transport
        self._async_transport = async_transport
        self._orchestrator = orchestrator or RetryOrchestrator()

    @staticmethod
    def _build_config(base: Optional[RetryConfiguration] = None, **values: Any) -> RetryConfiguration:
        try:
            if "backoff" in values:
                values["backoff"] = BackoffKind.parse(values["backoff"])
            if base is None:
                return RetryConfiguration(**values)
            return RetryConfiguration(**{**base.model_dump(), **values})
        except ValidationError as e:
            raise ConfigurationError(format_validation_error(e)) from e
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    @property
    def retry_config(self) -> RetryConfiguration:
        return self._retry

    @retry_config.setter
    def retry_config(self, config: RetryConfiguration) -> None:
        if not isinstance(config, RetryConfiguration):
            raise ConfigurationError(f"Expected RetryConfiguration, got {type(config).__name__}")
        self._retry = config

    @property
    def max_attempts(self) -> int:
        return self._retry.max_attempts

    @max_attempts.setter
    def max_attempts(self, value: int) -> None:
        self._retry = self._build_config(self._retry, max_attempts=value)

    @property
    def base_delay(self) -> float:
        return self._retry.base_delay

    @base_delay.setter
    def base_delay(self, value: float) -> None:
        self._retry = self._build_config(self._retry, base_delay=value)

    @property
    def backoff(self) -> BackoffKind:
        return self._retry.backoff

    @backoff.setter
    def backoff(self, value: BackoffKind) -> None:
        self._retry = self._build_config(self._retry, backoff=value)

    @property
    def transport(self) -> RestTransport:
        if self._transport is None:
            self._transport = RequestsTransport(self.base_url, self.http)
        return self._transport

    @property
    def async_transport(self) -> AsyncRestTransport:
        if self._async_transport is None:
            self._async_transport = HttpxTransport(self.base_url, self.http)
        return self._async_transport

    def _send(
        self,
        method: str,
        body: Optional[str],
        params: Optional[Mapping[str, Any]],
        retry: Optional[RetryConfiguration],
        cancel_token: Optional[CancellationToken],
    ) -> AttemptOutcome:
        transport = self.transport

        def _operation() -> AttemptOutcome:
            return transport.perform_request(method, self.resource, body=body, params=params)

        logger.debug(f"{method} {self.base_url} {self.resource}")
        return self._orchestrator.execute(_operation, retry or self._retry, cancel_token)

    async def _send_async(
        self,
        method: str,
        body: Optional[str],
        params: Optional[Mapping[str, Any]],
        retry: Optional[RetryConfiguration],
        cancel_token: Optional[CancellationToken],
    ) -> AttemptOutcome:
        transport = self.async_transport

        async def _operation() -> AttemptOutcome:
            return await transport.perform_request(method, self.resource, body=body, params=params)

        logger.debug(f"{method} {self.base_url} {self.resource} (async)")
        return await self._orchestrator.execute_async(_operation, retry or self._retry, cancel_token)

    # Synchronous verbs

    def get(
        self,
        params: Optional[Mapping[str, Any]] = None,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        """Execute GET with optional query parameters"""
        return self._send("GET", None, params, retry, cancel_token)

    def post(
        self,
        body: Any,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        """Execute POST with a JSON body

        Raises:
            RequestBodyError: If body is None or not JSON-serializable
        """
        return self._send("POST", encode_body(body), None, retry, cancel_token)

    def put(
        self,
        body: Any,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return self._send("PUT", encode_body(body), None, retry, cancel_token)

    def delete(
        self,
        body: Any,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return self._send("DELETE", encode_body(body), None, retry, cancel_token)

    def patch(
        self,
        body: Any,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return self._send("PATCH", encode_body(body), None, retry, cancel_token)

    def options(
        self,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return self._send("OPTIONS", None, None, retry, cancel_token)

    # Asynchronous verbs

    async def get_async(
        self,
        params: Optional[Mapping[str, Any]] = None,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return await self._send_async("GET", None, params, retry, cancel_token)

    async def post_async(
        self,
        body: Any,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return await self._send_async("POST", encode_body(body), None, retry, cancel_token)

    async def put_async(
        self,
        body: Any,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return await self._send_async("PUT", encode_body(body), None, retry, cancel_token)

    async def delete_async(
        self,
        body: Any,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return await self._send_async("DELETE", encode_body(body), None, retry, cancel_token)

    async def patch_async(
        self,
        body: Any,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return await self._send_async("PATCH", encode_body(body), None, retry, cancel_token)

    async def options_async(
        self,
        *,
        retry: Optional[RetryConfiguration] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        return await self._send_async("OPTIONS", None, None, retry, cancel_token)

    # Resource management

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()

    async def aclose(self) -> None:
        if self._async_transport is not None:
            await self._async_transport.aclose()

    def __enter__(self) -> "RetryClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> "RetryClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
