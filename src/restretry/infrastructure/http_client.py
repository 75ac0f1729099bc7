"""Shared HTTP transport utilities (requests for sync, httpx for async).

Transports perform exactly one request per call. HTTP error statuses and
network failures both come back as AttemptOutcome values so the retry loop
can evaluate them uniformly.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

import httpx
import requests
from pydantic import BaseModel

from restretry.domain.config.http import HttpConfig
from restretry.domain.errors import Messages, RequestBodyError
from restretry.domain.models.attempt_outcome import AttemptOutcome

logger = logging.getLogger(__name__)

QueryParams = Optional[Mapping[str, Any]]


def build_url(base_url: str, resource: str) -> str:
    """Join base URL and resource path with exactly one slash"""
    return f"{base_url.rstrip('/')}/{resource.lstrip('/')}"


def encode_body(body: Any) -> str:
    """Serialize a request body to JSON.

    Accepts JSON-compatible values, dataclass instances and pydantic models.

    Raises:
        RequestBodyError: If body is None or not serializable
    """
    if body is None:
        raise RequestBodyError(Messages.OBJECT_NULL)
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json")
    elif dataclasses.is_dataclass(body) and not isinstance(body, type):
        body = dataclasses.asdict(body)
    try:
        return json.dumps(body)
    except (TypeError, ValueError) as e:
        raise RequestBodyError(f"{Messages.SERIALIZATION_ERROR}: {e}") from e


def request_headers(http: HttpConfig, has_body: bool) -> Dict[str, str]:
    """Headers for one request: defaults, configured headers, then auth"""
    headers = {"Accept": "application/json"}
    if has_body:
        headers["Content-Type"] = "application/json"
    headers.update(http.headers)
    if http.auth_token:
        headers["Authorization"] = f"Bearer {http.auth_token}"
    return headers


def _decode_payload(content_type: str, decode: Any) -> Any:
    if "json" not in content_type.lower():
        return None
    try:
        return decode()
    except ValueError:
        logger.debug("Response declared JSON but could not be decoded")
        return None


class RestTransport(ABC):
    """Synchronous transport: one HTTP request per call"""

    def __init__(self, base_url: str, http: Optional[HttpConfig] = None):
        self.base_url = base_url
        self.http = http or HttpConfig()

    @abstractmethod
    def perform_request(
        self,
        method: str,
        resource: str,
        *,
        body: Optional[str] = None,
        params: QueryParams = None,
    ) -> AttemptOutcome:
        """Perform one HTTP request

        Args:
            method: HTTP method (GET, POST, ...)
            resource: Resource path relative to base_url
            body: Pre-encoded JSON body
            params: Query parameters

        Returns:
            Outcome of the request; never raises for HTTP or network failures
        """
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "RestTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class AsyncRestTransport(ABC):
    """Asynchronous transport: one HTTP request per call"""

    def __init__(self, base_url: str, http: Optional[HttpConfig] = None):
        self.base_url = base_url
        self.http = http or HttpConfig()

    @abstractmethod
    async def perform_request(
        self,
        method: str,
        resource: str,
        *,
        body: Optional[str] = None,
        params: QueryParams = None,
    ) -> AttemptOutcome:
        """Perform one HTTP request; see RestTransport.perform_request"""
        pass

    async def aclose(self) -> None:
        pass

    async def __aenter__(self) -> "AsyncRestTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class RequestsTransport(RestTransport):
    """Transport backed by a requests.Session"""

    def __init__(
        self,
        base_url: str,
        http: Optional[HttpConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(base_url, http)
        self._owns_session = session is None
        self._session = session or requests.Session()

    def perform_request(
        self,
        method: str,
        resource: str,
        *,
        body: Optional[str] = None,
        params: QueryParams = None,
    ) -> AttemptOutcome:
        url = build_url(self.base_url, resource)
        logger.debug(f"HTTP {method} {url}")
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                data=body.encode("utf-8") if body is not None else None,
                headers=request_headers(self.http, body is not None),
                timeout=self.http.timeout,
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning(f"HTTP {method} {url} failed: {e}")
            return AttemptOutcome.transport_error(f"{type(e).__name__}: {e}", transient=True)
        except requests.exceptions.RequestException as e:
            logger.warning(f"HTTP {method} {url} failed: {e}")
            return AttemptOutcome.transport_error(f"{type(e).__name__}: {e}", transient=False)

        logger.debug(f"HTTP {method} {url} -> {resp.status_code}")
        return AttemptOutcome.from_status(
            resp.status_code,
            content=resp.text,
            payload=_decode_payload(resp.headers.get("Content-Type", ""), resp.json),
            headers=dict(resp.headers),
        )

    def close(self) -> None:
        if self._owns_session:
            self._session.close()


class HttpxTransport(AsyncRestTransport):
    """Transport backed by an httpx.AsyncClient"""

    def __init__(
        self,
        base_url: str,
        http: Optional[HttpConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(base_url, http)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.http.timeout)

    async def perform_request(
        self,
        method: str,
        resource: str,
        *,
        body: Optional[str] = None,
        params: QueryParams = None,
    ) -> AttemptOutcome:
        url = build_url(self.base_url, resource)
        logger.debug(f"HTTP {method} {url}")
        try:
            resp = await self._client.request(
                method,
                url,
                params=params,
                content=body.encode("utf-8") if body is not None else None,
                headers=request_headers(self.http, body is not None),
            )
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            logger.warning(f"HTTP {method} {url} failed: {e}")
            return AttemptOutcome.transport_error(f"{type(e).__name__}: {e}", transient=True)
        except httpx.HTTPError as e:
            logger.warning(f"HTTP {method} {url} failed: {e}")
            return AttemptOutcome.transport_error(f"{type(e).__name__}: {e}", transient=False)

        logger.debug(f"HTTP {method} {url} -> {resp.status_code}")
        return AttemptOutcome.from_status(
            resp.status_code,
            content=resp.text,
            payload=_decode_payload(resp.headers.get("content-type", ""), resp.json),
            headers=dict(resp.headers),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
