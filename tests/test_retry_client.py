"""Tests for RetryClient"""

from __future__ import annotations

import asyncio
from typing import List, Optional

import httpx
import pytest
import requests
import respx

from restretry.application.retry_client import RetryClient
from restretry.domain.config.retry import BackoffKind, RetryConfiguration
from restretry.domain.errors import ConfigurationError, RequestBodyError
from restretry.domain.models.attempt_outcome import AttemptOutcome
from restretry.infrastructure.cancellation import CancellationToken
from restretry.infrastructure.http_client import AsyncRestTransport, RestTransport
from restretry.infrastructure.retry import RetryOrchestrator

BASE_URL = "https://api.example.com"
RESOURCE = "/test"


class FakeTransport(RestTransport):
    """Returns queued statuses and records every request"""

    def __init__(self, *statuses: int):
        super().__init__(BASE_URL)
        self.statuses = list(statuses)
        self.requests: List[tuple] = []

    def perform_request(self, method, resource, *, body=None, params=None) -> AttemptOutcome:
        self.requests.append((method, resource, body, params))
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return AttemptOutcome.from_status(status)


class FakeAsyncTransport(AsyncRestTransport):
    def __init__(self, *statuses: int):
        super().__init__(BASE_URL)
        self.sync = FakeTransport(*statuses)

    async def perform_request(self, method, resource, *, body=None, params=None) -> AttemptOutcome:
        return self.sync.perform_request(method, resource, body=body, params=params)

    @property
    def requests(self):
        return self.sync.requests


def _client(
    *statuses: int,
    max_attempts: int = 3,
    backoff: BackoffKind = BackoffKind.CONSTANT,
    sleeps: Optional[list] = None,
) -> RetryClient:
    recorded = sleeps if sleeps is not None else []

    async def fake_async_sleep(delay):
        recorded.append(delay)

    return RetryClient(
        BASE_URL,
        RESOURCE,
        max_attempts=max_attempts,
        base_delay=0,
        backoff=backoff,
        transport=FakeTransport(*statuses),
        async_transport=FakeAsyncTransport(*statuses),
        orchestrator=RetryOrchestrator(sleep=recorded.append, async_sleep=fake_async_sleep),
    )


class TestConstruction:
    """Tests for RetryClient construction"""

    def test_default_values(self):
        client = RetryClient(BASE_URL, RESOURCE)
        assert client.max_attempts == 1
        assert client.base_delay == 5.0
        assert client.backoff is BackoffKind.CONSTANT

    @pytest.mark.parametrize("base_url", ["", "not a url", "ftp://example.com", "https://"])
    def test_invalid_base_url(self, base_url):
        with pytest.raises(ConfigurationError, match="Invalid Base URL"):
            RetryClient(base_url, RESOURCE)

    def test_invalid_resource(self):
        with pytest.raises(ConfigurationError, match="Invalid Resource"):
            RetryClient(BASE_URL, "")

    def test_negative_delay_rejected(self):
        with pytest.raises(ConfigurationError, match="base_delay"):
            RetryClient(BASE_URL, RESOURCE, base_delay=-0.1)

    def test_negative_attempts_rejected(self):
        with pytest.raises(ConfigurationError, match="max_attempts"):
            RetryClient(BASE_URL, RESOURCE, max_attempts=-5)

    def test_backoff_by_name(self):
        client = RetryClient(BASE_URL, RESOURCE, backoff="ExponentialFullJitter")
        assert client.backoff is BackoffKind.EXPONENTIAL_FULL_JITTER

    def test_unknown_backoff_rejected(self):
        with pytest.raises(ConfigurationError, match="Unknown backoff kind"):
            RetryClient(BASE_URL, RESOURCE, backoff="sometimes")


class TestSetters:
    def test_setters_replace_config(self):
        client = RetryClient(BASE_URL, RESOURCE)
        before = client.retry_config
        client.max_attempts = 4
        client.base_delay = 0.25
        client.backoff = BackoffKind.FIBONACCI
        assert client.retry_config == RetryConfiguration(
            max_attempts=4, base_delay=0.25, backoff=BackoffKind.FIBONACCI
        )
        assert before.max_attempts == 1

    def test_setter_validates(self):
        client = RetryClient(BASE_URL, RESOURCE)
        with pytest.raises(ConfigurationError):
            client.base_delay = -1
        assert client.base_delay == 5.0

    def test_retry_config_setter_rejects_other_types(self):
        client = RetryClient(BASE_URL, RESOURCE)
        with pytest.raises(ConfigurationError, match="RetryConfiguration"):
            client.retry_config = {"max_attempts": 3}
        assert client.retry_config == RetryConfiguration()

    def test_retry_config_setter_accepts_model(self):
        client = RetryClient(BASE_URL, RESOURCE)
        client.retry_config = RetryConfiguration(max_attempts=2, backoff=BackoffKind.LINEAR)
        assert client.max_attempts == 2
        assert client.backoff is BackoffKind.LINEAR

    def test_config_is_immutable(self):
        client = RetryClient(BASE_URL, RESOURCE)
        with pytest.raises(Exception):
            client.retry_config.max_attempts = 9


class TestSyncVerbs:
    """Tests for the synchronous verbs"""

    def test_post_retries_then_accepted(self):
        client = _client(503, 503, 202)
        outcome = client.post({"title": "foo"})
        assert outcome.status_code == 202
        assert len(client.transport.requests) == 3
        assert client.transport.requests[0] == ("POST", RESOURCE, '{"title": "foo"}', None)

    def test_post_accepted_first_time(self):
        client = _client(202)
        assert client.post({}).status_code == 202
        assert len(client.transport.requests) == 1

    def test_bad_request_not_retried(self):
        client = _client(400, max_attempts=10)
        outcome = client.post({"x": 1})
        assert outcome.status_code == 400
        assert len(client.transport.requests) == 1

    def test_exhaustion_returns_last_outcome(self):
        client = _client(500, max_attempts=2)
        outcome = client.get()
        assert outcome.status_code == 500
        assert len(client.transport.requests) == 3

    def test_get_with_params(self):
        client = _client(200)
        client.get({"userId": "1"})
        assert client.transport.requests[0] == ("GET", RESOURCE, None, {"userId": "1"})

    @pytest.mark.parametrize("verb,method", [("put", "PUT"), ("patch", "PATCH"), ("delete", "DELETE")])
    def test_body_verbs(self, verb, method):
        client = _client(200)
        outcome = getattr(client, verb)({"id": 1})
        assert outcome.is_successful
        assert client.transport.requests[0][:3] == (method, RESOURCE, '{"id": 1}')

    def test_options(self):
        client = _client(204)
        assert client.options().status_code == 204
        assert client.transport.requests[0][0] == "OPTIONS"

    @pytest.mark.parametrize("verb", ["post", "put", "patch", "delete"])
    def test_null_body_rejected_before_request(self, verb):
        client = _client(200)
        with pytest.raises(RequestBodyError, match="The object is null"):
            getattr(client, verb)(None)
        assert client.transport.requests == []

    def test_per_call_retry_override(self):
        client = _client(503, max_attempts=5)
        client.get(retry=RetryConfiguration(max_attempts=1, base_delay=0))
        assert len(client.transport.requests) == 2

    def test_no_retry(self):
        client = _client(503, backoff=BackoffKind.NO_RETRY)
        assert client.get().status_code == 503
        assert len(client.transport.requests) == 1

    def test_cancelled_token(self):
        client = _client(200)
        token = CancellationToken()
        token.cancel()
        assert client.get(cancel_token=token).is_cancelled
        assert client.transport.requests == []


class TestAsyncVerbs:
    """Tests for the asynchronous verbs"""

    def test_post_async_retries_then_accepted(self):
        client = _client(503, 503, 202)
        outcome = asyncio.run(client.post_async({"title": "foo"}))
        assert outcome.status_code == 202
        assert len(client.async_transport.requests) == 3

    def test_get_async_exhaustion(self):
        sleeps = []
        client = _client(504, max_attempts=2, sleeps=sleeps)
        outcome = asyncio.run(client.get_async({"q": "x"}))
        assert outcome.status_code == 504
        assert len(client.async_transport.requests) == 3
        assert sleeps == [0.0, 0.0]

    @pytest.mark.parametrize(
        "verb,method",
        [("put_async", "PUT"), ("patch_async", "PATCH"), ("delete_async", "DELETE")],
    )
    def test_body_verbs(self, verb, method):
        client = _client(200)
        outcome = asyncio.run(getattr(client, verb)({"id": 1}))
        assert outcome.is_successful
        assert client.async_transport.requests[0][0] == method

    def test_options_async(self):
        client = _client(200)
        asyncio.run(client.options_async())
        assert client.async_transport.requests[0][0] == "OPTIONS"

    def test_null_body_rejected(self):
        client = _client(200)
        with pytest.raises(RequestBodyError):
            asyncio.run(client.post_async(None))


class TestEndToEnd:
    """RetryClient wired to the real transports"""

    def test_sync_with_requests(self, monkeypatch):
        calls = {"n": 0}

        def fake_request(self, method, url, **kwargs):
            calls["n"] += 1
            r = requests.Response()
            r.status_code = 503 if calls["n"] == 1 else 201
            r.url = url
            r._content = b'{"id": 101}'  # type: ignore[attr-defined]
            r.headers["Content-Type"] = "application/json"
            return r

        monkeypatch.setattr(requests.Session, "request", fake_request)

        with RetryClient(
            "https://jsonplaceholder.typicode.com",
            "posts",
            max_attempts=2,
            base_delay=0,
            orchestrator=RetryOrchestrator(sleep=lambda _: None),
        ) as client:
            outcome = client.post({"title": "foo", "body": "bar", "userId": 1})

        assert outcome.status_code == 201
        assert outcome.payload == {"id": 101}
        assert calls["n"] == 2

    @respx.mock
    def test_async_with_httpx(self):
        route = respx.get("https://httpbin.org/status/500").mock(return_value=httpx.Response(500))

        async def run():
            async with RetryClient("https://httpbin.org", "status/500", max_attempts=3, base_delay=0) as client:
                return await client.get_async()

        outcome = asyncio.run(run())
        assert outcome.status_code == 500
        assert outcome.is_successful is False
        assert route.call_count == 4
