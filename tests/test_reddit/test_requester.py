"""
Tests for the Requester request core.

Tests cover:
- Credential validation at construction
- Access-token lifecycle (grants, single-flight refresh, 401 recovery, revocation)
- Throttling, rate-limit enforcement and retries
- Logging toggles and configuration updates
"""

import asyncio
import base64
import time
from unittest.mock import Mock
from urllib.parse import parse_qs

import httpx
import pytest

from reddit_graph.models.config import RequesterConfig
from reddit_graph.reddit.exceptions import (
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    ServerError,
    TimeoutError,
    ValidationError,
)
from reddit_graph.reddit.requester import Requester
from tests.builders import RedditMock, ratelimit_headers, token_body


def make_requester(reddit_mock, logger=None, **kwargs):
    options = {
        "user_agent": "python:reddit-graph-tests:v0.1",
        "client_id": "client-id",
        "client_secret": "client-secret",
        "refresh_token": "refresh-token",
        "transport": reddit_mock.transport,
        "logger": logger or Mock(),
    }
    config = {"retry_backoff": 0}
    config.update(kwargs.pop("config", {}))
    options.update(kwargs)
    options["config"] = config
    return Requester(**options)


def form_of(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class TestCredentials:
    """Test credential validation at construction."""

    def test_refresh_token_grant(self):
        r = make_requester(RedditMock())
        assert r._grant_type == "refresh_token"

    def test_access_token_only(self):
        r = make_requester(
            RedditMock(), client_id=None, client_secret=None, refresh_token=None,
            access_token="fixed-token",
        )
        assert r._grant_type is None
        assert r.access_token == "fixed-token"

    def test_password_grant(self):
        r = make_requester(
            RedditMock(), refresh_token=None, username="someone", password="hunter2"
        )
        assert r._grant_type == "password"

    def test_client_credentials_grant(self):
        r = make_requester(RedditMock(), refresh_token=None)
        assert r._grant_type == "client_credentials"

    def test_missing_credentials(self):
        with pytest.raises(AuthenticationError, match="Missing credentials"):
            make_requester(RedditMock(), client_id=None, client_secret=None, refresh_token=None)

    def test_username_without_password(self):
        with pytest.raises(AuthenticationError, match="username and password"):
            make_requester(RedditMock(), refresh_token=None, username="someone")

    def test_missing_user_agent(self):
        with pytest.raises(ValidationError, match="user_agent"):
            make_requester(RedditMock(), user_agent="")

    def test_config_from_dict(self):
        r = make_requester(RedditMock(), config={"request_delay": 1500})
        assert isinstance(r.config, RequesterConfig)
        assert r.config.request_delay == 1500
        assert r.config.retry_error_codes == [502, 503, 504, 522]


class TestAccessTokens:
    """Test access-token acquisition and refresh."""

    @pytest.mark.asyncio
    async def test_first_request_obtains_token(self):
        reddit_mock = RedditMock().get("/api/v1/me", {"name": "someone"})
        r = make_requester(reddit_mock)

        result = await r.get("api/v1/me")

        assert result == {"name": "someone"}
        token_request = reddit_mock.token_requests()[0]
        assert str(token_request.url) == "https://www.reddit.com/api/v1/access_token"
        assert form_of(token_request) == {
            "grant_type": "refresh_token",
            "refresh_token": "refresh-token",
        }
        expected_auth = base64.b64encode(b"client-id:client-secret").decode()
        assert token_request.headers["authorization"] == f"Basic {expected_auth}"

        api_request = reddit_mock.api_requests()[0]
        assert api_request.headers["authorization"] == "bearer token-1"
        assert api_request.url.host == "oauth.reddit.com"
        assert r.scope == ["read", "identity"]

    @pytest.mark.asyncio
    async def test_token_is_reused(self):
        reddit_mock = RedditMock().get("/api/v1/me", {"name": "someone"})
        r = make_requester(reddit_mock)

        await r.get("api/v1/me")
        await r.get("api/v1/me")

        assert len(reddit_mock.token_requests()) == 1
        assert len(reddit_mock.api_requests()) == 2

    @pytest.mark.asyncio
    async def test_token_refreshed_near_expiry(self):
        reddit_mock = RedditMock().get("/api/v1/me", {"name": "someone"})
        reddit_mock.token_responses = [token_body("short", expires_in=5), token_body("long")]
        r = make_requester(reddit_mock)

        await r.get("api/v1/me")
        await r.get("api/v1/me")

        assert len(reddit_mock.token_requests()) == 2
        assert r.access_token == "long"

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_refresh(self):
        reddit_mock = RedditMock().get("/api/v1/me", {"name": "someone"})
        r = make_requester(reddit_mock)

        await asyncio.gather(*(r.get("api/v1/me") for _ in range(5)))

        assert len(reddit_mock.token_requests()) == 1

    @pytest.mark.asyncio
    async def test_password_grant_with_two_factor(self):
        reddit_mock = RedditMock().get("/api/v1/me", {"name": "someone"})
        r = make_requester(
            reddit_mock, refresh_token=None, username="someone",
            password="hunter2", two_factor_code="123456",
        )

        await r.get("api/v1/me")

        assert form_of(reddit_mock.token_requests()[0]) == {
            "grant_type": "password",
            "username": "someone",
            "password": "hunter2:123456",
        }

    @pytest.mark.asyncio
    async def test_client_credentials_grant_form(self):
        reddit_mock = RedditMock().get("/hot", {"ok": True})
        r = make_requester(reddit_mock, refresh_token=None)

        await r.get("hot")

        assert form_of(reddit_mock.token_requests()[0]) == {"grant_type": "client_credentials"}

    @pytest.mark.asyncio
    async def test_access_token_only_never_refreshes(self):
        reddit_mock = RedditMock().get("/api/v1/me", {"name": "someone"})
        r = make_requester(
            reddit_mock, client_id=None, client_secret=None, refresh_token=None,
            access_token="fixed-token",
        )

        await r.get("api/v1/me")

        assert reddit_mock.token_requests() == []
        assert reddit_mock.api_requests()[0].headers["authorization"] == "bearer fixed-token"

    @pytest.mark.asyncio
    async def test_token_endpoint_error_field(self):
        reddit_mock = RedditMock()
        reddit_mock.token_responses = [{"error": "invalid_grant"}]
        r = make_requester(reddit_mock)

        with pytest.raises(AuthenticationError, match="invalid_grant"):
            await r.get("api/v1/me")
        assert reddit_mock.api_requests() == []

    @pytest.mark.asyncio
    async def test_token_endpoint_rejects_credentials(self):
        reddit_mock = RedditMock()
        reddit_mock.token_responses = [httpx.Response(401)]
        r = make_requester(reddit_mock)

        with pytest.raises(AuthenticationError):
            await r.update_access_token()

    @pytest.mark.asyncio
    async def test_rejected_supplied_token_is_replaced(self):
        """A 401 on a token of unknown lifetime triggers one refresh and re-dispatch."""
        reddit_mock = RedditMock().get(
            "/api/v1/me",
            httpx.Response(401),
            {"name": "someone"},
        )
        r = make_requester(reddit_mock, access_token="stale")

        result = await r.get("api/v1/me")

        assert result == {"name": "someone"}
        assert len(reddit_mock.token_requests()) == 1
        assert [req.headers["authorization"] for req in reddit_mock.api_requests()] == [
            "bearer stale",
            "bearer token-1",
        ]

    @pytest.mark.asyncio
    async def test_401_on_fresh_token_is_raised(self):
        reddit_mock = RedditMock().get("/api/v1/me", httpx.Response(401))
        r = make_requester(reddit_mock)

        with pytest.raises(AuthenticationError):
            await r.get("api/v1/me")
        assert len(reddit_mock.api_requests()) == 1

    @pytest.mark.asyncio
    async def test_revoke_access_token(self):
        reddit_mock = RedditMock().get("/api/v1/me", {"name": "someone"}).post(
            "/api/v1/revoke_token", httpx.Response(204)
        )
        r = make_requester(reddit_mock)
        await r.get("api/v1/me")

        await r.revoke_access_token()

        revoke = [req for req in reddit_mock.requests if req.url.path == "/api/v1/revoke_token"][0]
        assert form_of(revoke) == {"token": "token-1", "token_type_hint": "access_token"}
        assert r.access_token is None
        assert r.scope == []

    @pytest.mark.asyncio
    async def test_revoke_refresh_token_disables_grant(self):
        reddit_mock = RedditMock().post("/api/v1/revoke_token", httpx.Response(204))
        r = make_requester(reddit_mock)

        await r.revoke_refresh_token()

        assert r.refresh_token is None
        with pytest.raises(AuthenticationError):
            await r.get("api/v1/me")


class TestDispatch:
    """Test the dispatch path: query, throttle, rate limits, retries."""

    @pytest.mark.asyncio
    async def test_raw_json_and_params(self):
        reddit_mock = RedditMock().get("/r/python/hot", {"ok": True})
        r = make_requester(reddit_mock)

        await r.get("r/python/hot", params={"limit": 5, "after": None})

        params = reddit_mock.api_requests()[0].url.params
        assert params["raw_json"] == "1"
        assert params["limit"] == "5"
        assert "after" not in params

    @pytest.mark.asyncio
    async def test_post_sends_form(self):
        reddit_mock = RedditMock().post("/api/vote", {})
        r = make_requester(reddit_mock)

        await r.post("api/vote", data={"dir": 1, "id": "t3_abc"})

        request = reddit_mock.api_requests()[0]
        assert request.method == "POST"
        assert form_of(request) == {"dir": "1", "id": "t3_abc"}

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self):
        reddit_mock = RedditMock().add("DELETE", "/api/v1/me/friends/x", httpx.Response(204))
        r = make_requester(reddit_mock)

        assert await r.delete("api/v1/me/friends/x") is None

    @pytest.mark.asyncio
    async def test_request_delay_spaces_dispatches(self):
        """Two sequential dispatches start at least request_delay apart."""
        starts = []

        def handler(request):
            starts.append(time.monotonic())
            return httpx.Response(200, json={})

        reddit_mock = RedditMock().get("/hot", handler)
        r = make_requester(reddit_mock, config={"request_delay": 200})

        await r.get("hot")
        await r.get("hot")

        assert starts[1] - starts[0] >= 0.19

    @pytest.mark.asyncio
    async def test_exhausted_quota_fails_fast(self):
        """Remaining quota 0 with a future reset fails the next dispatch immediately."""
        reddit_mock = RedditMock().get(
            "/hot",
            httpx.Response(200, json={}, headers=ratelimit_headers(0, 30)),
        )
        r = make_requester(reddit_mock)
        await r.get("hot")

        start = time.monotonic()
        with pytest.raises(RateLimitError) as exc_info:
            await r.get("hot")

        assert time.monotonic() - start < 0.1
        assert 29 < exc_info.value.retry_after <= 30
        assert len(reddit_mock.api_requests()) == 1

    @pytest.mark.asyncio
    async def test_exhausted_quota_waits_when_configured(self):
        logger = Mock()
        reddit_mock = RedditMock().get(
            "/hot",
            httpx.Response(200, json={}, headers=ratelimit_headers(0, 0.2)),
            httpx.Response(200, json={"second": True}, headers=ratelimit_headers(599, 600)),
        )
        r = make_requester(reddit_mock, logger=logger, config={"continue_after_ratelimit_error": True})
        await r.get("hot")

        start = time.monotonic()
        result = await r.get("hot")

        assert result == {"second": True}
        assert time.monotonic() - start >= 0.15
        events = [call.args[0] for call in logger.warning.call_args_list]
        assert "ratelimit_exceeded_waiting" in events

    @pytest.mark.asyncio
    async def test_headers_read_on_error_responses(self):
        reddit_mock = RedditMock().get(
            "/hot", httpx.Response(404, headers=ratelimit_headers(12, 60))
        )
        r = make_requester(reddit_mock)

        with pytest.raises(NotFoundError):
            await r.get("hot")
        assert r.ratelimit_remaining == 12

    @pytest.mark.asyncio
    async def test_retry_on_retryable_status(self):
        logger = Mock()
        reddit_mock = RedditMock().get("/hot", httpx.Response(503), {"ok": True})
        r = make_requester(reddit_mock, logger=logger)

        assert await r.get("hot") == {"ok": True}
        assert len(reddit_mock.api_requests()) == 2
        retry_calls = [c for c in logger.warning.call_args_list if c.args[0] == "request_retry"]
        assert retry_calls[0].kwargs["status_code"] == 503

    @pytest.mark.asyncio
    async def test_retry_applies_to_post(self):
        reddit_mock = RedditMock().post("/api/comment", httpx.Response(502), {"ok": True})
        r = make_requester(reddit_mock)

        assert await r.post("api/comment", data={"text": "hi"}) == {"ok": True}
        assert len(reddit_mock.api_requests()) == 2

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self):
        reddit_mock = RedditMock().get("/hot", httpx.Response(503))
        r = make_requester(reddit_mock, config={"max_retry_attempts": 3})

        with pytest.raises(ServerError) as exc_info:
            await r.get("hot")

        assert exc_info.value.status_code == 503
        assert len(reddit_mock.api_requests()) == 3

    @pytest.mark.asyncio
    async def test_non_retryable_status_raises_immediately(self):
        reddit_mock = RedditMock().get("/hot", httpx.Response(500))
        r = make_requester(reddit_mock)

        with pytest.raises(ServerError):
            await r.get("hot")
        assert len(reddit_mock.api_requests()) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_not_retried_by_default(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        reddit_mock = RedditMock().get("/hot", handler)
        r = make_requester(reddit_mock)

        with pytest.raises(TimeoutError):
            await r.get("hot")
        assert len(reddit_mock.api_requests()) == 1

    @pytest.mark.asyncio
    async def test_timeout_retried_when_408_configured(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={"ok": True})

        reddit_mock = RedditMock().get("/hot", handler)
        r = make_requester(reddit_mock, config={"retry_error_codes": [408, 503]})

        assert await r.get("hot") == {"ok": True}
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_warnings_can_be_disabled(self):
        logger = Mock()
        reddit_mock = RedditMock().get("/hot", httpx.Response(503), {"ok": True})
        r = make_requester(reddit_mock, logger=logger, config={"warnings": False})

        await r.get("hot")

        logger.warning.assert_not_called()

    @pytest.mark.asyncio
    async def test_debug_records_each_request(self):
        logger = Mock()
        reddit_mock = RedditMock().get("/hot", {"ok": True})
        r = make_requester(reddit_mock, logger=logger, config={"debug": True})

        await r.get("hot")

        events = [call.args[0] for call in logger.debug.call_args_list]
        assert "request_completed" in events


class TestConfigAndStats:
    """Test config updates, stats and lifecycle."""

    def test_update_config(self):
        r = make_requester(RedditMock())

        config = r.update_config(request_delay=500, request_timeout=1000)

        assert config.request_delay == 500
        assert r._throttle.request_delay == 500
        assert r._http.timeout.read == 1.0

    def test_update_config_rejects_invalid_values(self):
        r = make_requester(RedditMock())

        with pytest.raises(ValueError):
            r.update_config(request_delay=-1)

    @pytest.mark.asyncio
    async def test_get_ratelimit_stats(self):
        reddit_mock = RedditMock().get(
            "/hot", httpx.Response(200, json={}, headers=ratelimit_headers(42, 100))
        )
        r = make_requester(reddit_mock)
        await r.get("hot")

        stats = r.get_ratelimit_stats()

        assert stats.remaining == 42
        assert stats.exhausted is False
        assert 99 < stats.seconds_until_reset <= 100
        assert stats.next_request_in == 0

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_client(self):
        r = make_requester(RedditMock())

        async with r:
            pass

        assert r._http.is_closed
