"""
Authenticated request core for the reddit API.

Every call to reddit made by this package goes through
``Requester.oauth_request``, which applies, in order:

1. the rate-limit check (fail fast, or warn and wait for the reset)
2. the throttle gate (minimum delay between dispatches)
3. exponential backoff when the dispatch is a retry
4. access-token refresh when the token is missing or about to expire
5. the HTTP call itself, after which the rate-limit headers are read
6. error mapping and the retry policy
7. the ``_populate`` hook that turns raw JSON into objects
"""

import asyncio
import math
import random
import time
from typing import Any, Dict, List, Optional, Union

import httpx

from reddit_graph.constants import MAX_TOKEN_LATENCY, VERSION
from reddit_graph.models.config import RequesterConfig
from reddit_graph.models.responses import AccessTokenResponse, RatelimitStats
from reddit_graph.reddit.exceptions import (
    AuthenticationError,
    RateLimitError,
    RedditAPIError,
    TimeoutError,
    ValidationError,
    error_from_response,
)
from reddit_graph.reddit.rate_limiter import RatelimitTracker, RequestThrottle
from reddit_graph.utils.logger import get_logger, log_request


class Requester:
    """
    Owns the credentials, the access token and the request pacing of one
    client instance.

    Nothing here is global: two Requester instances never share tokens,
    quotas or throttle state.

    Attributes:
        user_agent: User-Agent sent with every request
        access_token: Current bearer token (None until obtained)
        scope: Scopes granted to the current token
        config: Validated RequesterConfig

    Example:
        >>> r = Requester(
        ...     user_agent="python:my-app:v1.0 (by /u/me)",
        ...     client_id="abc",
        ...     client_secret="xyz",
        ...     refresh_token="token",
        ... )
        >>> about = await r.get("api/v1/me")
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        access_token: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        two_factor_code: Optional[str] = None,
        config: Union[RequesterConfig, Dict[str, Any], None] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Any = None,
    ) -> None:
        """
        Initialize the requester and validate the credential combination.

        Raises:
            ValidationError: If no user agent is given
            AuthenticationError: If the credentials cannot produce a token
        """
        if not user_agent:
            raise ValidationError(
                "a user agent is required to talk to reddit",
                field="user_agent"
            )

        self._grant_type = self._resolve_grant_type(
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
            access_token=access_token,
            username=username,
            password=password,
        )

        self.user_agent = user_agent
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.access_token = access_token
        self.username = username
        self.password = password
        self.two_factor_code = two_factor_code
        self.scope: List[str] = []

        # Supplied tokens have an unknown lifetime
        self._token_expiration = math.inf if access_token else 0.0

        if isinstance(config, dict):
            config = RequesterConfig(**config)
        self.config: RequesterConfig = config or RequesterConfig()

        self._logger = logger or get_logger(__name__)
        self._throttle = RequestThrottle(self.config.request_delay)
        self._ratelimit = RatelimitTracker()
        self._token_lock = asyncio.Lock()
        self._http = httpx.AsyncClient(
            base_url=f"https://oauth.{self.config.endpoint_domain}",
            headers={"User-Agent": f"{user_agent} reddit-graph/{VERSION}"},
            timeout=self.config.request_timeout_seconds,
            transport=transport,
        )

        self._logger.debug(
            "requester_initialized",
            grant_type=self._grant_type,
            endpoint_domain=self.config.endpoint_domain,
            request_delay_ms=self.config.request_delay,
        )

    @staticmethod
    def _resolve_grant_type(
        client_id: Optional[str],
        client_secret: Optional[str],
        refresh_token: Optional[str],
        access_token: Optional[str],
        username: Optional[str],
        password: Optional[str],
    ) -> Optional[str]:
        """
        Pick the OAuth grant used to obtain new access tokens.

        Returns:
            The grant type, or None when only a fixed access token is available

        Raises:
            AuthenticationError: If the combination is incomplete
        """
        has_client = bool(client_id) and client_secret is not None

        if has_client:
            if refresh_token:
                return "refresh_token"
            if username or password:
                if not (username and password):
                    raise AuthenticationError(
                        "Both username and password are required for the password grant"
                    )
                return "password"
            return "client_credentials"

        if access_token:
            return None

        raise AuthenticationError(
            "Missing credentials passed to reddit client. You must pass either "
            "(a) client_id, client_secret and refresh_token; (b) access_token; "
            "(c) client_id, client_secret, username and password; or "
            "(d) client_id and client_secret for application-only access."
        )

    # ------------------------------------------------------------------
    # Logging helpers
    # ------------------------------------------------------------------

    def _warn(self, event: str, **kwargs: Any) -> None:
        if self.config.warnings:
            self._logger.warning(event, **kwargs)

    def _debug(self, event: str, **kwargs: Any) -> None:
        if self.config.debug:
            self._logger.debug(event, **kwargs)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_config(self, **overrides: Any) -> RequesterConfig:
        """
        Apply config overrides and return the new config.

        Raises:
            pydantic.ValidationError: If an override is invalid
        """
        self.config = RequesterConfig.model_validate(
            {**self.config.model_dump(), **overrides}
        )
        self._throttle.set_delay(self.config.request_delay)
        self._http.timeout = httpx.Timeout(self.config.request_timeout_seconds)
        return self.config

    def get_ratelimit_stats(self) -> RatelimitStats:
        """Snapshot of the quota reddit reported and the throttle state."""
        return RatelimitStats(
            **self._ratelimit.get_stats(),
            next_request_in=self._throttle.next_available_in(),
        )

    @property
    def ratelimit_remaining(self) -> Optional[float]:
        return self._ratelimit.remaining

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    @property
    def _token_url(self) -> str:
        return f"https://www.{self.config.endpoint_domain}/api/v1/access_token"

    @property
    def _revoke_url(self) -> str:
        return f"https://www.{self.config.endpoint_domain}/api/v1/revoke_token"

    def _token_expires_within(self, seconds: float) -> bool:
        return time.monotonic() + seconds >= self._token_expiration

    def _token_may_be_stale(self) -> bool:
        """True when a 401 could be cured by fetching a new token."""
        if self._grant_type is None:
            return False
        return (
            self._token_expiration == math.inf
            or self._token_expires_within(MAX_TOKEN_LATENCY)
        )

    def _grant_form(self) -> Dict[str, str]:
        if self._grant_type == "refresh_token":
            return {"grant_type": "refresh_token", "refresh_token": self.refresh_token}
        if self._grant_type == "password":
            password = self.password
            if self.two_factor_code:
                password = f"{password}:{self.two_factor_code}"
            return {
                "grant_type": "password",
                "username": self.username,
                "password": password,
            }
        return {"grant_type": "client_credentials"}

    async def _ensure_access_token(self) -> None:
        if self.access_token and not self._token_expires_within(MAX_TOKEN_LATENCY):
            return
        if self._grant_type is None:
            if self.access_token:
                return
            raise AuthenticationError(
                "No access token available and no credentials to obtain one"
            )

        async with self._token_lock:
            # Another dispatch may have refreshed while this one waited
            if self.access_token and not self._token_expires_within(MAX_TOKEN_LATENCY):
                return
            await self._request_access_token()

    async def update_access_token(self) -> str:
        """
        Obtain a new access token using the stored credentials.

        Concurrent callers are serialized so only one token request is in
        flight at a time.

        Returns:
            The new access token

        Raises:
            AuthenticationError: If reddit rejects the credentials or no
                grant is available
        """
        if self._grant_type is None:
            raise AuthenticationError(
                "Cannot refresh the access token without client credentials"
            )
        async with self._token_lock:
            await self._request_access_token()
        return self.access_token

    async def _request_access_token(self) -> None:
        start = time.perf_counter()
        try:
            response = await self._http.post(
                self._token_url,
                data=self._grant_form(),
                auth=(self.client_id, self.client_secret or ""),
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(
                "Access token request timed out",
                timeout_seconds=self.config.request_timeout_seconds
            ) from e
        except httpx.HTTPError as e:
            raise RedditAPIError(f"Failed to reach reddit token endpoint: {e}") from e

        if response.status_code in (400, 401, 403):
            raise AuthenticationError(
                f"reddit rejected the {self._grant_type} grant "
                f"(status {response.status_code})"
            )
        if response.is_error:
            raise error_from_response(response)

        token = AccessTokenResponse.model_validate(response.json())
        if token.error or not token.access_token:
            raise AuthenticationError(
                f"reddit rejected the {self._grant_type} grant: {token.error or 'no token returned'}"
            )

        self.access_token = token.access_token
        self._token_expiration = time.monotonic() + token.expires_in
        self.scope = token.scope.split()
        if token.refresh_token:
            self.refresh_token = token.refresh_token

        self._logger.info(
            "access_token_refreshed",
            grant_type=self._grant_type,
            expires_in=token.expires_in,
            scope=self.scope,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )

    def _invalidate_access_token(self) -> None:
        self.access_token = None
        self._token_expiration = 0.0

    async def _revoke_token(self, token: Optional[str], token_type: str) -> None:
        if not self.client_id or self.client_secret is None:
            raise AuthenticationError("Revoking a token requires client_id and client_secret")
        if not token:
            return
        try:
            response = await self._http.post(
                self._revoke_url,
                data={"token": token, "token_type_hint": token_type},
                auth=(self.client_id, self.client_secret),
            )
        except httpx.HTTPError as e:
            raise RedditAPIError(f"Failed to revoke {token_type}: {e}") from e
        if response.is_error:
            raise error_from_response(response)
        self._logger.info("token_revoked", token_type=token_type)

    async def revoke_access_token(self) -> None:
        """
        Invalidate the current access token on reddit's side.

        The requester can still obtain a new token afterwards if it holds
        client credentials.
        """
        await self._revoke_token(self.access_token, "access_token")
        self._invalidate_access_token()
        self.scope = []

    async def revoke_refresh_token(self) -> None:
        """
        Invalidate the refresh token (and with it the access token).

        The refresh_token grant is no longer available afterwards.
        """
        await self._revoke_token(self.refresh_token, "refresh_token")
        self.refresh_token = None
        self._invalidate_access_token()
        self.scope = []
        if self._grant_type == "refresh_token":
            self._grant_type = "password" if (self.username and self.password) else None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _await_ratelimit(self) -> None:
        if not self._ratelimit.is_exhausted():
            return

        wait_seconds = self._ratelimit.seconds_until_reset()
        if not self.config.continue_after_ratelimit_error:
            raise RateLimitError(
                retry_after=wait_seconds,
                remaining=self._ratelimit.remaining
            )

        self._warn(
            "ratelimit_exceeded_waiting",
            wait_seconds=round(wait_seconds, 2),
        )
        await asyncio.sleep(wait_seconds)

    def _backoff_seconds(self, attempts: int) -> float:
        factor = 2 ** (attempts - 1) + random.random() - 0.3
        return max(0.0, self.config.retry_backoff * factor / 1000)

    def _is_retryable(self, status_code: Optional[int], attempts: int) -> bool:
        return (
            status_code in self.config.retry_error_codes
            and attempts < self.config.max_retry_attempts
        )

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]],
        data: Any,
        json: Any,
    ) -> httpx.Response:
        query = {"raw_json": 1}
        if params:
            query.update({k: v for k, v in params.items() if v is not None})
        headers = {"Authorization": f"bearer {self.access_token}"}

        start = time.perf_counter()
        try:
            response = await self._http.request(
                method,
                url.lstrip("/"),
                params=query,
                data=data,
                json=json,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            if self.config.debug:
                log_request(
                    self._logger, method, url, None,
                    (time.perf_counter() - start) * 1000,
                    error="timeout",
                )
            raise TimeoutError(
                f"Request to {url} timed out",
                timeout_seconds=self.config.request_timeout_seconds
            ) from e
        except httpx.HTTPError as e:
            raise RedditAPIError(f"Failed to reach reddit: {e}") from e

        self._ratelimit.update(response.headers)

        if self.config.debug:
            log_request(
                self._logger,
                method,
                url,
                response.status_code,
                (time.perf_counter() - start) * 1000,
                error=response.reason_phrase if response.is_error else None,
                ratelimit_remaining=self._ratelimit.remaining,
            )
        return response

    async def oauth_request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        json: Any = None,
        attempts: int = 1,
        _auth_retried: bool = False,
    ) -> Any:
        """
        Send an authenticated request to the API host.

        Args:
            method: HTTP verb
            url: Path relative to ``https://oauth.<endpoint_domain>``
            params: Query string parameters (None values are dropped)
            data: Form body
            json: JSON body
            attempts: Number of this attempt (1 for the first dispatch)

        Returns:
            The response body passed through ``_populate``

        Raises:
            RateLimitError: If the quota is exhausted and the client is not
                configured to wait
            RedditAPIError: For non-retryable or exhausted HTTP failures
        """
        await self._await_ratelimit()
        await self._throttle.wait()
        if attempts > 1:
            await asyncio.sleep(self._backoff_seconds(attempts))
        await self._ensure_access_token()

        try:
            response = await self._send(method, url, params, data, json)
        except TimeoutError as e:
            if self._is_retryable(e.status_code, attempts):
                self._warn("request_retry", method=method, url=url, status_code=408, attempt=attempts)
                return await self.oauth_request(
                    method, url, params=params, data=data, json=json, attempts=attempts + 1
                )
            raise

        if response.is_error:
            if response.status_code == 401 and not _auth_retried and self._token_may_be_stale():
                self._debug("access_token_rejected", url=url)
                self._invalidate_access_token()
                return await self.oauth_request(
                    method, url, params=params, data=data, json=json,
                    attempts=attempts, _auth_retried=True,
                )

            error = error_from_response(response)
            if self._is_retryable(response.status_code, attempts):
                self._warn(
                    "request_retry",
                    method=method,
                    url=url,
                    status_code=response.status_code,
                    attempt=attempts,
                )
                return await self.oauth_request(
                    method, url, params=params, data=data, json=json, attempts=attempts + 1
                )
            raise error

        return self._populate(self._parse_body(response), url, params)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _populate(self, body: Any, url: str, params: Optional[Dict[str, Any]]) -> Any:
        """Hook turning a raw body into objects. Returns the body unchanged here."""
        return body

    async def get(self, url: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.oauth_request("GET", url, params=params)

    async def post(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        json: Any = None,
    ) -> Any:
        return await self.oauth_request("POST", url, params=params, data=data, json=json)

    async def put(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        json: Any = None,
    ) -> Any:
        return await self.oauth_request("PUT", url, params=params, data=data, json=json)

    async def patch(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        json: Any = None,
    ) -> Any:
        return await self.oauth_request("PATCH", url, params=params, data=data, json=json)

    async def delete(self, url: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.oauth_request("DELETE", url, params=params)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def __aenter__(self) -> "Requester":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} grant_type={self._grant_type!r} user_agent={self.user_agent!r}>"
