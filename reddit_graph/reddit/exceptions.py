"""
Custom exceptions for the reddit request core and object graph.

This module defines the hierarchy of exceptions raised while talking to
reddit's API and while paginating or lazily fetching objects, plus the
mapping from HTTP responses to that hierarchy.
"""

from typing import Optional

import httpx


class RedditAPIError(Exception):
    """
    Base exception for all reddit API related errors.

    This is the parent class for all reddit-specific exceptions.
    Use this for catching any reddit-related error.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        """
        Initialize RedditAPIError.

        Args:
            message: Error description
            status_code: Optional HTTP status code from reddit API
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class AuthenticationError(RedditAPIError):
    """
    Raised when reddit API authentication fails.

    This occurs when:
    - The credential combination passed to the client is incomplete
    - The token endpoint rejects the client id, secret or grant
    - reddit answers a request with 401

    Example:
        >>> raise AuthenticationError("Invalid reddit credentials")
    """

    def __init__(self, message: str = "Reddit authentication failed") -> None:
        super().__init__(message, status_code=401)


class RateLimitError(RedditAPIError):
    """
    Raised when reddit's rate limit is exhausted and the client is not
    configured to wait for the next period.

    Attributes:
        retry_after: Number of seconds until the current period resets
        remaining: Quota reported by reddit (normally 0)

    Example:
        >>> raise RateLimitError(retry_after=15)
    """

    def __init__(
        self,
        retry_after: float,
        remaining: float = 0,
        message: str = "Reddit API rate limit exceeded"
    ) -> None:
        self.retry_after = retry_after
        self.remaining = remaining
        super().__init__(message, status_code=429)

    def __str__(self) -> str:
        """Return formatted error message with retry information."""
        return f"{self.message} (retry after {round(self.retry_after, 1)}s, remaining: {self.remaining})"


class NotFoundError(RedditAPIError):
    """
    Raised when a requested reddit resource does not exist.

    Example:
        >>> raise NotFoundError("r/invalidname")
    """

    def __init__(self, resource: str, message: Optional[str] = None) -> None:
        self.resource = resource

        if message is None:
            message = f"'{resource}' not found"

        super().__init__(message, status_code=404)


class PermissionError(RedditAPIError):
    """
    Raised when access to a reddit resource is forbidden.

    This occurs when:
    - Subreddit is private and the account lacks access
    - The token is missing the scope for the endpoint
    """

    def __init__(self, message: str = "Access to Reddit resource forbidden") -> None:
        super().__init__(message, status_code=403)


class ServerError(RedditAPIError):
    """
    Raised when reddit returns a server error (5xx).

    These errors are typically transient; the request core retries the
    ones listed in ``retry_error_codes``.

    Example:
        >>> raise ServerError("Reddit API returned 503", status_code=503)
    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message, status_code=status_code)


class ValidationError(RedditAPIError):
    """
    Raised when arguments are invalid.

    This is a client-side error raised before any network call and is
    never retried.

    Example:
        >>> raise ValidationError("must be a non-negative number", field="amount")
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field

        if field:
            message = f"{field}: {message}"

        super().__init__(message, status_code=422)


class InvalidMethodCallError(ValidationError):
    """
    Raised when a method is called with arguments it cannot work with,
    e.g. a non-numeric ``amount`` passed to ``Listing.fetch_more``.
    """


class InvalidUserError(ValidationError):
    """
    Raised when a URI is computed for a user whose name cannot exist on reddit.
    """

    def __init__(self, username: object) -> None:
        self.username = username
        super().__init__(
            f"Cannot fetch information on the user '{username}'. "
            "Please be sure you have the right username."
        )


class TimeoutError(RedditAPIError):
    """
    Raised when a reddit API request times out.

    Retried only when 408 is part of the configured retryable codes.

    Example:
        >>> raise TimeoutError("Request timed out", timeout_seconds=30)
    """

    def __init__(
        self,
        message: str = "Reddit API request timed out",
        timeout_seconds: float = 30
    ) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{message} ({timeout_seconds}s)", status_code=408)


def error_from_response(response: httpx.Response) -> RedditAPIError:
    """
    Map an unsuccessful HTTP response to the exception hierarchy.

    Args:
        response: Response with a 4xx or 5xx status code

    Returns:
        The matching RedditAPIError subclass instance (not raised)
    """
    status = response.status_code
    path = response.request.url.path if response.request else ""
    message = f"Received status code {status} from reddit for {path}"

    if status == 401:
        return AuthenticationError(message)
    if status == 403:
        return PermissionError(message)
    if status == 404:
        return NotFoundError(path, message)
    if status == 429:
        retry_after = float(response.headers.get("x-ratelimit-reset", 0) or 0)
        return RateLimitError(retry_after=retry_after)
    if status >= 500:
        return ServerError(message, status_code=status)
    return RedditAPIError(message, status_code=status)
