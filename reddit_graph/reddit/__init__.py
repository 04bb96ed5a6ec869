"""
Reddit API integration layer.

This module provides the request core and the client built on it:
- Requester: credentials, token lifecycle, throttling, rate limits, retries
- RedditClient: Requester plus the typed object graph
- Custom exception hierarchy for error handling
- Response normalization into typed objects
- Request pacing (RequestThrottle, RatelimitTracker)

Example:
    >>> from reddit_graph.reddit import RedditClient
    >>> r = RedditClient.from_env()
    >>> hot = await r.get_hot("python", limit=25)
"""

# Exceptions load first: the object modules depend on them
from reddit_graph.reddit.exceptions import (
    RedditAPIError,
    AuthenticationError,
    RateLimitError,
    NotFoundError,
    PermissionError,
    ServerError,
    ValidationError,
    InvalidMethodCallError,
    InvalidUserError,
    TimeoutError,
    error_from_response,
)
from reddit_graph.reddit.rate_limiter import RatelimitTracker, RequestThrottle
from reddit_graph.reddit.requester import Requester
from reddit_graph.reddit.normalizer import ResponseNormalizer
from reddit_graph.reddit.client import RedditClient

__all__ = [
    # Clients
    "Requester",
    "RedditClient",
    # Exceptions
    "RedditAPIError",
    "AuthenticationError",
    "RateLimitError",
    "NotFoundError",
    "PermissionError",
    "ServerError",
    "ValidationError",
    "InvalidMethodCallError",
    "InvalidUserError",
    "TimeoutError",
    "error_from_response",
    # Normalization
    "ResponseNormalizer",
    # Rate limiting
    "RequestThrottle",
    "RatelimitTracker",
]
