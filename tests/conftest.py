"""
Shared fixtures: a reddit client wired to an in-memory mock of reddit.
"""

from unittest.mock import Mock

import pytest

from reddit_graph.reddit.client import RedditClient
from tests.builders import RedditMock


@pytest.fixture
def reddit_mock():
    """Routing mock of reddit's API."""
    return RedditMock()


@pytest.fixture
def mock_logger():
    """Logger double recording warnings and debug records."""
    return Mock()


@pytest.fixture
def client(reddit_mock, mock_logger):
    """Client using the refresh-token grant, no throttle and no retry backoff."""
    return RedditClient(
        user_agent="python:reddit-graph-tests:v0.1",
        client_id="client-id",
        client_secret="client-secret",
        refresh_token="refresh-token",
        transport=reddit_mock.transport,
        config={"retry_backoff": 0},
        logger=mock_logger,
    )
