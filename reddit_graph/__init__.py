"""
reddit-graph: reddit's API as a graph of lazily-fetched objects.

Example:
    >>> from reddit_graph import RedditClient
    >>> async with RedditClient.from_env() as r:
    ...     comments = (await r.get_submission("2np694").fetch()).comments
    ...     everything = await comments.fetch_all()
"""

from reddit_graph.constants import VERSION
from reddit_graph.reddit import (
    RedditAPIError,
    RedditClient,
    Requester,
)
from reddit_graph.models import RequesterConfig
from reddit_graph.objects import (
    Comment,
    Listing,
    More,
    PrivateMessage,
    RedditContent,
    RedditUser,
    Submission,
    Subreddit,
)

__version__ = VERSION

__all__ = [
    "RedditClient",
    "Requester",
    "RequesterConfig",
    "RedditAPIError",
    "RedditContent",
    "Listing",
    "More",
    "Comment",
    "Submission",
    "RedditUser",
    "Subreddit",
    "PrivateMessage",
]
