"""
Reddit API client.

RedditClient extends the request core with the object graph: a dispatch
table from type names to entity classes, normalization of every response
into typed objects, factories for unfetched entities, and the listing
endpoints built on top of them.
"""

import os
import re
from typing import Any, Dict, Optional

from reddit_graph.constants import MAX_LISTING_ITEMS
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
from reddit_graph.reddit.normalizer import ResponseNormalizer
from reddit_graph.reddit.requester import Requester


class RedditClient(Requester):
    """
    Client presenting reddit's API as a graph of lazily-fetched objects.

    Each instance owns its own token, quota, throttle and object dispatch
    table; nothing is shared between instances.

    Example:
        >>> async with RedditClient(
        ...     user_agent="python:my-app:v1.0 (by /u/me)",
        ...     client_id="abc",
        ...     client_secret="xyz",
        ...     refresh_token="token",
        ... ) as r:
        ...     hot = await r.get_hot("python", limit=10)
        ...     more = await hot.fetch_more(10)
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._object_types: Dict[str, type] = {
            "Comment": Comment,
            "RedditUser": RedditUser,
            "Submission": Submission,
            "PrivateMessage": PrivateMessage,
            "Subreddit": Subreddit,
            "Listing": Listing,
            "More": More,
            "RedditContent": RedditContent,
        }
        self._normalizer = ResponseNormalizer(self)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "RedditClient":
        """
        Build a client from environment variables.

        Reads REDDIT_CLIENT_ID, REDDIT_CLIENT_SECRET, REDDIT_REFRESH_TOKEN,
        REDDIT_ACCESS_TOKEN, REDDIT_USERNAME, REDDIT_PASSWORD and
        REDDIT_USER_AGENT. Keyword arguments override the environment.

        Raises:
            AuthenticationError: If the variables do not form a usable
                credential combination
        """
        options = {
            "user_agent": os.getenv(
                "REDDIT_USER_AGENT",
                "reddit-graph/0.1 (by /u/reddit-graph)"
            ),
            "client_id": os.getenv("REDDIT_CLIENT_ID"),
            "client_secret": os.getenv("REDDIT_CLIENT_SECRET"),
            "refresh_token": os.getenv("REDDIT_REFRESH_TOKEN"),
            "access_token": os.getenv("REDDIT_ACCESS_TOKEN"),
            "username": os.getenv("REDDIT_USERNAME"),
            "password": os.getenv("REDDIT_PASSWORD"),
        }
        options.update(kwargs)
        return cls(**options)

    # ------------------------------------------------------------------
    # Object construction
    # ------------------------------------------------------------------

    def _new_object(self, type_name: str, content: Any = None, has_fetched: bool = False) -> Any:
        """
        Instantiate the class registered for ``type_name``.

        Unknown names fall back to RedditContent; lists are returned as is.
        """
        if isinstance(content, list):
            return content
        object_type = self._object_types.get(type_name, RedditContent)
        return object_type(content or {}, self, has_fetched)

    def _populate(self, body: Any, url: str, params: Optional[Dict[str, Any]]) -> Any:
        return self._normalizer.populate(body, url, params)

    async def _get_listing(self, uri: str, qs: Optional[Dict[str, Any]] = None, **listing_options: Any) -> Any:
        """
        Fetch a Listing endpoint.

        A high ``count`` is always sent so reddit includes a ``before``
        cursor. With a ``limit`` or listing options the result is built by
        extending an empty Listing; otherwise it is a plain GET.
        """
        qs = {k: v for k, v in (qs or {}).items() if v is not None}
        query = {"count": 9999, **qs}
        if qs.get("limit") or listing_options:
            listing = self._new_object("Listing", {"_query": query, "_uri": uri, **listing_options})
            return await listing.fetch_more(qs.get("limit") or MAX_LISTING_ITEMS)
        return await self.get(uri, params=query)

    # ------------------------------------------------------------------
    # Factories (no request is sent)
    # ------------------------------------------------------------------

    def get_user(self, name: str) -> RedditUser:
        return self._new_object("RedditUser", {"name": re.sub(r"^/?u/", "", name)})

    def get_comment(
        self,
        comment_id: str,
        link_id: Optional[str] = None,
        sort: Optional[str] = None
    ) -> Comment:
        """
        Get an unfetched Comment.

        Args:
            comment_id: Base36 id of the comment
            link_id: Fullname of its submission; when known the comment is
                fetched through the submission's permalink view, which
                includes its replies
            sort: Sort order of the replies
        """
        options: Dict[str, Any] = {"id": comment_id}
        if link_id:
            options["link_id"] = link_id
        if sort:
            options["_sort"] = sort
        return self._new_object("Comment", options)

    def get_submission(self, submission_id: str, sort: Optional[str] = None) -> Submission:
        options: Dict[str, Any] = {"id": submission_id}
        if sort:
            options["_sort"] = sort
        return self._new_object("Submission", options)

    def get_subreddit(self, display_name: str) -> Subreddit:
        return self._new_object("Subreddit", {"display_name": re.sub(r"^/?r/", "", display_name)})

    def get_message(self, message_id: str) -> PrivateMessage:
        return self._new_object("PrivateMessage", {"id": message_id})

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def _get_sorted_frontpage(self, sort_type: str, subreddit: Optional[str], options: Dict[str, Any]) -> Any:
        uri = f"r/{subreddit}/{sort_type}" if subreddit else sort_type
        return await self._get_listing(uri, options)

    async def get_hot(self, subreddit: Optional[str] = None, **options: Any) -> Any:
        return await self._get_sorted_frontpage("hot", subreddit, options)

    async def get_new(self, subreddit: Optional[str] = None, **options: Any) -> Any:
        return await self._get_sorted_frontpage("new", subreddit, options)

    async def get_rising(self, subreddit: Optional[str] = None, **options: Any) -> Any:
        return await self._get_sorted_frontpage("rising", subreddit, options)

    async def get_top(self, subreddit: Optional[str] = None, time: Optional[str] = None, **options: Any) -> Any:
        return await self._get_sorted_frontpage("top", subreddit, {**options, "t": time})

    async def get_controversial(self, subreddit: Optional[str] = None, time: Optional[str] = None, **options: Any) -> Any:
        return await self._get_sorted_frontpage("controversial", subreddit, {**options, "t": time})

    async def get_new_comments(self, subreddit: Optional[str] = None, **options: Any) -> Any:
        return await self._get_sorted_frontpage("comments", subreddit, options)

    async def get_inbox(self, filter: Optional[str] = None, **options: Any) -> Any:
        return await self._get_listing(f"message/{filter or 'inbox'}", options)

    async def get_me(self) -> RedditUser:
        """
        Fetch the authenticated account.

        Returns:
            A fetched RedditUser
        """
        result = await self.get("api/v1/me")
        return self._new_object("RedditUser", result, True)
