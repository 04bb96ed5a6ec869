"""
Subreddits.
"""

from typing import Any, Optional

from reddit_graph.objects.base import RedditContent
from reddit_graph.objects.tree import type_name
from reddit_graph.reddit.exceptions import NotFoundError


class Subreddit(RedditContent):
    """
    A subreddit.

    Example:
        >>> python = r.get_subreddit("python")
        >>> await python.subscribers
        1200000
    """

    _name = "Subreddit"

    @property
    def _uri(self) -> str:
        return f"r/{self.__dict__['display_name']}/about"

    def _transform_api_response(self, response: Any) -> Any:
        # reddit answers about pages of missing subreddits with a search Listing
        if type_name(response) != "Subreddit":
            raise NotFoundError(
                f"r/{self.__dict__['display_name']}",
                f"The subreddit r/{self.__dict__['display_name']} does not exist."
            )
        return response

    async def get_hot(self, **options: Any) -> Any:
        return await self._r.get_hot(self.__dict__["display_name"], **options)

    async def get_new(self, **options: Any) -> Any:
        return await self._r.get_new(self.__dict__["display_name"], **options)

    async def get_top(self, time: Optional[str] = None, **options: Any) -> Any:
        return await self._r.get_top(self.__dict__["display_name"], time=time, **options)
