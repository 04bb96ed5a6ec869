"""
Reddit user accounts.
"""

from typing import Any, Dict, Optional

from reddit_graph.constants import USERNAME_REGEX
from reddit_graph.objects.base import RedditContent
from reddit_graph.reddit.exceptions import InvalidUserError


class RedditUser(RedditContent):
    """
    A reddit user.

    Example:
        >>> user = r.get_user("spez")
        >>> await user.link_karma
        123456
    """

    _name = "RedditUser"

    @property
    def _uri(self) -> str:
        name = self.__dict__.get("name")
        if not isinstance(name, str) or not USERNAME_REGEX.match(name):
            raise InvalidUserError(name)
        return f"user/{name}/about"

    async def get_submissions(self, **options: Any) -> Any:
        """Listing of the user's submissions."""
        return await self._get_listing(f"user/{self.__dict__['name']}/submitted", options)

    async def get_comments(self, **options: Any) -> Any:
        """Listing of the user's comments."""
        return await self._get_listing(f"user/{self.__dict__['name']}/comments", options)

    async def get_overview(self, **options: Any) -> Any:
        """Listing of the user's submissions and comments."""
        return await self._get_listing(f"user/{self.__dict__['name']}/overview", options)
