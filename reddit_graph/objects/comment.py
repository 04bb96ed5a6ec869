"""
Reddit comments.
"""

import math
from typing import Any, Dict, Optional

from reddit_graph.objects.listing import Listing
from reddit_graph.objects.more import More
from reddit_graph.objects.tree import add_empty_replies_listing, type_name
from reddit_graph.objects.votable import VoteableContent
from reddit_graph.reddit.exceptions import NotFoundError


class Comment(VoteableContent):
    """
    A reddit comment.

    A fetched comment always has a ``replies`` Listing. reddit sends an
    empty string for comments without replies; that becomes a finished,
    empty comment Listing.

    Example:
        >>> comment = r.get_comment("c0hkuyq")
        >>> await comment.body
        'This is a little too interesting for my liking'
    """

    _name = "Comment"

    def __init__(self, options: Optional[Dict[str, Any]], r: Any, has_fetched: bool = False) -> None:
        options = dict(options or {})
        children = options.pop("_children", None)
        super().__init__(options, r, has_fetched)
        self._children: Dict[str, Any] = children if children is not None else {}
        if "name" not in self.__dict__ and "id" in self.__dict__:
            self.name = f"t1_{self.__dict__['id']}"

        if has_fetched:
            replies = self.__dict__.get("replies")
            if replies == "":
                self.replies = Listing({
                    "children": [],
                    "_more": More.empty(r),
                    "_is_comment_list": True,
                }, r)
            elif isinstance(replies, Listing) and replies._more is not None and not replies._more.link_id:
                replies._more.link_id = self.__dict__.get("link_id")

    @property
    def _uri(self) -> str:
        if self.__dict__.get("link_id"):
            return f"comments/{self.__dict__['link_id'][3:]}"
        return "api/info"

    @property
    def _uri_params(self) -> Dict[str, Any]:
        if not self.__dict__.get("link_id"):
            return {"id": self.__dict__["name"]}
        params = {"comment": self.__dict__["id"]}
        if self.__dict__.get("_sort"):
            params["sort"] = self.__dict__["_sort"]
        return params

    def _transform_api_response(self, response: Any) -> Any:
        sort = self.__dict__.get("_sort")

        # Permalink view of the comment's submission
        if type_name(response) == "Submission":
            comments = response.__dict__.get("comments") or []
            if not len(comments):
                raise NotFoundError(self.__dict__["name"])
            comment = comments[0]
            children = dict(response.__dict__.get("_children") or {})
            children.pop(comment.id, None)
            comment._children = children
            comment._sort = sort
            return comment

        # api/info
        if not response:
            raise NotFoundError(self.__dict__["name"])
        comment = response[0]
        comment._sort = sort
        return add_empty_replies_listing(comment)

    async def fetch_more(self, amount: float, *, skip_replies: bool = False) -> Listing:
        """
        Fetch more replies and store the extended Listing on this comment.

        Returns:
            The extended replies Listing
        """
        if "replies" not in self.__dict__:
            await self.fetch()
        replies = await self.__dict__["replies"].fetch_more(amount, skip_replies=skip_replies, append=True)
        self._children.update(replies._children)
        self.replies = replies
        return replies

    async def fetch_all(self, *, skip_replies: bool = False) -> Listing:
        """Fetch every remaining reply. See ``fetch_more``."""
        return await self.fetch_more(math.inf, skip_replies=skip_replies)
