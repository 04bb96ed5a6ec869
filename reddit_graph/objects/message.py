"""
Private messages.
"""

from typing import Any, Dict, Optional

from reddit_graph.objects.listing import Listing
from reddit_graph.objects.tree import build_replies_tree, find_message_in_tree
from reddit_graph.objects.votable import ReplyableContent
from reddit_graph.reddit.exceptions import NotFoundError


class PrivateMessage(ReplyableContent):
    """
    A private message.

    Fetching a message loads its whole conversation; ``replies`` holds the
    messages that answer this one, threaded.
    """

    _name = "PrivateMessage"

    def __init__(self, options: Optional[Dict[str, Any]], r: Any, has_fetched: bool = False) -> None:
        super().__init__(options, r, has_fetched)
        if "name" not in self.__dict__ and "id" in self.__dict__:
            self.name = f"t4_{self.__dict__['id']}"

    @property
    def _uri(self) -> str:
        return f"message/messages/{self.__dict__['id']}"

    def _transform_api_response(self, response: Any) -> Any:
        if not response:
            raise NotFoundError(self.__dict__["name"])
        root = response[0]
        replies = root.__dict__.get("replies")
        thread = build_replies_tree(list(replies) if isinstance(replies, Listing) else [])
        root.replies = Listing({"children": thread}, self._r)

        message = find_message_in_tree(self.__dict__["name"], root)
        if message is None:
            raise NotFoundError(self.__dict__["name"])
        return message

    async def mark_as_read(self) -> "PrivateMessage":
        await self._post("api/read_message", data={"id": self.__dict__["name"]})
        return self

    async def mark_as_unread(self) -> "PrivateMessage":
        await self._post("api/unread_message", data={"id": self.__dict__["name"]})
        return self
