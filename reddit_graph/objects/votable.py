"""
Voting and replying, shared by comments, submissions and messages.
"""

import math
from typing import Any, Dict

from reddit_graph.objects.base import RedditContent
from reddit_graph.objects.tree import handle_json_errors
from reddit_graph.reddit.exceptions import InvalidMethodCallError


class ReplyableContent(RedditContent):
    """Content that can be replied to."""

    async def reply(self, text: str) -> Any:
        """
        Submit a reply.

        Args:
            text: Markdown body of the reply

        Returns:
            The newly created Comment (or PrivateMessage)
        """
        response = await self._post(
            "api/comment",
            data={"api_type": "json", "text": text, "thing_id": self.__dict__.get("name")},
        )
        handle_json_errors(response)
        return response["json"]["data"]["things"][0]


class VoteableContent(ReplyableContent):
    """Content that can be voted on."""

    async def vote(self, direction: int) -> "VoteableContent":
        """
        Cast a vote.

        Args:
            direction: 1 to upvote, -1 to downvote, 0 to clear the vote

        Raises:
            InvalidMethodCallError: If direction is not -1, 0 or 1
        """
        if direction not in (-1, 0, 1):
            raise InvalidMethodCallError("must be -1, 0 or 1", field="direction")
        await self._post("api/vote", data={"dir": direction, "id": self.__dict__.get("name")})
        return self

    async def upvote(self) -> "VoteableContent":
        return await self.vote(1)

    async def downvote(self) -> "VoteableContent":
        return await self.vote(-1)

    async def unvote(self) -> "VoteableContent":
        return await self.vote(0)

    async def expand_replies(self, limit: float = math.inf, depth: float = math.inf) -> "VoteableContent":
        """
        Load the reply tree below this submission or comment.

        Every level can cost several requests, so large threads fetched with
        the default unbounded limits use up a lot of the rate-limit quota.

        Args:
            limit: Replies to load per level, counting those already loaded;
                only the first ``limit`` of them are expanded further
            depth: Levels to expand, counting this item's own replies as 1

        Returns:
            An expanded copy of this item whose ``get_comment`` index covers
            the whole loaded tree. The item itself is not modified.
        """
        await self.fetch()
        clone = self._clone(True)
        return await clone._mutate_and_expand_replies(limit, depth, clone.__dict__["_children"])

    async def _mutate_and_expand_replies(
        self,
        limit: float,
        depth: float,
        children: Dict[str, Any]
    ) -> "VoteableContent":
        if depth <= 0:
            return self

        key = "comments" if self._name == "Submission" else "replies"
        listing = self.__dict__[key]
        replies = await listing.fetch_more(max(0, limit - len(listing)))
        self.__dict__[key] = replies
        children.update(replies._children)

        end = None if math.isinf(limit) else int(limit)
        # One at a time; reddit rejects concurrent morechildren requests
        for reply in replies[:end]:
            await reply._mutate_and_expand_replies(limit, depth - 1, children)
        return self
