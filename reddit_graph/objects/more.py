"""
Continuation markers of comment trees.

reddit truncates long comment threads and puts a ``more`` object where
the remaining replies would be. More instances never appear as items of a
Listing; the Listing that ends with one keeps it as its continuation and
asks it for comments when extended.

Three strategies resolve a marker:

- Fast path (``skip_replies=True``): ``api/info`` with up to 100 ids per
  request. Fetched comments have no replies loaded.
- Tree path: ``api/morechildren`` with up to 20 ids per request, which
  returns nested replies. Smaller markers stubbed out in the response are
  resolved recursively.
- Continued thread: deep threads end in an empty marker named ``t1__``.
  Its replies are obtained by fetching the parent comment itself.
"""

import asyncio
import math
from typing import Any, Dict, List, Optional

from reddit_graph.constants import (
    CONTINUED_THREAD_NAME,
    MAX_API_INFO_AMOUNT,
    MAX_API_MORECHILDREN_AMOUNT,
)
from reddit_graph.objects.base import _Cloneable
from reddit_graph.objects.tree import (
    add_empty_replies_listing,
    build_replies_tree,
    handle_json_errors,
    index_comments,
    is_more,
)
from reddit_graph.utils.logger import get_logger

logger = get_logger(__name__)


class _ContinuedReplies:
    """Replies cache of a continued-thread marker, shared by its clones."""

    def __init__(self) -> None:
        self.replies: Any = None
        self.lock = asyncio.Lock()


def _slice_end(start: int, amount: float) -> Optional[int]:
    return None if math.isinf(amount) else start + int(amount)


class More(_Cloneable):
    """
    A reddit ``more`` object.

    Attributes:
        children: Ids (without prefix) of the comments not fetched yet
        count: Number of descendants reddit reports under this marker
        depth: Depth of the marker in the tree
        name: Fullname of the marker (``t1__`` for continued threads)
        parent_id: Fullname of the comment or submission the children reply to
        link_id: Fullname of the submission
    """

    _name = "More"

    def __init__(self, options: Optional[Dict[str, Any]], r: Any, has_fetched: bool = False) -> None:
        options = options or {}
        self._r = r
        self.children: List[str] = list(options.get("children") or [])
        self.count = options.get("count")
        self.depth = options.get("depth")
        self.id = options.get("id")
        self.name = options.get("name")
        self.parent_id = options.get("parent_id")
        self.link_id = options.get("link_id")

        self._continued: _ContinuedReplies = options.get("_continued") or _ContinuedReplies()
        self._continued_start_index: int = options.get("_continued_start_index", 0)

    @classmethod
    def empty(cls, r: Any) -> "More":
        """A marker with nothing left to fetch."""
        return cls({"children": []}, r)

    @property
    def _is_continued_thread(self) -> bool:
        return self.name == CONTINUED_THREAD_NAME

    @property
    def is_finished(self) -> bool:
        if self._is_continued_thread:
            replies = self._continued.replies
            return (
                replies is not None
                and len(replies) <= self._continued_start_index
                and replies.is_finished
            )
        return not self.children

    def _listing(self, items: List[Any], children: Dict[str, Any]) -> Any:
        return self._r._new_object("Listing", {
            "children": items,
            "_children": children,
            "_is_comment_list": True,
        })

    async def fetch_more(self, amount: float, *, skip_replies: bool = False, start_index: int = 0) -> Any:
        """
        Fetch up to ``amount`` comments, starting at ``start_index`` of the
        child id list.

        Does not consume the child ids; the owning Listing advances its
        clone of this marker with ``_remove_leading_children``.

        Returns:
            A Listing of the fetched comments with every comment of their
            reply trees indexed by id in ``_children``. Comments recovered
            from stubbed-out markers come after the rest of their batch.
        """
        if self._is_continued_thread:
            return await self._fetch_continued(amount)
        if amount <= 0 or start_index >= len(self.children):
            return self._listing([], {})
        if skip_replies:
            return await self._fetch_info(amount, start_index)

        children: Dict[str, Any] = {}
        items = await self._fetch_tree(amount, start_index, children)
        return self._listing(items, children)

    async def _fetch_info(self, amount: float, start_index: int) -> Any:
        ids = self.children[start_index:_slice_end(start_index, amount)]
        batches = [
            ids[i:i + MAX_API_INFO_AMOUNT]
            for i in range(0, len(ids), MAX_API_INFO_AMOUNT)
        ]
        responses = await asyncio.gather(*(
            self._r.get("api/info", params={"id": ",".join(f"t1_{id_}" for id_ in batch)})
            for batch in batches
        ), return_exceptions=True)

        # Raise the first failure once every batch has settled
        for response in responses:
            if isinstance(response, BaseException):
                raise response

        by_id = {}
        for response in responses:
            for comment in response or []:
                by_id[comment.__dict__.get("id")] = comment

        comments = [add_empty_replies_listing(by_id[id_]) for id_ in ids if id_ in by_id]

        logger.debug(
            "more_info_fetched",
            parent_id=self.parent_id,
            requested=len(ids),
            received=len(comments),
            batches=len(batches),
        )
        return self._listing(comments, index_comments(comments, {}))

    async def _fetch_tree(self, amount: float, start_index: int, children: Dict[str, Any]) -> List[Any]:
        link_id = self.link_id or self.parent_id
        result: List[Any] = []
        index = start_index
        remaining = amount

        # reddit rejects concurrent morechildren requests from one account
        while remaining > 0 and index < len(self.children):
            ids = self.children[index:index + int(min(remaining, MAX_API_MORECHILDREN_AMOUNT))]
            response = await self._r.get("api/morechildren", params={
                "api_type": "json",
                "children": ",".join(ids),
                "link_id": link_id,
            })
            handle_json_errors(response)
            things = ((response or {}).get("json") or {}).get("data", {}).get("things", [])

            trees = build_replies_tree(things)
            stubs = [tree for tree in trees if is_more(tree)]
            comments = [tree for tree in trees if not is_more(tree)]
            index_comments(comments, children)
            result.extend(comments)

            # reddit may stub part of the batch out as a smaller marker
            for stub in stubs:
                stub.link_id = link_id
                if stub._is_continued_thread:
                    expanded = (await stub.fetch_more(math.inf))._items
                    index_comments(expanded, children)
                else:
                    expanded = await stub._fetch_tree(math.inf, 0, children)
                result.extend(expanded)

            logger.debug(
                "more_children_fetched",
                link_id=link_id,
                requested=len(ids),
                received=len(comments),
                nested_markers=len(stubs),
            )
            index += len(ids)
            remaining -= len(ids)

        return result

    async def _fetch_continued(self, amount: float) -> Any:
        holder = self._continued
        start = self._continued_start_index

        async with holder.lock:
            if holder.replies is None:
                parent = self._r.get_comment(self.parent_id[3:], link_id=self.link_id)
                await parent.fetch()
                holder.replies = parent.__dict__["replies"]
                logger.debug(
                    "continued_thread_loaded",
                    parent_id=self.parent_id,
                    cached=len(holder.replies),
                )

            available = len(holder.replies) - start
            if available < amount and not holder.replies.is_finished:
                holder.replies = await holder.replies.fetch_more(amount - available)

        items = holder.replies._items[start:_slice_end(start, amount)]
        return self._listing(list(items), index_comments(items, {}))

    def _remove_leading_children(self, count: float) -> None:
        if self._is_continued_thread:
            self._continued_start_index += int(count)
        elif math.isinf(count):
            self.children = []
        else:
            self.children = self.children[int(count):]

    def _clone(self, deep: bool = False, children: Optional[Dict[str, Any]] = None) -> "More":
        return More({
            "children": list(self.children),
            "count": self.count,
            "depth": self.depth,
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "link_id": self.link_id,
            "_continued": self._continued,
            "_continued_start_index": self._continued_start_index,
        }, self._r)

    def __repr__(self) -> str:
        return f"<More name={self.name!r} parent_id={self.parent_id!r} children={len(self.children)}>"
