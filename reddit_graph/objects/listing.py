"""
Incrementally extensible, cursor-paginated sequences of reddit content.

A Listing is an ordered list of items plus the state needed to fetch the
next page: the URI, constant query parameters and the ``after``/``before``
cursors. Comment Listings instead carry a More continuation.

Extending a Listing never mutates it; ``fetch_more`` returns a new,
longer Listing and leaves the original untouched, so concurrent
extensions of the same page cannot corrupt each other.
"""

import math
import numbers
from typing import Any, Callable, Dict, Iterator, List, Optional

from reddit_graph.constants import MAX_LISTING_ITEMS
from reddit_graph.objects.base import _Cloneable, serialize
from reddit_graph.objects.more import More
from reddit_graph.reddit.exceptions import InvalidMethodCallError, RedditAPIError
from reddit_graph.utils.logger import get_logger

logger = get_logger(__name__)


def _identity(value: Any) -> Any:
    return value


def _validate_amount(amount: Any) -> None:
    if (
        isinstance(amount, bool)
        or not isinstance(amount, numbers.Real)
        or math.isnan(amount)
        or amount < 0
    ):
        raise InvalidMethodCallError(
            "Failed to fetch Listing. ('amount' parameter was missing or invalid)",
            field="amount",
        )


class Listing(_Cloneable):
    """
    A paginated list of reddit content.

    Supports the read-only sequence protocol (``len``, iteration, indexing,
    ``in``, ``reversed``). Items are added only through ``fetch_more`` and
    ``fetch_all``, which return new Listings.

    Example:
        >>> hot = await r.get_hot("python", limit=25)
        >>> len(hot)
        25
        >>> more = await hot.fetch_more(10)
        >>> len(more), len(hot)
        (35, 25)
    """

    _name = "Listing"

    def __init__(self, options: Optional[Dict[str, Any]] = None, r: Any = None, has_fetched: bool = False) -> None:
        options = options or {}
        self._r = r
        self._items: List[Any] = list(options.get("children") or [])

        self._query: Dict[str, Any] = dict(options.get("_query") or {})
        if "after" in options:
            self._query["after"] = options["after"]
        if "before" in options:
            self._query["before"] = options["before"]

        self._transform: Callable[[Any], Any] = options.get("_transform") or _identity
        self._method: str = options.get("_method") or "GET"
        self._is_comment_list: bool = bool(options.get("_is_comment_list", False))
        self._link_id: Optional[str] = options.get("_link_id")
        self._uri: Optional[str] = options.get("_uri")
        self._more: Optional[More] = options.get("_more")
        self._cached_lookahead: List[Any] = list(options.get("_cached_lookahead") or [])
        children = options.get("_children")
        self._children: Dict[str, Any] = children if children is not None else {}
        self._limit: Optional[int] = options.get("_limit")

        if self._items and getattr(type(self._items[-1]), "_name", None) == "More":
            self._set_more(self._items.pop())
        elif self._more is not None:
            self._is_comment_list = True

    # Sequence protocol

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __getitem__(self, index: Any) -> Any:
        return self._items[index]

    def __contains__(self, item: Any) -> bool:
        return item in self._items

    def __reversed__(self) -> Iterator[Any]:
        return reversed(self._items)

    def __repr__(self) -> str:
        return f"Listing {self._items!r}"

    # Pagination state

    def _set_more(self, more: More) -> None:
        self._more = more
        self._is_comment_list = True

    def _set_uri(self, path: str, params: Optional[Dict[str, Any]] = None) -> None:
        """
        Record where this Listing was fetched from.

        Request parameters become constant query parameters unless the
        response already set them; the cursor not used by the request is
        cleared so only one pagination direction stays active.
        """
        params = params or {}
        self._uri = path
        for key, value in params.items():
            if self._query.get(key) is None and key not in ("after", "before"):
                self._query[key] = value
        if params.get("before"):
            self._query["after"] = None
        else:
            self._query["before"] = None

    @property
    def is_finished(self) -> bool:
        """Whether there is nothing left to fetch."""
        if self._is_comment_list:
            if self._cached_lookahead:
                return False
            if self._more is not None:
                return self._more.is_finished
            return not self._uri
        if not self._uri:
            return True
        return (
            "after" in self._query and self._query["after"] is None
            and "before" in self._query and self._query["before"] is None
        )

    # Extension

    async def fetch_more(self, amount: float, *, skip_replies: bool = False, append: bool = True) -> "Listing":
        """
        Fetch up to ``amount`` more items.

        Args:
            amount: Number of items to fetch; ``math.inf`` fetches everything
            skip_replies: For comment Listings, use the faster ``api/info``
                endpoint (100 comments per request) at the cost of not
                loading replies
            append: Include the existing items in the result. When False the
                result holds only the newly fetched items

        Returns:
            A new Listing. New items are appended, or prepended when this
            Listing paginates backwards (was created with ``before``), so
            the order always matches reddit's.

        Raises:
            InvalidMethodCallError: If ``amount`` is not a non-negative number
        """
        _validate_amount(amount)

        if amount <= 0 or self.is_finished:
            return self._clone() if append else self._clone()._empty()

        if self._cached_lookahead:
            cloned = self._clone()
            if not append:
                cloned._empty()
            end = None if math.isinf(amount) else int(amount)
            taken = cloned._cached_lookahead[:end]
            del cloned._cached_lookahead[:end]
            cloned._items.extend(taken)
            return await cloned.fetch_more(amount - len(taken), skip_replies=skip_replies, append=True)

        if self._more is not None:
            return await self._fetch_more_comments(amount, skip_replies, append)
        return await self._fetch_more_regular(amount, skip_replies, append)

    async def fetch_all(self, *, skip_replies: bool = False, append: bool = True) -> "Listing":
        """
        Fetch every remaining item.

        This can exhaust the rate-limit quota on Listings without a clear
        end (such as a front page), so a warning is logged.
        """
        self._r._warn("listing_fetch_all", uri=self._uri, current_length=len(self))
        return await self.fetch_more(math.inf, skip_replies=skip_replies, append=append)

    async def _fetch_more_regular(self, amount: float, skip_replies: bool, append: bool) -> "Listing":
        query = {k: v for k, v in self._query.items() if v is not None}
        if not self._is_comment_list:
            query["limit"] = int(min(amount, self._limit or MAX_LISTING_ITEMS))

        response = self._transform(
            await self._r.oauth_request(self._method, self._uri, params=query)
        )
        if not isinstance(response, Listing):
            raise RedditAPIError(
                f"Expected a Listing from {self._uri}, got {type(response).__name__}"
            )

        cloned = self._clone()
        if not append:
            cloned._empty()

        if cloned._query.get("before"):
            cloned._items[0:0] = response._items
            cloned._query["before"] = response._query.get("before")
            cloned._query["after"] = None
        else:
            cloned._items.extend(response._items)
            cloned._query["before"] = None
            cloned._query["after"] = response._query.get("after")

        received = len(response)
        if self._is_comment_list:
            cloned._more = cloned._more or response._more or More.empty(self._r)
            if received > amount:
                surplus = response._items[int(amount):]
                del cloned._items[len(cloned._items) - len(surplus):]
                cloned._cached_lookahead = surplus
                received = int(amount)

        cloned._children = {**cloned._children, **response._children}

        logger.debug(
            "listing_page_fetched",
            uri=self._uri,
            received=received,
            after=cloned._query.get("after"),
            before=cloned._query.get("before"),
        )

        if received == 0:
            return cloned
        return await cloned.fetch_more(amount - received, skip_replies=skip_replies, append=True)

    async def _fetch_more_comments(self, amount: float, skip_replies: bool, append: bool) -> "Listing":
        fetched = await self._more.fetch_more(amount, skip_replies=skip_replies)

        cloned = self._clone()
        if not append:
            cloned._empty()
        cloned._children = {**cloned._children, **fetched._children}

        if cloned._more._is_continued_thread:
            cloned._items.extend(fetched._items)
            cloned._more._remove_leading_children(len(fetched))
            return cloned

        # Child id order, whichever request each comment arrived in
        end = None if math.isinf(amount) else int(amount)
        for id_ in cloned._more.children[:end]:
            comment = fetched._children.get(id_)
            if comment is not None:
                cloned._items.append(comment)
        cloned._more._remove_leading_children(amount)
        return cloned

    # Copying and serialization

    def _empty(self) -> "Listing":
        self._items.clear()
        return self

    def _clone(self, deep: bool = False, children: Optional[Dict[str, Any]] = None) -> "Listing":
        """
        Copy this Listing.

        The More continuation is always copied so the clone can consume
        child ids independently. A deep clone also clones every item and
        registers cloned comments by id in ``children``.
        """
        props: Dict[str, Any] = {
            "_query": dict(self._query),
            "_transform": self._transform,
            "_method": self._method,
            "_is_comment_list": self._is_comment_list,
            "_link_id": self._link_id,
            "_uri": self._uri,
            "_more": self._more._clone() if self._more is not None else None,
            "_cached_lookahead": list(self._cached_lookahead),
            "_limit": self._limit,
        }
        if not deep:
            props["_children"] = self._children
            props["children"] = list(self._items)
            return Listing(props, self._r)

        if children is None:
            children = {}
        items = []
        for item in self._items:
            if isinstance(item, _Cloneable) or hasattr(type(item), "_clone"):
                item = item._clone(True, children)
                if getattr(type(item), "_name", None) == "Comment":
                    children[item.id] = item
            items.append(item)
        props["_children"] = children
        props["children"] = items
        return Listing(props, self._r)

    def to_dict(self) -> List[Any]:
        """Serialize the items."""
        return [serialize(item) for item in self._items]
