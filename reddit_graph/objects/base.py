"""
Lazily-populated base type for reddit content.

A RedditContent wraps the raw fields of one reddit thing. It can be
created from a few identifying fields (a user from its name, a comment
from its id) and fetches the rest of its fields the first time they are
needed. Fetches are single-flight: concurrent callers share one request.
"""

import asyncio
import re
from typing import Any, Dict, Optional, Tuple

from reddit_graph.constants import SUBREDDIT_KEYS, USER_KEYS
from reddit_graph.reddit.exceptions import InvalidMethodCallError
from reddit_graph.utils.logger import get_logger

logger = get_logger(__name__)

FULLNAME_REGEX = re.compile(r"^t\d_(\w+)$")

# Internal bookkeeping never copied between instances
_STATE_KEYS = frozenset({"_r", "_has_fetched", "_fetch_task"})


class LazyAttribute:
    """
    Awaitable standing in for a field of an entity that has not been
    fetched yet.

    Attribute access on a LazyAttribute chains, so a path through several
    unfetched entities resolves with a single ``await``.

    Example:
        >>> submission = r.get_submission("2np694")
        >>> await submission.title
        'What tasty food would be distusting if eaten over rice?'
        >>> await submission.author.link_karma
        1234
    """

    __slots__ = ("_entity", "_path")

    def __init__(self, entity: "RedditContent", path: Tuple[str, ...]) -> None:
        self._entity = entity
        self._path = path

    def __getattr__(self, name: str) -> "LazyAttribute":
        if name.startswith("_"):
            raise AttributeError(name)
        return LazyAttribute(self._entity, self._path + (name,))

    def __await__(self):
        return self._resolve().__await__()

    async def _resolve(self) -> Any:
        value: Any = await self._entity.fetch()
        for name in self._path:
            value = getattr(value, name)
            if isinstance(value, LazyAttribute):
                value = await value
        return value

    def __repr__(self) -> str:
        path = ".".join(self._path)
        return f"<LazyAttribute {type(self._entity).__name__}.{path}>"


class RedditContent:
    """
    Base class for every entity type (comments, submissions, users, ...).

    Attributes:
        _r: The client used to fetch this content
        _has_fetched: Whether the canonical resource has been merged in
        _fetch_task: Shared in-flight or finished fetch, None when absent
    """

    _name = "RedditContent"

    def __init__(
        self,
        options: Optional[Dict[str, Any]],
        r: Any,
        has_fetched: bool = False
    ) -> None:
        self._r = r
        self._has_fetched = has_fetched
        self._fetch_task: Optional[asyncio.Task] = None
        self.__dict__.update(options or {})

        name = self.__dict__.get("name")
        if "id" not in self.__dict__ and isinstance(name, str):
            match = FULLNAME_REGEX.match(name)
            if match:
                self.id = match.group(1)

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes missing from the instance and its class
        if name.startswith("_") or self.__dict__.get("_has_fetched", True):
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute '{name}'"
            )
        return LazyAttribute(self, (name,))

    @property
    def _uri(self) -> Optional[str]:
        """Canonical path of this entity, relative to the API host."""
        return None

    @property
    def _uri_params(self) -> Dict[str, Any]:
        return {}

    async def fetch(self) -> "RedditContent":
        """
        Fetch this content from reddit and merge its fields in.

        Only one request is ever in flight per instance; concurrent callers
        await the same one. Once it has succeeded later calls return
        immediately. A failure is observed by every waiter and then
        forgotten, so the next call retries.

        Returns:
            This instance, with all fields populated

        Raises:
            InvalidUserError: If the entity cannot have a valid URI
            RedditAPIError: If the request fails
        """
        if self._fetch_task is None:
            # Computed eagerly so malformed entities fail before any request
            uri = self._uri
            if uri is None:
                raise InvalidMethodCallError(
                    f"{type(self).__name__} objects cannot be fetched directly"
                )
            params = self._uri_params
            self._fetch_task = asyncio.ensure_future(self._fetch(uri, params))

        task = self._fetch_task
        try:
            await asyncio.shield(task)
        except Exception:
            if self._fetch_task is task:
                self._fetch_task = None
            raise
        return self

    async def _fetch(self, uri: str, params: Dict[str, Any]) -> "RedditContent":
        response = await self._r.get(uri, params=params or None)
        self._merge(self._transform_api_response(response))
        self._has_fetched = True
        logger.debug("content_fetched", type=self._name, uri=uri)
        return self

    def _merge(self, fetched: Any) -> None:
        if isinstance(fetched, RedditContent):
            source = fetched.__dict__
        elif isinstance(fetched, dict):
            source = fetched
        else:
            return
        for key, value in source.items():
            if key not in _STATE_KEYS:
                self.__dict__[key] = value

    async def refresh(self) -> "RedditContent":
        """
        Forget the cached fields' freshness and fetch this content again.
        """
        self._fetch_task = None
        self._has_fetched = False
        return await self.fetch()

    def _transform_api_response(self, response: Any) -> Any:
        return response

    def _clone(self, deep: bool = False, children: Optional[Dict[str, Any]] = None) -> "RedditContent":
        """
        Copy this entity.

        A shallow clone shares field values. A deep clone also clones nested
        entities and Listings, registering every Comment it produces by id
        in ``children``.
        """
        if children is None:
            children = {}
        props = self._clone_props(self.__dict__, deep, children)
        return self._r._new_object(self._name, props, self._has_fetched)

    @classmethod
    def _clone_props(cls, source: Dict[str, Any], deep: bool, children: Dict[str, Any]) -> Dict[str, Any]:
        props = {}
        for key, value in source.items():
            if key in _STATE_KEYS:
                continue
            if deep:
                if key == "_children":
                    value = children
                else:
                    value = cls._clone_value(value, children)
            props[key] = value
        return props

    @classmethod
    def _clone_value(cls, value: Any, children: Dict[str, Any]) -> Any:
        if isinstance(value, (RedditContent, _Cloneable)):
            cloned = value._clone(True, children)
            if getattr(cloned, "_name", None) == "Comment":
                children[cloned.id] = cloned
            return cloned
        if isinstance(value, dict):
            return cls._clone_props(value, True, children)
        if isinstance(value, list):
            return [cls._clone_value(item, children) for item in value]
        return value

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the public fields.

        Unfetched users and subreddits referenced under the well-known keys
        collapse to their name so a partially-fetched graph serializes
        without further requests.
        """
        result = {}
        for key, value in self.__dict__.items():
            if key.startswith("_"):
                continue
            if isinstance(value, RedditContent) and not value._has_fetched:
                if key in USER_KEYS and value._name == "RedditUser":
                    value = value.__dict__.get("name")
                elif key in SUBREDDIT_KEYS and value._name == "Subreddit":
                    value = value.__dict__.get("display_name")
            result[key] = serialize(value)
        return result

    # Request primitives bound to the owning client

    async def _post(self, url: str, **kwargs: Any) -> Any:
        return await self._r.post(url, **kwargs)

    async def _get_listing(self, uri: str, qs: Optional[Dict[str, Any]] = None, **options: Any) -> Any:
        return await self._r._get_listing(uri, qs, **options)

    def __repr__(self) -> str:
        fetched = "" if self._has_fetched else " (unfetched)"
        return f"{type(self).__name__}{fetched} {self.to_dict()!r}"


class _Cloneable:
    """Marker base for non-entity containers that support ``_clone``."""

    def _clone(self, deep: bool = False, children: Optional[Dict[str, Any]] = None) -> Any:
        raise NotImplementedError


def serialize(value: Any) -> Any:
    """Recursively convert entities and Listings into plain data."""
    if isinstance(value, (RedditContent, _Cloneable)) and hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items() if not str(k).startswith("_")}
    if isinstance(value, list):
        return [serialize(v) for v in value]
    return value
