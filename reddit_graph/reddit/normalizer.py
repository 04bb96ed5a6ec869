"""
Conversion of raw reddit JSON into typed objects.

reddit wraps every thing in ``{"kind": ..., "data": {...}}``. The
normalizer walks a response body, turns each such node into the matching
entity type through the client's dispatch table, replaces bare user and
subreddit names with unfetched entities, and collapses the two-Listing
response of a submission's comment page into the submission itself.
"""

from typing import Any, Dict, Optional

from reddit_graph.constants import KINDS, SUBREDDIT_KEYS, USER_KEYS
from reddit_graph.objects.base import RedditContent
from reddit_graph.objects.listing import Listing
from reddit_graph.objects.tree import is_comment, type_name


class ResponseNormalizer:
    """
    Normalizer for reddit API responses.

    Bound to one client, whose ``_new_object`` decides which class each
    kind maps to.

    Example:
        >>> normalizer = ResponseNormalizer(r)
        >>> listing = normalizer.populate(body, "r/python/hot", {"limit": 25})
        >>> listing[0]
        Submission {...}
    """

    def __init__(self, r: Any) -> None:
        self._r = r

    def populate(
        self,
        body: Any,
        url: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Normalize a whole response body.

        Args:
            body: Decoded JSON body
            url: Request path, recorded on a top-level Listing
            params: Request query, recorded as the Listing's constant query

        Returns:
            Entities, Listings, or plain data where nothing is recognized
        """
        children: Dict[str, Any] = {}
        result = self._populate(body, children)

        if isinstance(result, Listing):
            if url:
                result._set_uri(url, params)
            if children:
                result._children = children
        elif isinstance(result, RedditContent) and children and "_children" in result.__dict__:
            if not result.__dict__["_children"]:
                result._children = children

        return result

    @staticmethod
    def is_content_tree(value: Any) -> bool:
        return (
            isinstance(value, dict)
            and len(value) == 2
            and isinstance(value.get("kind"), str)
            and isinstance(value.get("data"), dict)
        )

    @staticmethod
    def is_submission_tree(value: Any) -> bool:
        return (
            isinstance(value, list)
            and len(value) == 2
            and isinstance(value[0], Listing)
            and isinstance(value[1], Listing)
            and len(value[0]) > 0
            and type_name(value[0][0]) == "Submission"
        )

    def _populate(self, tree: Any, children: Dict[str, Any]) -> Any:
        if isinstance(tree, list):
            items = [self._populate(value, children) for value in tree]
            if self.is_submission_tree(items):
                return self._collapse_submission(items, children)
            return items

        if not isinstance(tree, dict):
            return tree

        if self.is_content_tree(tree):
            type_name_ = KINDS.get(tree["kind"], "RedditContent")
            data = self._populate(tree["data"], children)
            populated = self._r._new_object(type_name_, data, True)
            if is_comment(populated):
                children[populated.id] = populated
            return populated

        result = {}
        for key, value in tree.items():
            if isinstance(value, str) and key in USER_KEYS:
                result[key] = self._r._new_object("RedditUser", {"name": value})
            elif isinstance(value, str) and key in SUBREDDIT_KEYS:
                result[key] = self._r._new_object("Subreddit", {"display_name": value})
            else:
                result[key] = self._populate(value, children)
        return result

    def _collapse_submission(self, items: list, children: Dict[str, Any]) -> Any:
        submission_listing, comments = items
        submission = submission_listing[0]
        comments._is_comment_list = True
        if comments._more is not None and not comments._more.link_id:
            comments._more.link_id = submission.__dict__.get("name")
        submission.comments = comments
        submission._children = children
        return submission
