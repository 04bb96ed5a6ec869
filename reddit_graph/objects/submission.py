"""
Reddit submissions (posts).
"""

from typing import Any, Dict, Optional

from reddit_graph.objects.tree import get_empty_replies_listing
from reddit_graph.objects.votable import VoteableContent


class Submission(VoteableContent):
    """
    A reddit submission.

    A fetched submission always has a ``comments`` Listing. Submissions that
    arrive inside other Listings get an unfetched one pointing at their
    comment page.

    Example:
        >>> submission = await r.get_submission("2np694").fetch()
        >>> len(submission.comments)
        200
    """

    _name = "Submission"

    def __init__(self, options: Optional[Dict[str, Any]], r: Any, has_fetched: bool = False) -> None:
        options = dict(options or {})
        children = options.pop("_children", None)
        super().__init__(options, r, has_fetched)
        self._children: Dict[str, Any] = children if children is not None else {}
        if "name" not in self.__dict__ and "id" in self.__dict__:
            self.name = f"t3_{self.__dict__['id']}"

        if has_fetched and self.__dict__.get("comments") is None:
            self.comments = get_empty_replies_listing(self)

    @property
    def _uri(self) -> str:
        return f"comments/{self.__dict__['id']}"

    @property
    def _uri_params(self) -> Dict[str, Any]:
        sort = self.__dict__.get("_sort")
        return {"sort": sort} if sort else {}

    def _transform_api_response(self, response: Any) -> Any:
        response._sort = self.__dict__.get("_sort")
        for child in response.__dict__.get("_children", {}).values():
            child._sort = response._sort
        return response

    def get_comment(self, comment_id: str) -> Optional[Any]:
        """
        Pick a comment out of this submission's loaded comment tree.

        Returns:
            The Comment, or None when it has not been loaded
        """
        return self._children.get(comment_id)
