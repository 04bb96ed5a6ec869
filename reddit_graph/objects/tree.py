"""
Helpers for arranging flat lists of comments and messages into reply trees.

These work on any object exposing a ``_name`` class attribute so they do
not depend on the concrete entity classes.
"""

from typing import Any, Dict, Iterable, List, Optional

from reddit_graph.reddit.exceptions import RedditAPIError


def type_name(item: Any) -> Optional[str]:
    return getattr(type(item), "_name", None)


def is_more(item: Any) -> bool:
    return type_name(item) == "More"


def is_comment(item: Any) -> bool:
    return type_name(item) == "Comment"


def get_empty_replies_listing(item: Any) -> Any:
    """
    Build an unfetched replies Listing for an item that has none.

    - Comment: points at the comment's permalink view and extracts its
      replies from the response.
    - Submission: points at the submission's comment page.
    - Anything else: an empty, finished Listing.
    """
    r = item._r
    fields = item.__dict__
    name = type_name(item)

    if name == "Comment":
        link_id = fields.get("link_id") or fields.get("parent_id")
        return r._new_object("Listing", {
            "_uri": f"comments/{link_id[3:]}",
            "_query": {"comment": fields["id"]},
            "_transform": _first_comment_replies,
            "_link_id": fields.get("link_id"),
            "_is_comment_list": True,
        })
    if name == "Submission":
        return r._new_object("Listing", {
            "_uri": f"comments/{fields['id']}",
            "_transform": _submission_comments,
            "_is_comment_list": True,
        })
    return r._new_object("Listing", {})


def _first_comment_replies(response: Any) -> Any:
    return response.__dict__["comments"][0].__dict__["replies"]


def _submission_comments(response: Any) -> Any:
    return response.__dict__["comments"]


def add_empty_replies_listing(item: Any) -> Any:
    item.replies = get_empty_replies_listing(item)
    return item


def handle_json_errors(response: Any) -> Any:
    """
    Raise if a ``api_type=json`` response reports errors.

    reddit answers many POST endpoints with HTTP 200 and a body of the form
    ``{"json": {"errors": [[code, message, field], ...], "data": ...}}``.

    Raises:
        RedditAPIError: With the first reported error
    """
    if not isinstance(response, dict):
        return response
    errors = (response.get("json") or {}).get("errors") or []
    if errors:
        first = errors[0]
        message = ": ".join(str(part) for part in first if part) if isinstance(first, list) else str(first)
        raise RedditAPIError(message)
    return response


def build_replies_tree(child_list: Iterable[Any]) -> List[Any]:
    """
    Thread a flat list of comments (or messages) by ``parent_id``.

    reddit's morechildren endpoint and message threads return every item
    at the same level. Items whose parent is in the list are moved under
    that parent's replies; a continuation marker whose parent is in the
    list becomes the continuation of the parent's replies Listing.

    Returns:
        The items whose parent is not in the list, in their original order
    """
    items = list(child_list)
    by_name = {item.__dict__.get("name"): item for item in items}

    for item in items:
        if is_more(item):
            continue
        add_empty_replies_listing(item)
        if is_comment(item):
            item.replies._more = item._r._new_object("More", {"children": []})

    roots = []
    for item in items:
        parent = by_name.get(item.__dict__.get("parent_id"))
        if parent is None:
            roots.append(item)
        elif is_more(item):
            parent.replies._set_more(item)
            item.link_id = parent.__dict__.get("link_id")
        else:
            parent.replies._items.append(item)
    return roots


def index_comments(items: Iterable[Any], children: Dict[str, Any]) -> Dict[str, Any]:
    """Register every comment of a reply tree by id."""
    for item in items:
        if not is_comment(item):
            continue
        children[item.id] = item
        replies = item.__dict__.get("replies")
        if replies is not None and hasattr(replies, "_items"):
            index_comments(replies._items, children)
    return children


def find_message_in_tree(name: str, root: Any) -> Optional[Any]:
    """Depth-first search for the message with the given fullname."""
    if root.__dict__.get("name") == name:
        return root
    replies = root.__dict__.get("replies")
    for reply in replies or []:
        found = find_message_in_tree(name, reply)
        if found is not None:
            return found
    return None
