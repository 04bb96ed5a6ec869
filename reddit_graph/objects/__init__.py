"""
Typed, lazily-populated reddit objects.

- RedditContent: lazy entity base (single-flight fetch, cloning, serialization)
- Listing: cursor-paginated, non-mutating extensible sequence
- More: comment-tree continuation resolver
- Comment, Submission, RedditUser, Subreddit, PrivateMessage: entity types
"""

from reddit_graph.objects.base import LazyAttribute, RedditContent
from reddit_graph.objects.comment import Comment
from reddit_graph.objects.listing import Listing
from reddit_graph.objects.message import PrivateMessage
from reddit_graph.objects.more import More
from reddit_graph.objects.submission import Submission
from reddit_graph.objects.subreddit import Subreddit
from reddit_graph.objects.user import RedditUser
from reddit_graph.objects.votable import ReplyableContent, VoteableContent

__all__ = [
    # Base types
    "RedditContent",
    "LazyAttribute",
    "ReplyableContent",
    "VoteableContent",
    # Containers
    "Listing",
    "More",
    # Entities
    "Comment",
    "Submission",
    "RedditUser",
    "Subreddit",
    "PrivateMessage",
]
