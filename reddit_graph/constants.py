"""
Fixed limits and identifiers of reddit's API.
"""
import re

VERSION = "0.1.0"

# Maximum number of ids per api/info request
MAX_API_INFO_AMOUNT = 100
# Maximum number of ids per api/morechildren request
MAX_API_MORECHILDREN_AMOUNT = 20
# Maximum page size of any listing endpoint
MAX_LISTING_ITEMS = 100
# Refresh the access token this many seconds before it expires
MAX_TOKEN_LATENCY = 10

RATELIMIT_REMAINING_HEADER = "x-ratelimit-remaining"
RATELIMIT_RESET_HEADER = "x-ratelimit-reset"

USERNAME_REGEX = re.compile(r"^[\w-]{1,20}$")

# Name of the empty marker reddit uses for "continue this thread" links
CONTINUED_THREAD_NAME = "t1__"

KINDS = {
    "t1": "Comment",
    "t2": "RedditUser",
    "t3": "Submission",
    "t4": "PrivateMessage",
    "t5": "Subreddit",
    "Listing": "Listing",
    "more": "More",
}

USER_KEYS = frozenset({"author", "approved_by", "banned_by", "user"})
SUBREDDIT_KEYS = frozenset({"subreddit", "sr"})
