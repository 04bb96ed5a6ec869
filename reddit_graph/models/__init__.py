"""
Pydantic models for configuration and raw auth payloads.
"""

from reddit_graph.models.config import RequesterConfig
from reddit_graph.models.responses import AccessTokenResponse, RatelimitStats

__all__ = [
    "RequesterConfig",
    "AccessTokenResponse",
    "RatelimitStats",
]
