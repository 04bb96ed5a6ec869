"""
Shared utilities.
"""

from reddit_graph.utils.logger import get_logger, log_request, setup_logging

__all__ = ["get_logger", "log_request", "setup_logging"]
