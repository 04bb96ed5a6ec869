"""
Pydantic models for raw payloads returned by reddit's auth endpoints.
"""
from typing import Optional

from pydantic import BaseModel, Field


class AccessTokenResponse(BaseModel):
    """
    Body of ``POST /api/v1/access_token``.

    reddit answers some credential failures with HTTP 200 and an
    ``error`` field, so every field is optional here and the requester
    checks ``error`` explicitly.
    """

    access_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: float = Field(3600, ge=0, description="Token lifetime in seconds")
    scope: str = ""
    refresh_token: Optional[str] = None
    error: Optional[str] = None

    model_config = {"extra": "ignore"}


class RatelimitStats(BaseModel):
    """Snapshot returned by ``Requester.get_ratelimit_stats()``."""

    remaining: Optional[float] = Field(
        None,
        description="Remaining quota, None until reddit reported one",
    )
    seconds_until_reset: float = Field(0, ge=0)
    exhausted: bool = Field(
        False,
        description="Whether the quota is used up until the reset",
    )
    next_request_in: float = Field(
        0,
        ge=0,
        description="Seconds until the throttle gate opens",
    )
