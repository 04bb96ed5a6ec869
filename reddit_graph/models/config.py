"""
Pydantic configuration model for the reddit request core.

All durations are expressed in milliseconds to match the values users
pass in from reddit API wrappers in other ecosystems.
"""
from typing import List

from pydantic import BaseModel, Field, field_validator


class RequesterConfig(BaseModel):
    """
    Tunables of a single client instance.

    Example:
        >>> config = RequesterConfig(request_delay=1000, max_retry_attempts=5)
        >>> config.request_timeout_seconds
        30.0
    """

    endpoint_domain: str = Field(
        "reddit.com",
        min_length=1,
        description="Domain used for both the token endpoint and the API host",
    )
    request_delay: float = Field(
        0,
        ge=0,
        description="Minimum delay between two dispatches in milliseconds",
    )
    request_timeout: float = Field(
        30000,
        gt=0,
        description="Per-dispatch timeout in milliseconds",
    )
    continue_after_ratelimit_error: bool = Field(
        False,
        description="Wait for the quota reset instead of raising RateLimitError",
    )
    retry_error_codes: List[int] = Field(
        default_factory=lambda: [502, 503, 504, 522],
        description="HTTP status codes that trigger a retry",
    )
    max_retry_attempts: int = Field(
        3,
        ge=1,
        description="Maximum number of attempts for a single logical request",
    )
    retry_backoff: float = Field(
        1000,
        ge=0,
        description="Base of the exponential retry backoff in milliseconds",
    )
    warnings: bool = Field(True, description="Emit warnings through the logger")
    debug: bool = Field(False, description="Emit per-request debug records")

    model_config = {
        "validate_assignment": True,
        "json_schema_extra": {
            "example": {
                "endpoint_domain": "reddit.com",
                "request_delay": 1000,
                "request_timeout": 30000,
                "continue_after_ratelimit_error": True,
                "retry_error_codes": [502, 503, 504, 522],
                "max_retry_attempts": 3,
                "warnings": True,
                "debug": False,
            }
        },
    }

    @field_validator("retry_error_codes")
    @classmethod
    def validate_status_codes(cls, v: List[int]) -> List[int]:
        """Ensure every retryable code is a valid HTTP status."""
        for code in v:
            if not 100 <= code <= 599:
                raise ValueError(f"{code} is not an HTTP status code")
        return v

    @field_validator("endpoint_domain")
    @classmethod
    def strip_domain(cls, v: str) -> str:
        """Drop surrounding whitespace and slashes."""
        return v.strip().strip("/")

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout / 1000
