"""Parameter types for engine configuration.

Params define how the engine operates (batch sizes, concurrency, timeouts),
while contexts carry the per-request state.
"""

from pydantic import BaseModel, Field


class MigrationParams(BaseModel, frozen=True):
    """Tunables read by the listing, per-key and coordinator code."""

    batch_ceiling: int = Field(default=900, gt=0)
    """Maximum number of keys mutated by a single request."""

    page_size: int = Field(default=300, gt=0)
    """Keys requested per store listing call."""

    max_concurrency: int = Field(default=50, gt=0)
    """Maximum number of per-key operations in flight at once."""

    per_key_timeout: float | None = Field(default=60.0, gt=0)
    """Seconds a single per-key operation may take. None disables the limit."""

    signed_url_ttl: int = Field(default=3600, gt=0)
    """Lifetime of presigned delete URLs, in seconds."""

    page_extension: str = ".html"
    """Extension of page objects tracked by the collaboration cache."""


class ListRequest(BaseModel, frozen=True):
    """A store-native list-by-prefix request for a directory key."""

    bucket: str
    """Bucket to list."""

    prefix: str
    """Key prefix, always ending with a slash."""

    max_keys: int = 300
    """Page size."""
